"""Generation provider clients."""

from studiogen.services.providers.base import ProviderClient, extract_output_url
from studiogen.services.providers.replicate_client import ReplicateClient
from studiogen.services.providers.runway_client import RunwayClient

__all__ = ["ProviderClient", "ReplicateClient", "RunwayClient", "extract_output_url"]
