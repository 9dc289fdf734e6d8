"""Repository layer.

Provides data access abstractions for generation records.
No base classes - each repository is self-contained.
"""

from studiogen.repositories.edited_image import EditedImageRepository
from studiogen.repositories.generated_video import GeneratedVideoRepository

__all__ = [
    "EditedImageRepository",
    "GeneratedVideoRepository",
]
