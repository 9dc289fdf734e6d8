"""Provider error classification.

Reduces a provider proxy's non-2xx response into a ``ClassifiedError``.

Classification rules:
    - 402 → PAYMENT_REQUIRED (with billing guidance)
    - 429 → RATE_LIMITED
    - 404 → NOT_FOUND (transient while a new job is being indexed)
    - 403 mentioning a limit → LIMIT_REACHED (generation quota spent)
    - Body with title/detail/error/message → PROVIDER_ERROR
    - Anything else → UNKNOWN ("HTTP {status}: {reason}")
"""

import json
import re
from http import HTTPStatus
from typing import Any

from studiogen.models.generation import ClassifiedError
from studiogen.services.exceptions import ErrorKind

BILLING_URL = "https://replicate.com/account/billing#limits"
DEFAULT_PAYMENT_MESSAGE = "Payment required. Please check your account billing settings."
DEFAULT_RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
DEFAULT_LIMIT_MESSAGE = "Generation limit reached."

_NESTED_JSON = re.compile(r"\{.*\}", re.DOTALL)


def _parse_body(body: Any) -> dict[str, Any] | str | None:
    """Normalize a response body to a dict (JSON object) or plain text."""
    if body is None:
        return None
    if isinstance(body, dict):
        return body
    if isinstance(body, (bytes, bytearray)):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(body, str):
        return None
    text = body.strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return text
    return parsed if isinstance(parsed, dict) else text


def _text_field(data: dict[str, Any], name: str) -> str | None:
    value = data.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def unwrap_error(error: str) -> str:
    """Extract the inner message from errors like ``400 {"error":"message",...}``."""
    if '{"error"' not in error.replace(" ", ""):
        return error
    match = _NESTED_JSON.search(error)
    if match is None:
        return error
    try:
        nested = json.loads(match.group(0))
    except (ValueError, TypeError):
        return error
    if isinstance(nested, dict) and isinstance(nested.get("error"), str):
        return nested["error"]
    return error


def _provider_message(data: dict[str, Any]) -> str | None:
    title = _text_field(data, "title")
    detail = _text_field(data, "detail")
    if title and detail:
        return f"{title}: {detail}"
    if detail:
        return detail
    if title:
        return title
    error = _text_field(data, "error")
    if error:
        return unwrap_error(error)
    return _text_field(data, "message")


def _payment_message(data: dict[str, Any] | None) -> str:
    if not data:
        return DEFAULT_PAYMENT_MESSAGE
    title = _text_field(data, "title")
    detail = _text_field(data, "detail")
    if title and detail:
        return f"{title}: {detail}"
    if detail:
        return detail
    if title:
        return f"{title}. You can change or remove your limit at {BILLING_URL}."
    return DEFAULT_PAYMENT_MESSAGE


def _mentions_limit(data: dict[str, Any] | None, text: str | None) -> bool:
    candidates = [text or ""]
    if data:
        candidates.extend(
            value for value in (data.get("error"), data.get("message")) if isinstance(value, str)
        )
    return any("limit" in candidate.lower() for candidate in candidates)


def _reason_phrase(http_status: int) -> str:
    try:
        return HTTPStatus(http_status).phrase
    except ValueError:
        return "Unknown Status"


def classify(http_status: int, body: Any = None) -> ClassifiedError:
    """Classify a provider proxy failure.

    Never raises: unparseable or unexpected bodies fall through to the generic
    rules.

    Args:
        http_status: HTTP status code of the response
        body: Response body as dict, str, bytes, or None

    Returns:
        ClassifiedError with a user-facing message
    """
    parsed = _parse_body(body)
    data = parsed if isinstance(parsed, dict) else None
    text = parsed if isinstance(parsed, str) else None

    if http_status == 402:
        return ClassifiedError(
            kind=ErrorKind.PAYMENT_REQUIRED,
            message=_payment_message(data),
            status_code=http_status,
        )

    if http_status == 429:
        detail = _provider_message(data) if data else None
        return ClassifiedError(
            kind=ErrorKind.RATE_LIMITED,
            message=detail or DEFAULT_RATE_LIMIT_MESSAGE,
            status_code=http_status,
        )

    if http_status == 404:
        return ClassifiedError(
            kind=ErrorKind.NOT_FOUND,
            message=(_provider_message(data) if data else None) or "Job not found.",
            status_code=http_status,
        )

    if http_status == 403 and _mentions_limit(data, text):
        message = (_text_field(data, "message") if data else None) or DEFAULT_LIMIT_MESSAGE
        return ClassifiedError(
            kind=ErrorKind.LIMIT_REACHED, message=message, status_code=http_status
        )

    if data:
        message = _provider_message(data)
        if message:
            return ClassifiedError(
                kind=ErrorKind.PROVIDER_ERROR, message=message, status_code=http_status
            )

    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        message=f"HTTP {http_status}: {_reason_phrase(http_status)}",
        status_code=http_status,
    )
