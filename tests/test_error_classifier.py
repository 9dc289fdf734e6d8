"""Provider error classification tests."""

import json

import pytest

from studiogen.services.error_classifier import BILLING_URL, classify, unwrap_error
from studiogen.services.exceptions import ErrorKind


def test_payment_required_combines_title_and_detail():
    result = classify(402, {"title": "Spend limit", "detail": "Monthly cap of $10 reached"})

    assert result.kind == ErrorKind.PAYMENT_REQUIRED
    assert "Spend limit" in result.message
    assert "Monthly cap of $10 reached" in result.message
    assert result.status_code == 402


def test_payment_required_with_title_only_adds_billing_guidance():
    result = classify(402, {"error": "Payment Required", "title": "Monthly spend limit reached"})

    assert result.kind == ErrorKind.PAYMENT_REQUIRED
    assert result.message.startswith("Monthly spend limit reached.")
    assert BILLING_URL in result.message


def test_payment_required_without_body_uses_default_guidance():
    result = classify(402, None)

    assert result.kind == ErrorKind.PAYMENT_REQUIRED
    assert "billing" in result.message.lower()


def test_rate_limited():
    assert classify(429, b"").kind == ErrorKind.RATE_LIMITED
    assert classify(429, {"detail": "Slow down"}).message == "Slow down"


def test_not_found():
    assert classify(404, {"error": "Task not found"}).kind == ErrorKind.NOT_FOUND


def test_generation_limit_reached():
    body = {"error": "Image generation limit reached", "message": "You have used 50 of 50 images."}

    result = classify(403, body)

    assert result.kind == ErrorKind.LIMIT_REACHED
    assert result.message == "You have used 50 of 50 images."


def test_forbidden_without_limit_is_provider_error():
    result = classify(403, {"error": "Forbidden"})

    assert result.kind == ErrorKind.PROVIDER_ERROR
    assert result.message == "Forbidden"


def test_nested_runway_error_is_unwrapped():
    inner = json.dumps({"error": "Invalid asset aspect ratio", "docUrl": "https://docs"})
    body = json.dumps({"error": f"400 {inner}"})

    result = classify(400, body)

    assert result.kind == ErrorKind.PROVIDER_ERROR
    assert result.message == "Invalid asset aspect ratio"


def test_unwrap_error_leaves_plain_messages_alone():
    assert unwrap_error("Something broke") == "Something broke"
    assert unwrap_error('400 {"error": not json}') == '400 {"error": not json}'


def test_unknown_uses_reason_phrase():
    result = classify(502, "<html>Bad Gateway</html>")

    assert result.kind == ErrorKind.UNKNOWN
    assert result.message == "HTTP 502: Bad Gateway"


@pytest.mark.parametrize(
    "status, body",
    [
        (500, b"\xff\xfe\x00garbage"),
        (418, "{not json"),
        (400, []),
        (400, 12345),
        (599, {"error": None, "title": 5}),
        (999, None),
        (400, json.dumps(["a", "list"])),
        (402, {"title": "", "detail": "   "}),
    ],
)
def test_classify_is_total(status, body):
    """Any status/body pair yields a classification instead of raising."""
    result = classify(status, body)

    assert result.kind in set(ErrorKind)
    assert result.message
