import pytest

from backend.app.services.errors import (
    AutomationSuspected,
    ResourceUnavailable,
    StreamCreationFailure,
    UpstreamError,
    classify_upstream_error,
)


@pytest.mark.parametrize("message", [
    "ERROR: [youtube] abc: Sign in to confirm you’re not a bot. Use --cookies",
    "Sign in to confirm you're not a bot",
    "HTTP Error 429: Too Many Requests",
])
def test_bot_signals(message):
    error = classify_upstream_error(Exception(message))

    assert isinstance(error, AutomationSuspected)
    assert error.status_code == 429
    assert error.to_payload()["code"] == "BOT_DETECTED"


@pytest.mark.parametrize("message", [
    "ERROR: [youtube] abc: Video unavailable",
    "ERROR: [youtube] abc: Private video. Sign in if you've been granted access",
    "The uploader has not made this video available in your country. This video is not available",
    "ERROR: [youtube] abc: Incomplete YouTube ID abc.",
])
def test_unavailable_signals(message):
    error = classify_upstream_error(Exception(message))

    assert isinstance(error, ResourceUnavailable)
    assert error.status_code == 404


def test_anything_else_is_generic():
    error = classify_upstream_error(OSError("read-only file system"))

    assert isinstance(error, UpstreamError)
    assert error.to_payload() == {"error": "Internal server error"}


def test_known_errors_pass_through():
    original = StreamCreationFailure("upstream 403")

    assert classify_upstream_error(original) is original


def test_payload_hides_raw_detail():
    error = classify_upstream_error(Exception("Sign in to confirm you're not a bot; cookies at /secret"))

    assert "secret" not in str(error.to_payload())


def test_internal_detail_is_not_in_payload():
    error = StreamCreationFailure("Upstream answered 403 for https://media.example/signed")

    assert error.to_payload() == {"error": "Stream error occurred"}
    assert "403" in str(error)
