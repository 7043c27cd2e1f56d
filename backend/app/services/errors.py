from typing import Optional

class StreamServiceError(Exception):
    """Base for failures that end a stream request with a client-facing status."""
    status_code = 500
    code: Optional[str] = None
    message = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        # `detail` is for the logs, clients only ever see `message`
        super().__init__(detail or self.message)
        self.detail = detail

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.code:
            payload["code"] = self.code
        return payload

class ValidationError(StreamServiceError):
    status_code = 400
    message = "Video ID is required"

class AutomationSuspected(StreamServiceError):
    status_code = 429
    code = "BOT_DETECTED"
    message = "YouTube bot detection triggered. Please try again later."

class ResourceUnavailable(StreamServiceError):
    status_code = 404
    message = "Video not found or unavailable"

class UpstreamError(StreamServiceError):
    status_code = 500
    message = "Internal server error"

class StreamCreationFailure(StreamServiceError):
    status_code = 500
    message = "Stream error occurred"

class UpstreamTimeout(StreamServiceError):
    status_code = 504
    code = "UPSTREAM_TIMEOUT"
    message = "Upstream took too long to respond"

BOT_MARKERS = (
    "not a bot",
    "sign in to confirm",
    "http error 429",
    "too many requests",
)

UNAVAILABLE_MARKERS = (
    "video unavailable",
    "this video is unavailable",
    "private video",
    "is not available",
    "has been removed",
    "incomplete youtube id",
    "http error 404",
)

def classify_upstream_error(exc: BaseException) -> StreamServiceError:
    """Map a raw resolver failure onto the client-facing taxonomy.

    The raw message is only used for matching; it never reaches the client.
    """
    if isinstance(exc, StreamServiceError):
        return exc
    text = str(exc).lower()
    if any(marker in text for marker in BOT_MARKERS):
        return AutomationSuspected()
    if any(marker in text for marker in UNAVAILABLE_MARKERS):
        return ResourceUnavailable()
    return UpstreamError()
