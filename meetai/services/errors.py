from __future__ import annotations


class WebhookError(Exception):
    """Terminal failure for one webhook delivery; maps to an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthFailure(WebhookError):
    status_code = 401


class MalformedPayload(WebhookError):
    status_code = 400


class MissingFields(WebhookError):
    status_code = 400


class MissingMeetingId(WebhookError):
    status_code = 400


class NotFound(WebhookError):
    status_code = 404


class AgentNotFound(NotFound):
    pass


class NoCompletion(WebhookError):
    status_code = 500


class EnqueueFailed(WebhookError):
    status_code = 500
