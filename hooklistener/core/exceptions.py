"""Error taxonomy of the webhook listener.

Every error that can end a request carries the HTTP status and body it maps
to, so the API layer only needs one exception handler.
"""
from typing import Any, Dict, Optional


class WebhookError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_content(self) -> Optional[Dict[str, Any]]:
        return {"error": self.message}


class TransportError(WebhookError):
    """Wrong method or malformed body"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class SecurityError(WebhookError):
    status_code = 401

    def __init__(self, reason: Optional[str]):
        super().__init__(reason or "Security check failed")
        self.reason = reason

    def to_content(self) -> Dict[str, Any]:
        return {"success": False, "reason": self.reason}


class UnknownProviderError(WebhookError):
    status_code = 400


class UnhandledEventError(WebhookError):
    status_code = 500

    def __init__(self, event: Optional[str]):
        super().__init__(f"unhandled event: {event}")
        self.event = event


class UnhandledEventActionError(UnhandledEventError):
    def __init__(self, event: str, action: Optional[str]):
        WebhookError.__init__(self, f"unhandled event action: {event}:{action}")
        self.event = event
        self.action = action


class TaskExecutionError(Exception):
    """A single task script failed; never surfaces to the HTTP caller"""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(Exception):
    pass


class PayloadError(UnhandledEventError):
    """Valid JSON whose shape does not match what the provider documents"""

    def __init__(self, event: Optional[str], detail: str):
        WebhookError.__init__(self, f"malformed payload for event {event}: {detail}")
        self.event = event
        self.detail = detail
