"""
Error taxonomy for the flow state engine.

Every error a page action can hit derives from FlowError. The driver catches
FlowError at the action boundary (page load, form submit, action click) and
shows its message to the user; none of these escape to the caller.
"""

from typing import Any, Dict, Optional


class FlowError(Exception):
    """Base class for user-visible flow failures."""

    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.default_message)
        self.context = context or {}

    @property
    def message(self) -> str:
        return str(self)


class ConfigLoadError(FlowError):
    """The flow configuration document is missing, unreachable or invalid."""

    default_message = "Unable to load config.json"


class MissingWebhook(FlowError):
    """The flow configuration does not declare initialization.webhook_url."""

    default_message = "Initialization webhook_url is missing in config.json"


class InvalidVariableJson(FlowError):
    """A declared variable source could not be parsed into a mapping."""

    def __init__(self, source: str, detail: Optional[str] = None):
        super().__init__(f"Invalid JSON in {source}", context={"source": source, "detail": detail})
        self.source = source


class RequestFailed(FlowError):
    """The webhook round trip failed (non-2xx status or transport error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, context={"status_code": status_code})
        self.status_code = status_code


class MissingDestination(FlowError):
    """No navigation candidate resolved to a destination."""

    default_message = "No next_step or fallback defined for this step."
