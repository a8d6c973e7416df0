from __future__ import annotations


class LocatorSynthError(Exception):
    """Base class for errors raised at the package's outer surfaces."""


class CaptureError(LocatorSynthError):
    """A live page element could not be captured into a document snapshot."""


class SettingsError(LocatorSynthError):
    pass


class BridgeTimeout(LocatorSynthError):
    def __init__(self, request_id: str, timeout: float) -> None:
        super().__init__(f"No response for request {request_id} within {timeout:.1f}s")
        self.request_id = request_id
        self.timeout = timeout


class TargetNotFound(LocatorSynthError):
    """No node in the document matched the expression used to select the target."""
