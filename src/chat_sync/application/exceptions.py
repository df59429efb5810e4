from __future__ import annotations


class ChatSyncError(Exception):
    """Base library error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class FetchError(ChatSyncError):
    """REST call failed: network error or non-2xx response."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)


class UploadError(FetchError):
    """Media upload failed before the message was sent."""


class TransportDisconnected(ChatSyncError):
    pass
