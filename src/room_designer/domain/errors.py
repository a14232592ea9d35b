"""Error kinds raised across the upload and processing flow."""


class RoomDesignerError(Exception):
    """Base class for errors surfaced to the user."""


class ValidationError(RoomDesignerError):
    """Input rejected before anything is sent to the backend."""


class NetworkError(RoomDesignerError):
    """A request to the backend could not be completed."""


class BackendRejection(RoomDesignerError):
    """The backend answered with a non-success status."""

    def __init__(self, detail: str, status_code: int) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class ProcessingFailure(RoomDesignerError):
    """A project or upload session reached a failed terminal status."""


class HandoffAddressError(RoomDesignerError):
    """No address reachable from another device could be determined."""
