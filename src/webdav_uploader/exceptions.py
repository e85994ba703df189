"""Exception hierarchy for the webdav_uploader library."""

from __future__ import annotations


class UploaderError(OSError):
    """Base exception for all webdav_uploader errors."""

    pass


class AuthenticationError(UploaderError):
    """Raised when the server rejects the credentials (401/403)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InsufficientPermissionsError(UploaderError):
    """Raised when the account may not lock resources on the server."""

    pass


class RootMissingError(UploaderError):
    """Raised when the base collection does not exist on the server."""

    pass


class SessionError(UploaderError):
    """Raised when there's an issue with the session state."""

    pass


class TransportError(UploaderError):
    """Raised when a request could not be completed at the network level."""

    pass


class LockAcquisitionError(UploaderError):
    """Raised when a LOCK request fails or returns no lock token."""

    def __init__(self, message: str, path: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class DirectoryCreationError(UploaderError):
    """Raised when a remote directory chain could not be created."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class TransferError(UploaderError):
    """Raised when a PUT fails or the byte stream breaks mid-transfer."""

    def __init__(self, message: str, path: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class PublishMoveError(UploaderError):
    """Raised after cleanup when some placeholders could not be moved.

    The affected files stay on the server under their ``.lock`` names.
    """

    def __init__(self, message: str, paths: list[str]) -> None:
        super().__init__(message)
        self.paths = paths


class UnlockError(UploaderError):
    """Raised when releasing a lock fails during cleanup.

    An orphaned lock blocks later publishes to the same path until it
    times out on the server.
    """

    def __init__(self, message: str, paths: list[str]) -> None:
        super().__init__(message)
        self.paths = paths
