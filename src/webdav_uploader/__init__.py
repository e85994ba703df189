"""WebDAV Uploader - A Python library for publishing update sites over WebDAV.

Example usage:
    from pathlib import Path
    from webdav_uploader import UploadTarget, WebDAVUploader

    # Using context manager (recommended)
    with WebDAVUploader("https://sites.example.org/mysite/", "user", "secret") as uploader:
        targets = [
            UploadTarget("plugins/Foo.jar-20240101000000", Path("Foo.jar")),
            UploadTarget("db.xml.gz", Path("db.xml.gz")),
        ]
        # db.xml.gz is written to db.xml.gz.lock, then moved into place
        uploader.upload(targets, ["db.xml.gz"])

    # Manual session management
    uploader = WebDAVUploader()
    uploader.login("https://sites.example.org/mysite/", "user", "secret")
    uploader.upload_file("notes.txt", "docs/notes.txt")
    uploader.logout()
"""

from webdav_uploader.client import WebDAVUploader
from webdav_uploader.config import UploaderSettings
from webdav_uploader.exceptions import (
    AuthenticationError,
    DirectoryCreationError,
    InsufficientPermissionsError,
    LockAcquisitionError,
    PublishMoveError,
    RootMissingError,
    SessionError,
    TransferError,
    TransportError,
    UnlockError,
    UploaderError,
)
from webdav_uploader.models import DirectoryState, UploadResult, UploadTarget
from webdav_uploader.progress import NullProgress, ProgressListener, RecordingProgress

__version__ = "0.1.0"

__all__ = [
    # Main client
    "WebDAVUploader",
    # Configuration
    "UploaderSettings",
    # Models
    "DirectoryState",
    "UploadResult",
    "UploadTarget",
    # Progress
    "ProgressListener",
    "NullProgress",
    "RecordingProgress",
    # Exceptions
    "UploaderError",
    "AuthenticationError",
    "InsufficientPermissionsError",
    "RootMissingError",
    "SessionError",
    "TransportError",
    "LockAcquisitionError",
    "DirectoryCreationError",
    "TransferError",
    "PublishMoveError",
    "UnlockError",
]
