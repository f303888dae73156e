"""Error taxonomy for the post-processing pipeline."""
from typing import List, Optional


class SabUploadError(RuntimeError):
    """Base class for every error raised by sabupload."""


class ConfigurationError(SabUploadError):
    """Required input is missing or malformed."""


class ResolutionError(SabUploadError):
    """The completed download could not be turned into an uploadable payload."""


class DirectoryRenameFailed(ResolutionError):
    pass


class NoPayloadFound(ResolutionError):
    pass


class NamingMismatch(ResolutionError):
    pass


class CopyFailed(ResolutionError):
    pass


class UploadError(SabUploadError):
    """The object store rejected or never acknowledged the upload."""


class TransportFailure(UploadError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class InitiateFailed(UploadError):
    pass


class IncompletePartSet(UploadError):
    def __init__(self, message: str, missing: Optional[List[int]] = None):
        super().__init__(message)
        self.missing = list(missing or [])


class CommitFailed(UploadError):
    pass


class CleanupWarning(SabUploadError):
    """Source cleanup failed after a successful upload. Never fatal."""
