"""
sabupload - SABnzbd post-processing: rename a finished download and upload
it to an S3-compatible bucket.

Usage:
    from sabupload import PostProcessor, load_settings

    settings = load_settings(os.environ)
    result = await PostProcessor(settings).run()

    # Or just the upload part
    async with UploadOrchestrator(target, UploadConfig()) as uploader:
        receipt = await uploader.upload(payload)
"""
__version__ = "0.3.0"

from .config import Settings, load_settings
from .models import (
    CompletionEvent,
    NamingToken,
    ProcessResult,
    ProcessStatus,
    ResolvedPayload,
    UploadConfig,
    UploadReceipt,
    UploadStrategy,
    UploadTarget,
)
from .orchestrator import UploadOrchestrator
from .pipeline import PostProcessor
from .services import PayloadResolver, S3Client, SourceCleaner

__all__ = [
    # Main
    "PostProcessor",
    "UploadOrchestrator",
    "Settings",
    "load_settings",
    # Models
    "CompletionEvent",
    "NamingToken",
    "ProcessResult",
    "ProcessStatus",
    "ResolvedPayload",
    "UploadConfig",
    "UploadReceipt",
    "UploadStrategy",
    "UploadTarget",
    # Services
    "PayloadResolver",
    "S3Client",
    "SourceCleaner",
]
