"""Services for sabupload."""
from .cleanup import SourceCleaner
from .resolver import PayloadResolver
from .s3_client import S3Client

__all__ = [
    "PayloadResolver",
    "S3Client",
    "SourceCleaner",
]
