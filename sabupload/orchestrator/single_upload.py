"""Single-shot upload handler."""
import logging

from ..models import ResolvedPayload, UploadReceipt, UploadStrategy

logger = logging.getLogger(__name__)


class SingleUploadHandler:
    """Uploads files below the multipart threshold with one PUT."""

    def __init__(self, s3):
        """
        Initialize single upload handler.

        Args:
            s3: S3Client (or anything with ``put_object``)
        """
        self._s3 = s3

    async def upload(self, payload: ResolvedPayload, key: str, size: int) -> UploadReceipt:
        """Upload ``payload.final_path`` to ``key``. Transport errors propagate."""
        logger.info(f"Uploading {payload.final_path.name} ({size} bytes) with a single PUT")
        etag = await self._s3.put_object(key, payload.final_path, size, payload.metadata)
        return UploadReceipt(
            object_key=key,
            strategy=UploadStrategy.SINGLE,
            size=size,
            parts=1,
            etag=etag,
        )
