"""Core orchestrator - picks the upload strategy for a resolved payload."""
import logging
from typing import Optional

from ..models import ResolvedPayload, UploadConfig, UploadReceipt, UploadTarget
from ..services.s3_client import S3Client
from .multipart import MultipartUploadHandler
from .single_upload import SingleUploadHandler

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Uploads resolved payloads to the object store.

    Files below ``config.chunk_size`` go up in a single PUT, anything at or
    above it through the multipart protocol.

    Usage:
        async with UploadOrchestrator(target, config) as orchestrator:
            receipt = await orchestrator.upload(payload)
    """

    def __init__(
        self,
        target: UploadTarget,
        config: Optional[UploadConfig] = None,
        s3_client=None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            target: Bucket, endpoint and credentials
            config: Upload configuration
            s3_client: Pre-built S3 client (a new S3Client is created if omitted)
        """
        self._target = target
        self._config = config or UploadConfig()
        self._external_s3 = s3_client
        self._s3 = None

        # Handlers (initialized in __aenter__)
        self._single_handler: Optional[SingleUploadHandler] = None
        self._multipart_handler: Optional[MultipartUploadHandler] = None

    async def __aenter__(self):
        """Open the S3 client and build handlers."""
        if self._external_s3 is not None:
            self._s3 = self._external_s3
        else:
            self._s3 = S3Client(self._target, timeout=self._config.request_timeout)
            await self._s3.__aenter__()

        self._single_handler = SingleUploadHandler(self._s3)
        self._multipart_handler = MultipartUploadHandler(self._s3, self._config)
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._s3 is not None and self._external_s3 is None:
            await self._s3.__aexit__(*args)
        self._s3 = None

    async def upload(self, payload: ResolvedPayload) -> UploadReceipt:
        """Upload ``payload.final_path``; raises UploadError subclasses on failure."""
        assert self._single_handler is not None and self._multipart_handler is not None

        key = self._target.object_key_for(payload)
        size = payload.size
        logger.info(
            f"Uploading file to bucket '{self._target.bucket}' at "
            f"'{self._target.endpoint}' as {key}"
        )

        if self._config.use_multipart(size):
            logger.info(f"File is {size} bytes (>= {self._config.chunk_size}), using multipart upload")
            receipt = await self._multipart_handler.upload(payload, key, size)
        else:
            receipt = await self._single_handler.upload(payload, key, size)

        logger.info(f"File '{payload.final_path.name}' uploaded successfully to bucket '{self._target.bucket}'.")
        return receipt
