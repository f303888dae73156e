"""Multipart upload handler with bounded part concurrency."""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import IncompletePartSet, UploadError
from ..models import ResolvedPayload, UploadConfig, UploadReceipt, UploadStrategy
from .models import MultipartSession, PartRange
from .parallel import plan_parts

logger = logging.getLogger(__name__)


class MultipartUploadHandler:
    """
    Uploads large files as a multipart session.

    - Initiate: one session per file, metadata attached
    - Parts: at most ``max_parallel_parts`` in flight, ETags collected
    - Verify: every part 1..N must have an ETag
    - Commit: manifest sorted by part number

    A part that fails is recorded as missing; the session then fails as a
    whole at the verify step. Any exit before the commit, cancellation
    included, aborts the session. Parts are never retried.
    """

    def __init__(self, s3, config: Optional[UploadConfig] = None):
        self._s3 = s3
        self._config = config or UploadConfig()

    async def upload(self, payload: ResolvedPayload, key: str, size: int) -> UploadReceipt:
        chunk_size = self._config.chunk_size
        parts = plan_parts(size, chunk_size)

        upload_id = await self._s3.create_multipart_upload(key, payload.metadata)
        session = MultipartSession(upload_id, chunk_size, len(parts))
        logger.info(
            f"Multipart upload started for {key}: {session.total_chunks} parts of "
            f"{chunk_size // (1024 * 1024)} MiB (upload id {upload_id})"
        )

        committed = False
        try:
            await self._upload_parts(session, key, payload.final_path, parts)

            missing = session.missing()
            if missing:
                raise IncompletePartSet(
                    f"Multipart upload of {key} is missing ETags for parts {missing} "
                    f"({len(session.parts)}/{session.total_chunks} uploaded)",
                    missing=missing,
                )

            manifest = session.manifest()
            etag = await self._s3.complete_multipart_upload(key, upload_id, manifest)
            committed = True
            logger.info(f"Multipart upload committed for {key} ({len(manifest)} parts)")
            return UploadReceipt(
                object_key=key,
                strategy=UploadStrategy.MULTIPART,
                size=size,
                parts=session.total_chunks,
                etag=etag,
            )
        finally:
            # Anything that stops short of the commit aborts the session
            if not committed:
                await self._abort(key, upload_id)
            session.discard()

    async def _upload_parts(
        self,
        session: MultipartSession,
        key: str,
        path: Path,
        parts: List[PartRange],
    ) -> None:
        """Dispatch every part; blocks the dispatcher while the pool is full."""
        gate = asyncio.Semaphore(self._config.max_parallel_parts)
        tasks = []

        for part in parts:
            await gate.acquire()
            task = asyncio.create_task(self._upload_part(session, key, path, part))
            task.add_done_callback(lambda _: gate.release())
            tasks.append(task)

        await asyncio.gather(*tasks)

    async def _upload_part(
        self,
        session: MultipartSession,
        key: str,
        path: Path,
        part: PartRange,
    ) -> None:
        label = f"[{part.number}/{session.total_chunks}]"
        try:
            etag = await self._s3.upload_part(
                key, session.upload_id, part.number, path, part.offset, part.length
            )
        except Exception as e:
            logger.error(f"{label} Part upload failed for {key}: {e}")
            return

        if not etag:
            logger.error(f"{label} No ETag returned for part of {key}")
            return

        await session.record(part.number, etag)
        logger.debug(f"{label} Uploaded {part.length} bytes, ETag {etag}")

    async def _abort(self, key: str, upload_id: str) -> None:
        if not self._config.abort_incomplete:
            logger.warning(f"Leaving multipart upload {upload_id} for {key} uncommitted")
            return
        try:
            await self._s3.abort_multipart_upload(key, upload_id)
            logger.info(f"Aborted multipart upload {upload_id} for {key}")
        except UploadError as e:
            logger.warning(f"Failed to abort multipart upload {upload_id} for {key}: {e}")
