"""Post-processing pipeline: resolve -> upload -> cleanup."""
import logging
from typing import Optional

from .config import Settings
from .errors import CleanupWarning, ResolutionError, UploadError
from .models import ProcessResult
from .orchestrator import UploadOrchestrator
from .services.cleanup import SourceCleaner
from .services.resolver import PayloadResolver

logger = logging.getLogger(__name__)


class PostProcessor:
    """
    Runs one completed download through the whole pipeline.

    Resolution errors stop the run before any network activity; upload
    errors stop it after. Cleanup problems are only logged. Nothing is
    retried here: the download manager (or a human) re-runs the job.
    """

    def __init__(
        self,
        settings: Settings,
        resolver: Optional[PayloadResolver] = None,
        cleaner: Optional[SourceCleaner] = None,
        s3_client=None,
    ):
        self._settings = settings
        self._resolver = resolver or PayloadResolver()
        self._cleaner = cleaner or SourceCleaner()
        self._s3_client = s3_client

    async def run(self) -> ProcessResult:
        event = self._settings.event
        logger.info(f"SAB_COMPLETE_DIR: {event.completion_dir}")
        logger.info(f"SAB_FINAL_NAME: {event.final_name}")
        logger.info(f"SAB_CAT: {event.category}")

        try:
            payload = self._resolver.resolve(event)
        except (ResolutionError, OSError) as e:
            logger.error(f"{type(e).__name__}: {e}")
            return ProcessResult.fail(str(e))

        try:
            async with UploadOrchestrator(
                self._settings.target,
                self._settings.upload,
                s3_client=self._s3_client,
            ) as orchestrator:
                receipt = await orchestrator.upload(payload)
        except (UploadError, OSError) as e:
            status = getattr(e, "status", None)
            suffix = f" (HTTP {status})" if status else ""
            logger.error(
                f"Failed to upload file '{payload.final_path.name}' to bucket "
                f"'{self._settings.target.bucket}': {type(e).__name__}: {e}{suffix}"
            )
            return ProcessResult.fail(str(e), payload=payload)

        cleanup_warning = None
        try:
            self._cleaner.cleanup(payload.cleanup_dir)
        except CleanupWarning as e:
            logger.warning(str(e))
            cleanup_warning = str(e)

        return ProcessResult.ok(payload, receipt, cleanup_warning=cleanup_warning)
