"""Source cleanup after a successful upload."""
import logging
import shutil
from pathlib import Path

from ..errors import CleanupWarning

logger = logging.getLogger(__name__)


class SourceCleaner:
    """Deletes the completion directory once its payload is safely stored."""

    def cleanup(self, directory: Path) -> None:
        """
        Recursively delete ``directory``.

        Raises:
            CleanupWarning: deletion failed; callers log it and carry on
        """
        directory = Path(directory)
        if not directory.exists():
            logger.info(f"Nothing to clean up, {directory} is already gone")
            return
        try:
            shutil.rmtree(directory)
        except OSError as e:
            raise CleanupWarning(f"Could not delete source directory '{directory}': {e}") from e
        logger.info(f"Deleted source directory: {directory}")
