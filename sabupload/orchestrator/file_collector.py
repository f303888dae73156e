"""File collection utilities for completed downloads."""
import logging
import os
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts)


class FileCollector:
    """Collects candidate payload files from a completion directory."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all visible regular files recursively.

        Dot-files and anything below a dot-directory are skipped.
        Order follows the filesystem walk.
        """
        files = []
        for item in folder.rglob("*"):
            if _is_hidden(item, folder):
                continue
            if item.is_file() and not item.is_symlink():
                files.append(item)
        return files

    @staticmethod
    def list_top_level(folder: Path) -> List[Path]:
        """Flat listing of visible regular files directly inside ``folder``."""
        with os.scandir(folder) as entries:
            return [
                Path(entry.path)
                for entry in entries
                if not entry.name.startswith(".") and entry.is_file(follow_symlinks=False)
            ]

    @classmethod
    def largest_file(cls, folder: Path) -> Optional[Path]:
        """
        Return the biggest visible file under ``folder``.

        Ties keep the first file encountered. Falls back to a flat
        top-level listing when the recursive scan finds nothing.

        Args:
            folder: Completion directory

        Returns:
            Path of the largest file, or None if the folder holds no files
        """
        files = cls.collect_files(folder)
        if not files:
            logger.info(f"Recursive scan of {folder} found nothing, trying top-level listing")
            files = cls.list_top_level(folder)

        best: Optional[Path] = None
        best_size = -1
        for path in files:
            try:
                size = path.stat().st_size
            except OSError as e:
                logger.warning(f"Skipping unreadable file {path}: {e}")
                continue
            if size > best_size:
                best, best_size = path, size
        return best
