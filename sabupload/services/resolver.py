"""
Payload Resolver - Single Responsibility: turn a completed download into one
uploadable file.

Flow:
1. Rename ``<hash>--[[<id>]]`` directories to ``<hash>``
2. Pick the largest visible file inside
3. Recover hash / catalog id through the naming chain
4. Copy the file to ``<completion_dir>/<hash><ext>``
"""
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from ..errors import CopyFailed, DirectoryRenameFailed, NoPayloadFound
from ..models import CompletionEvent, ResolvedPayload
from ..naming import NamingChain, NamingSources, parse_directory_name
from ..orchestrator.file_collector import FileCollector

logger = logging.getLogger(__name__)


class PayloadResolver:
    """
    Resolves the payload of a completed download.

    Everything here is synchronous filesystem work; no network is touched.
    """

    def __init__(
        self,
        naming: Optional[NamingChain] = None,
        collector: Optional[FileCollector] = None,
    ):
        self._naming = naming or NamingChain()
        self._collector = collector or FileCollector()

    def resolve(self, event: CompletionEvent) -> ResolvedPayload:
        original_dir = Path(event.completion_dir)
        completion_dir = self.normalize_directory(original_dir)

        source = self.find_payload(completion_dir)
        logger.info(f"Selected payload: {source} ({source.stat().st_size} bytes)")

        strategy, token = self._naming.resolve(
            NamingSources(
                final_name=event.final_name,
                directory_name=original_dir.name,
                file_name=source.name,
            )
        )
        if not token.extension:
            token = token.with_extension(source.suffix)
        logger.info(
            f"Extracted metadata ({strategy}): hash=\"{token.content_hash}\", "
            f"tmdbID={token.catalog_id}, extension=\"{token.extension}\""
        )

        final_path = completion_dir / token.stem
        self.copy_payload(source, final_path)

        return ResolvedPayload(
            source_path=source,
            final_path=final_path,
            content_hash=token.content_hash,
            catalog_id=token.catalog_id,
            extension=token.extension,
            cleanup_dir=completion_dir,
        )

    def normalize_directory(self, completion_dir: Path) -> Path:
        """
        Rename ``<hash>--[[<id>]]`` to a sibling ``<hash>`` directory.

        A re-run after a failed upload finds the directory already renamed;
        that ``<hash>`` directory is used as is. Both paths existing is refused.
        """
        token = parse_directory_name(completion_dir.name)
        if token is None:
            return completion_dir

        new_dir = completion_dir.parent / token.content_hash
        if not completion_dir.exists() and new_dir.is_dir():
            logger.info(f"Download directory already renamed to: {new_dir}")
            return new_dir
        if new_dir.exists():
            raise DirectoryRenameFailed(
                f"Error renaming directory from '{completion_dir}' to '{new_dir}': target exists"
            )
        try:
            completion_dir.rename(new_dir)
        except OSError as e:
            raise DirectoryRenameFailed(
                f"Error renaming directory from '{completion_dir}' to '{new_dir}': {e}"
            ) from e

        logger.info(f"Renamed download directory to: {new_dir}")
        return new_dir

    def find_payload(self, completion_dir: Path) -> Path:
        if not completion_dir.is_dir():
            raise NoPayloadFound(f"Completion directory '{completion_dir}' does not exist")

        source = self._collector.largest_file(completion_dir)
        if source is None:
            raise NoPayloadFound(f"No media file found in '{completion_dir}'")
        if not os.access(source, os.R_OK):
            raise NoPayloadFound(f"Media file '{source}' is not readable")
        return source

    def copy_payload(self, source: Path, final_path: Path) -> None:
        """Copy ``source`` to ``final_path``; one retry through a staged content-only copy."""
        if source == final_path:
            logger.info(f"Payload already named {final_path.name}, skipping copy")
            return

        try:
            shutil.copy2(source, final_path)
        except OSError as e:
            logger.warning(f"Copy from '{source}' to '{final_path}' failed ({e}), retrying without metadata")
            try:
                self._staged_copy(source, final_path)
            except OSError as retry_error:
                raise CopyFailed(
                    f"Error copying file from '{source}' to '{final_path}': {retry_error}"
                ) from retry_error

        logger.info(f"Copied file to: {final_path}")

    @staticmethod
    def _staged_copy(source: Path, final_path: Path) -> None:
        """
        Content-only copy through a hidden staging directory.

        No permission bits or timestamps are copied (file or directory), so
        this works on mounts where ``copystat`` is unsupported.
        """
        staging = final_path.parent / f".{final_path.name}.staging"
        if staging.exists():
            shutil.rmtree(staging)

        try:
            staging.mkdir()
            staged = staging / source.name
            shutil.copyfile(source, staged)
            os.replace(staged, final_path)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
