"""Shared fixtures for sabupload tests."""
import asyncio
import logging
from pathlib import Path

import pytest

from sabupload.models import ResolvedPayload, UploadTarget


@pytest.fixture
def target():
    return UploadTarget(
        bucket="media-bucket",
        endpoint="fsn1.example-objectstorage.com",
        region="fsn1",
        access_key="AKIDEXAMPLE",
        secret_key="secret-example-key",
        category="movies",
    )


@pytest.fixture
def make_payload(tmp_path):
    """Build a ResolvedPayload backed by a real file of ``size`` bytes."""

    def _make(size: int, name: str = "abc123.mkv", sparse: bool = False) -> ResolvedPayload:
        path = tmp_path / name
        with open(path, "wb") as f:
            if sparse:
                f.truncate(size)
            else:
                f.write(bytes(i % 251 for i in range(size)))
        return ResolvedPayload(
            source_path=path,
            final_path=path,
            content_hash="abc123",
            catalog_id="4567",
            extension=Path(name).suffix,
            cleanup_dir=tmp_path,
        )

    return _make


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class FakeS3:
    """In-memory stand-in for S3Client that tracks part concurrency."""

    def __init__(self, delays=None, missing=(), failing=()):
        self._delays = delays or {}
        self._missing = set(missing)
        self._failing = set(failing)
        self.in_flight = 0
        self.max_in_flight = 0
        self.completed = []
        self.part_ranges = {}
        self.manifest = None
        self.aborted = []
        self.put_calls = []

    async def put_object(self, key, path, size, metadata=None):
        self.put_calls.append((key, size, metadata))
        return '"single-etag"'

    async def create_multipart_upload(self, key, metadata=None):
        self.metadata = metadata
        return "upload-1"

    async def upload_part(self, key, upload_id, part_number, path, offset, length):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delays.get(part_number, 0.01))
        finally:
            self.in_flight -= 1
        self.completed.append(part_number)
        self.part_ranges[part_number] = (offset, length)
        if part_number in self._failing:
            raise RuntimeError(f"connection reset on part {part_number}")
        if part_number in self._missing:
            return None
        return f'"etag-{part_number}"'

    async def complete_multipart_upload(self, key, upload_id, parts):
        self.manifest = list(parts)
        return '"final-etag"'

    async def abort_multipart_upload(self, key, upload_id):
        self.aborted.append(upload_id)


@pytest.fixture
def fake_s3_factory():
    return FakeS3
