"""End-to-end tests for the post-processing pipeline."""
import xml.etree.ElementTree as ET
from unittest.mock import Mock

import httpx
import pytest

from sabupload.config import Settings
from sabupload.errors import CleanupWarning
from sabupload.models import CompletionEvent, UploadConfig, UploadStrategy
from sabupload.pipeline import PostProcessor
from sabupload.services.s3_client import S3Client


class FakeBucket:
    """Minimal S3 REST behaviour for MockTransport."""

    def __init__(self, part_status=200):
        self.objects = {}
        self.parts = {}
        self.completed = None
        self.requests = []
        self._part_status = part_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        if request.method == "POST" and "uploads" in params:
            return httpx.Response(
                200,
                content=b"<InitiateMultipartUploadResult><UploadId>u-1</UploadId></InitiateMultipartUploadResult>",
            )
        if request.method == "PUT" and "partNumber" in params:
            if self._part_status != 200:
                return httpx.Response(self._part_status)
            number = int(params["partNumber"])
            self.parts[number] = request.content
            return httpx.Response(200, headers={"ETag": f'"p{number}"'})
        if request.method == "POST" and "uploadId" in params:
            self.completed = request.content
            return httpx.Response(
                200,
                content=b"<CompleteMultipartUploadResult><ETag>\"done\"</ETag></CompleteMultipartUploadResult>",
            )
        if request.method == "DELETE":
            return httpx.Response(204)
        self.objects[request.url.path] = request.content
        return httpx.Response(200, headers={"ETag": '"single"'})


def _settings(completion_dir, target, final_name="abc123--[[4567]].mkv", chunk_size=64):
    return Settings(
        event=CompletionEvent(completion_dir, final_name, "movies"),
        target=target,
        upload=UploadConfig(chunk_size=chunk_size),
    )


@pytest.mark.asyncio
async def test_single_upload_then_cleanup(tmp_path, target):
    completion = tmp_path / "abc123--[[4567]]"
    completion.mkdir()
    (completion / "Release.mkv").write_bytes(b"m" * 40)
    bucket = FakeBucket()

    async with S3Client(target, transport=httpx.MockTransport(bucket)) as s3:
        result = await PostProcessor(_settings(completion, target), s3_client=s3).run()

    assert result.success is True
    assert result.exit_code == 0
    assert result.receipt.strategy == UploadStrategy.SINGLE
    assert bucket.objects == {"/media-bucket/Media/Movies/abc123.mkv": b"m" * 40}
    assert not completion.exists()
    assert not (tmp_path / "abc123").exists()


@pytest.mark.asyncio
async def test_multipart_upload_end_to_end(tmp_path, target):
    completion = tmp_path / "abc123"
    completion.mkdir()
    data = bytes(range(200))
    (completion / "Release.mkv").write_bytes(data)
    bucket = FakeBucket()

    async with S3Client(target, transport=httpx.MockTransport(bucket)) as s3:
        result = await PostProcessor(_settings(completion, target), s3_client=s3).run()

    assert result.success is True
    assert result.receipt.strategy == UploadStrategy.MULTIPART
    assert result.receipt.parts == 4
    assert b"".join(bucket.parts[n] for n in sorted(bucket.parts)) == data
    assert len(bucket.parts[4]) == 200 - 3 * 64
    root = ET.fromstring(bucket.completed)
    assert [p.findtext("PartNumber") for p in root] == ["1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_failed_part_keeps_download(tmp_path, target):
    completion = tmp_path / "abc123"
    completion.mkdir()
    (completion / "Release.mkv").write_bytes(b"x" * 200)
    bucket = FakeBucket(part_status=500)

    async with S3Client(target, transport=httpx.MockTransport(bucket)) as s3:
        result = await PostProcessor(_settings(completion, target), s3_client=s3).run()

    assert result.success is False
    assert result.exit_code == 1
    assert "missing ETags" in result.error
    assert bucket.completed is None
    assert bucket.requests[-1].method == "DELETE"
    assert (completion / "Release.mkv").exists()


@pytest.mark.asyncio
async def test_resolution_failure_skips_network(tmp_path, target):
    completion = tmp_path / "Some Release"
    completion.mkdir()
    (completion / "movie.mkv").write_bytes(b"x")
    s3 = Mock()

    result = await PostProcessor(
        _settings(completion, target, final_name="Some Release"), s3_client=s3
    ).run()

    assert result.success is False
    assert "expected pattern" in result.error
    assert s3.mock_calls == []


@pytest.mark.asyncio
async def test_cleanup_failure_is_only_a_warning(tmp_path, target, fake_s3_factory, caplog):
    completion = tmp_path / "abc123"
    completion.mkdir()
    (completion / "Release.mkv").write_bytes(b"x" * 10)
    cleaner = Mock()
    cleaner.cleanup.side_effect = CleanupWarning("Could not delete source directory")

    result = await PostProcessor(
        _settings(completion, target),
        cleaner=cleaner,
        s3_client=fake_s3_factory(),
    ).run()

    assert result.success is True
    assert result.exit_code == 0
    assert result.cleanup_warning == "Could not delete source directory"
    cleaner.cleanup.assert_called_once_with(completion)
    assert any(
        record.levelname == "WARNING" and "Could not delete" in record.getMessage()
        for record in caplog.records
    )


@pytest.mark.asyncio
async def test_read_error_during_upload_fails_cleanly(tmp_path, target, fake_s3_factory, caplog):
    completion = tmp_path / "abc123"
    completion.mkdir()
    (completion / "Release.mkv").write_bytes(b"x" * 10)
    s3 = fake_s3_factory()

    async def broken_put(key, path, size, metadata=None):
        raise OSError(5, "Input/output error")

    s3.put_object = broken_put

    result = await PostProcessor(_settings(completion, target), s3_client=s3).run()

    assert result.success is False
    assert result.exit_code == 1
    assert "Input/output error" in result.error
    assert (completion / "Release.mkv").exists()
    assert any(
        record.levelname == "ERROR" and "Input/output error" in record.getMessage()
        for record in caplog.records
    )
