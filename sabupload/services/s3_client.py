"""
S3 adapter - SigV4-signed REST calls against an S3-compatible endpoint.

Requests go through ``httpx.AsyncClient`` and are signed with botocore's
``S3SigV4Auth`` using ``UNSIGNED-PAYLOAD`` so file bodies can stream from disk.
Path-style addressing: ``<base_url>/<bucket>/<key>``.
"""
from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config as BotoConfig
from botocore.credentials import Credentials

from ..errors import CommitFailed, InitiateFailed, TransportFailure
from ..models import MB, UploadTarget

logger = logging.getLogger(__name__)

READ_BLOCK_SIZE = 1 * MB
_SIGNING_CONFIG = BotoConfig(s3={"payload_signing_enabled": False})


def _quote(value: str, safe: str = "-_.~") -> str:
    return quote(value, safe=safe)


def _find_text(body: bytes, tag: str) -> Optional[str]:
    """First ``<tag>`` text in an XML document, ignoring namespaces."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None
    for element in root.iter():
        if element.tag.rsplit("}", 1)[-1] == tag:
            return (element.text or "").strip() or None
    return None


def _has_error(body: bytes) -> bool:
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return b"<Error>" in body
    return root.tag.rsplit("}", 1)[-1] == "Error"


def build_completion_manifest(parts: List[Tuple[int, str]]) -> bytes:
    """``CompleteMultipartUpload`` document listing parts in ascending order."""
    root = ET.Element("CompleteMultipartUpload")
    for number, etag in sorted(parts):
        part = ET.SubElement(root, "Part")
        ET.SubElement(part, "PartNumber").text = str(number)
        ET.SubElement(part, "ETag").text = etag
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


async def iter_file_range(
    path: Path,
    offset: int = 0,
    length: Optional[int] = None,
    block_size: int = READ_BLOCK_SIZE,
) -> AsyncIterator[bytes]:
    """Stream ``length`` bytes of ``path`` from ``offset``; reads run in a worker thread."""
    with open(path, "rb") as f:
        f.seek(offset)
        remaining = length if length is not None else float("inf")
        while remaining > 0:
            chunk = await asyncio.to_thread(f.read, int(min(block_size, remaining)))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


class S3Client:
    """
    Minimal async S3 client for single and multipart uploads.

    Usage:
        async with S3Client(target) as s3:
            etag = await s3.put_object(key, path, size, metadata)
    """

    def __init__(
        self,
        target: UploadTarget,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._target = target
        self._timeout = timeout
        self._transport = transport
        self._credentials = Credentials(target.access_key, target.secret_key)
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def object_url(self, key: str, query: str = "") -> str:
        url = f"{self._target.base_url}/{_quote(self._target.bucket)}/{_quote(key, safe='/-_.~')}"
        return f"{url}?{query}" if query else url

    def _sign(self, method: str, url: str, headers: Dict[str, str]) -> Dict[str, str]:
        request = AWSRequest(method=method, url=url, headers=dict(headers))
        request.context["client_config"] = _SIGNING_CONFIG
        S3SigV4Auth(self._credentials, "s3", self._target.region).add_auth(request)
        return dict(request.headers.items())

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content=None,
        operation: str = "request",
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("S3Client not initialized. Use 'async with' context.")

        signed = self._sign(method, url, headers or {})
        try:
            response = await self._client.request(method, url, headers=signed, content=content)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{operation} {url} failed: {type(exc).__name__}: {exc}") from exc
        except OSError as exc:
            # Read errors from a streamed body are not wrapped by httpx
            raise TransportFailure(f"{operation} {url} failed reading request body: {exc}") from exc

        if response.status_code >= 300:
            raise TransportFailure(
                f"{operation} {url} failed with HTTP {response.status_code}: {response.text[:500]}",
                status=response.status_code,
            )
        return response

    @staticmethod
    def _metadata_headers(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
        return {f"x-amz-meta-{name}": str(value) for name, value in (metadata or {}).items()}

    async def put_object(
        self,
        key: str,
        path: Path,
        size: int,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Upload the whole file in one PUT. Returns the ETag if the store sent one."""
        headers = self._metadata_headers(metadata)
        headers["Content-Length"] = str(size)
        response = await self._request(
            "PUT",
            self.object_url(key),
            headers=headers,
            content=iter_file_range(path, 0, size),
            operation="PUT",
        )
        return response.headers.get("ETag")

    async def create_multipart_upload(
        self,
        key: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        response = await self._request(
            "POST",
            self.object_url(key, "uploads="),
            headers=self._metadata_headers(metadata),
            operation="Initiate multipart upload",
        )
        upload_id = _find_text(response.content, "UploadId")
        if not upload_id:
            raise InitiateFailed(f"No UploadId returned for '{key}': {response.text[:500]}")
        return upload_id

    async def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        path: Path,
        offset: int,
        length: int,
    ) -> Optional[str]:
        """Upload one byte range. Returns the part ETag, or None if none came back."""
        query = f"partNumber={part_number}&uploadId={_quote(upload_id)}"
        response = await self._request(
            "PUT",
            self.object_url(key, query),
            headers={"Content-Length": str(length)},
            content=iter_file_range(path, offset, length),
            operation=f"Upload part {part_number}",
        )
        return response.headers.get("ETag") or None

    async def complete_multipart_upload(
        self,
        key: str,
        upload_id: str,
        parts: List[Tuple[int, str]],
    ) -> Optional[str]:
        if not parts or any(not etag for _, etag in parts):
            raise CommitFailed(f"Refusing to commit '{key}' with an incomplete manifest")

        manifest = build_completion_manifest(parts)
        response = await self._request(
            "POST",
            self.object_url(key, f"uploadId={_quote(upload_id)}"),
            headers={"Content-Type": "application/xml"},
            content=manifest,
            operation="Complete multipart upload",
        )
        # S3 may report a failed commit with HTTP 200 and an <Error> body
        if _has_error(response.content):
            code = _find_text(response.content, "Code") or "unknown"
            message = _find_text(response.content, "Message") or response.text[:500]
            raise CommitFailed(f"Commit of '{key}' failed: {code}: {message}")
        return _find_text(response.content, "ETag")

    async def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        await self._request(
            "DELETE",
            self.object_url(key, f"uploadId={_quote(upload_id)}"),
            operation="Abort multipart upload",
        )
