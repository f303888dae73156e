"""
Models for sabupload.

Immutable dataclasses describing one post-processing invocation.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

MB = 1024 * 1024


@dataclass(frozen=True)
class CompletionEvent:
    """A finished download handed over by the download manager."""
    completion_dir: Path
    final_name: str
    category: str = "movies"


@dataclass(frozen=True)
class NamingToken:
    """Parsed ``<hash>--[[<catalog_id>]]<extension>`` name."""
    content_hash: str
    catalog_id: str
    extension: str = ""

    @property
    def stem(self) -> str:
        return f"{self.content_hash}{self.extension}"

    def with_extension(self, extension: str) -> "NamingToken":
        return NamingToken(self.content_hash, self.catalog_id, extension)

    def __str__(self) -> str:
        return f"{self.content_hash}--[[{self.catalog_id}]]{self.extension}"


@dataclass(frozen=True)
class ResolvedPayload:
    """The single file to upload plus the metadata describing it."""
    source_path: Path
    final_path: Path
    content_hash: str
    catalog_id: str
    extension: str
    cleanup_dir: Path

    @property
    def size(self) -> int:
        return self.final_path.stat().st_size

    @property
    def metadata(self) -> Dict[str, str]:
        """Custom object metadata (sent as ``x-amz-meta-*`` headers)."""
        return {"hash": self.content_hash, "tmdbID": self.catalog_id}


def capitalize_category(category: str) -> str:
    """Upper-case the first letter only: ``"tv shows"`` -> ``"Tv shows"``."""
    return category[:1].upper() + category[1:]


@dataclass(frozen=True)
class UploadTarget:
    """Where and how to reach the object store."""
    bucket: str
    endpoint: str
    region: str
    access_key: str = field(repr=False)
    secret_key: str = field(repr=False)
    category: str = "movies"

    @property
    def base_url(self) -> str:
        endpoint = self.endpoint.rstrip("/")
        if "://" in endpoint:
            return endpoint
        return f"https://{endpoint}"

    def object_key_for(self, payload: ResolvedPayload) -> str:
        return object_key(self.category, payload.content_hash, payload.extension)


def object_key(category: str, content_hash: str, extension: str = "") -> str:
    return f"Media/{capitalize_category(category)}/{content_hash}{extension}"


@dataclass(frozen=True)
class UploadConfig:
    """Immutable tuning for upload operations."""
    chunk_size: int = 64 * MB  # multipart threshold and part size
    max_parallel_parts: int = 5
    request_timeout: float = 120.0
    abort_incomplete: bool = True

    def use_multipart(self, size: int) -> bool:
        return size >= self.chunk_size


class UploadStrategy(Enum):
    SINGLE = "single"
    MULTIPART = "multipart"


@dataclass(frozen=True)
class UploadReceipt:
    """Acknowledgement of a committed upload."""
    object_key: str
    strategy: UploadStrategy
    size: int
    parts: int = 1
    etag: Optional[str] = None


class ProcessStatus(Enum):
    """Post-processing outcome."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ProcessResult:
    """Immutable result of a whole invocation."""
    status: ProcessStatus
    payload: Optional[ResolvedPayload] = None
    receipt: Optional[UploadReceipt] = None
    error: Optional[str] = None
    cleanup_warning: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ProcessStatus.SUCCESS

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @classmethod
    def ok(cls, payload: ResolvedPayload, receipt: UploadReceipt, cleanup_warning: str = None):
        return cls(
            status=ProcessStatus.SUCCESS,
            payload=payload,
            receipt=receipt,
            cleanup_warning=cleanup_warning,
        )

    @classmethod
    def fail(cls, error: str, payload: ResolvedPayload = None):
        return cls(status=ProcessStatus.FAILED, payload=payload, error=error)
