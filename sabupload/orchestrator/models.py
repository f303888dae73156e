"""Orchestrator data models."""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class PartRange:
    """Byte range of one multipart part (1-indexed)."""
    number: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass
class MultipartSession:
    """State of one multipart upload, alive until commit or abort."""
    upload_id: str
    chunk_size: int
    total_chunks: int
    parts: Dict[int, str] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    async def record(self, part_number: int, etag: str) -> None:
        async with self._lock:
            self.parts[part_number] = etag

    def missing(self) -> List[int]:
        return [
            number
            for number in range(1, self.total_chunks + 1)
            if not self.parts.get(number)
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing()

    def manifest(self) -> List[Tuple[int, str]]:
        """``(part_number, etag)`` pairs in ascending part order."""
        return sorted(self.parts.items())

    def discard(self) -> None:
        self.parts.clear()
