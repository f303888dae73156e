"""Multipart partitioning utilities."""
from typing import List

from .models import PartRange


def total_chunks(size: int, chunk_size: int) -> int:
    """``ceil(size / chunk_size)``."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return (size + chunk_size - 1) // chunk_size


def plan_parts(size: int, chunk_size: int) -> List[PartRange]:
    """
    Split ``size`` bytes into parts of ``chunk_size``.

    Part ``i`` covers ``[(i-1)*chunk_size, min(i*chunk_size, size))``;
    only the last part may be shorter.
    """
    parts = []
    for number in range(1, total_chunks(size, chunk_size) + 1):
        offset = (number - 1) * chunk_size
        parts.append(PartRange(number, offset, min(chunk_size, size - offset)))
    return parts
