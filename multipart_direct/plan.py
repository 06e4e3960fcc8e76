"""Chunk planning: how a file of a given size splits into upload parts."""

from dataclasses import dataclass
from typing import Iterator

from .errors import EmptyFileError, TooManyPartsError

MIB = 1024 * 1024

# Minimum part size most multipart protocols accept (all but the last part).
DEFAULT_CHUNK_SIZE = 5 * MIB
MAX_PARTS = 10_000


@dataclass(frozen=True)
class PartDescriptor:
    part_number: int
    offset: int
    length: int


@dataclass(frozen=True)
class UploadPlan:
    total_size: int
    chunk_size: int
    part_count: int
    last_part_size: int

    def part(self, index: int) -> PartDescriptor:
        """Describe the part at 0-based ``index``."""
        if not 0 <= index < self.part_count:
            raise IndexError(f"part index {index} out of range 0..{self.part_count - 1}")
        is_last = index == self.part_count - 1
        return PartDescriptor(
            part_number=index + 1,
            offset=index * self.chunk_size,
            length=self.last_part_size if is_last else self.chunk_size,
        )

    def parts(self) -> Iterator[PartDescriptor]:
        for index in range(self.part_count):
            yield self.part(index)


def plan_upload(total_size: int, chunk_size: int, max_parts: int = MAX_PARTS) -> UploadPlan:
    """Split ``total_size`` bytes into parts of ``chunk_size``.

    The last part holds the remainder, or a full chunk when the size is an
    exact multiple, so there is never an empty trailing part.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if total_size < 0:
        raise ValueError(f"total_size must not be negative, got {total_size}")
    if total_size == 0:
        raise EmptyFileError("Bad file size: the source file is empty.")

    part_count = total_size // chunk_size + 1
    last_part_size = total_size % chunk_size
    if last_part_size == 0:
        last_part_size = chunk_size
        part_count -= 1

    if part_count > max_parts:
        # ceil(total / max_parts) is the smallest chunk that fits, rounded up to whole MiB
        min_chunk_size = -(-total_size // max_parts)
        raise TooManyPartsError(part_count, max_parts, -(-min_chunk_size // MIB))

    return UploadPlan(
        total_size=total_size,
        chunk_size=chunk_size,
        part_count=part_count,
        last_part_size=last_part_size,
    )
