"""Byte-range planning for multipart copies.

Pure functions: no I/O, identical inputs always give identical plans.

A plan covers ``[0, object_size)`` with contiguous, non-overlapping ranges.
Every part except the last is ``part_size`` bytes.  A trailing remainder
smaller than the backend's minimum part size is folded into the last full
part instead of becoming a part of its own.
"""

from dataclasses import dataclass

from s3copy.errors import InvalidCopyRequest

# Smallest size S3 accepts for any part but the last: 5 MiB
MIN_PART_SIZE = 5 * 1024 * 1024

# 50 MB (decimal)
DEFAULT_PART_SIZE = 50_000_000


@dataclass(frozen=True)
class Partition:
    """One planned byte range of the source object.

    Attributes:
        part_number: 1-based position of the range in the plan.
        start: First byte offset.
        end: Last byte offset (inclusive).
        size: Number of bytes in the range.
    """

    part_number: int
    start: int
    end: int
    size: int

    @property
    def byte_range(self) -> str:
        return f"{self.start}-{self.end}"

    @property
    def copy_source_range(self) -> str:
        """Value for the ``CopySourceRange`` parameter of UploadPartCopy."""
        return f"bytes={self.byte_range}"


def plan_partitions(object_size: int, part_size: int | None = None) -> list[Partition]:
    """Split an object of ``object_size`` bytes into copy ranges.

    Args:
        object_size: Total size of the source object in bytes. Must be > 0.
        part_size: Target bytes per part. Defaults to DEFAULT_PART_SIZE.

    Returns:
        The ordered list of partitions, numbered from 1.

    Raises:
        InvalidCopyRequest: If object_size is not positive or part_size is
            not a positive integer.
    """
    if part_size is None:
        part_size = DEFAULT_PART_SIZE
    if part_size <= 0:
        raise InvalidCopyRequest("part_size must be a positive integer", part_size=part_size)
    if object_size <= 0:
        # A zero-byte object would need the inverted range "0--1".
        raise InvalidCopyRequest(
            "object_size must be greater than zero", object_size=object_size
        )

    num_full_parts, remainder = divmod(object_size, part_size)
    partitions: list[Partition] = []

    for index in range(num_full_parts):
        start = index * part_size
        size = part_size
        if index + 1 == num_full_parts and remainder < MIN_PART_SIZE:
            size += remainder
        partitions.append(
            Partition(part_number=index + 1, start=start, end=start + size - 1, size=size)
        )

    if num_full_parts == 0 or remainder >= MIN_PART_SIZE:
        start = num_full_parts * part_size
        partitions.append(
            Partition(
                part_number=num_full_parts + 1,
                start=start,
                end=start + remainder - 1,
                size=remainder,
            )
        )

    return partitions


def total_bytes(partitions: list[Partition]) -> int:
    """Return the number of bytes covered by ``partitions``."""
    return sum(p.size for p in partitions)
