"""Prometheus metrics definitions for s3copy.

All metrics use the ``s3copy_`` prefix.  They are registered lazily by
``init_metrics()``; until then the module-level references stay ``None``
and the copy engine skips recording.
"""

from __future__ import annotations

from prometheus_client import Counter

_initialized: bool = False

# ---------------------------------------------------------------------------
# Copy operation outcomes (labels: status)
# ---------------------------------------------------------------------------
copy_operations_total: Counter | None = None

# ---------------------------------------------------------------------------
# Part copy outcomes (labels: status)
# ---------------------------------------------------------------------------
copy_parts_total: Counter | None = None

# ---------------------------------------------------------------------------
# Bytes copied server-side by successful parts
# ---------------------------------------------------------------------------
bytes_copied_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; only the first call registers collectors
    in the global registry.
    """
    global _initialized
    global copy_operations_total, copy_parts_total, bytes_copied_total

    if _initialized:
        return

    copy_operations_total = Counter(
        "s3copy_operations_total",
        "Multipart copy operations by terminal status",
        ["status"],
    )

    copy_parts_total = Counter(
        "s3copy_parts_total",
        "Part copy requests by outcome",
        ["status"],
    )

    bytes_copied_total = Counter(
        "s3copy_bytes_copied_total",
        "Total bytes copied by successful part copies",
    )

    _initialized = True


def record_operation(status: str) -> None:
    if copy_operations_total is not None:
        copy_operations_total.labels(status=status).inc()


def record_part(status: str, size: int = 0) -> None:
    if copy_parts_total is not None:
        copy_parts_total.labels(status=status).inc()
    if status == "success" and bytes_copied_total is not None:
        bytes_copied_total.inc(size)
