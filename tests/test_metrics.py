"""Tests for the Prometheus copy metrics."""

from unittest.mock import AsyncMock

import pytest
from botocore.exceptions import ClientError
from prometheus_client import REGISTRY

from s3copy import metrics
from s3copy.copier import MultipartCopy
from s3copy.errors import CopyAborted


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.fixture(autouse=True)
def _metrics():
    metrics.init_metrics()


class TestInitMetrics:
    def test_idempotent(self):
        first = metrics.copy_operations_total
        metrics.init_metrics()
        assert metrics.copy_operations_total is first

    def test_registered_names(self):
        metrics.record_operation("probe")
        assert _sample("s3copy_operations_total", {"status": "probe"}) >= 1


class TestCopyMetrics:
    """The copy engine records outcomes once metrics are initialised."""

    async def test_successful_copy(self, client, copy_logger, partial_request):
        ops = _sample("s3copy_operations_total", {"status": "completed"})
        parts = _sample("s3copy_parts_total", {"status": "success"})
        copied = _sample("s3copy_bytes_copied_total")

        await MultipartCopy(client, partial_request, logger=copy_logger).done()

        assert _sample("s3copy_operations_total", {"status": "completed"}) == ops + 1
        assert _sample("s3copy_parts_total", {"status": "success"}) == parts + 2
        assert _sample("s3copy_bytes_copied_total") == copied + 100_000_000

    async def test_aborted_copy(self, client, copy_logger, partial_request):
        client.upload_part_copy = AsyncMock(
            side_effect=ClientError({"Error": {"Code": "InternalError"}}, "UploadPartCopy")
        )
        ops = _sample("s3copy_operations_total", {"status": "aborted"})
        failures = _sample("s3copy_parts_total", {"status": "failure"})

        with pytest.raises(CopyAborted):
            await MultipartCopy(client, partial_request, logger=copy_logger).done()

        assert _sample("s3copy_operations_total", {"status": "aborted"}) == ops + 1
        assert _sample("s3copy_parts_total", {"status": "failure"}) >= failures + 1
