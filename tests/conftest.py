"""Shared pytest fixtures for s3copy tests.

All tests use a mocked S3 client: an ``AsyncMock`` whose five multipart
methods return canned botocore-shaped responses.  No credentials or
network access are required.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from s3copy.models import CopyRequest

UPLOAD_ID = "1a2b3c4d"
PART_ETAG = "1a1b2s3d2f1e2g3sfsgdsg"


def client_error(code: str, message: str = "error", operation: str = "TestOperation") -> ClientError:
    """Create a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_client() -> AsyncMock:
    """Create a mock S3 client whose calls all succeed."""
    client = AsyncMock()
    client.create_multipart_upload = AsyncMock(return_value={"UploadId": UPLOAD_ID})
    client.upload_part_copy = AsyncMock(
        return_value={"CopyPartResult": {"ETag": PART_ETAG, "LastModified": "LastModified"}}
    )
    client.complete_multipart_upload = AsyncMock(
        return_value={
            "Location": "http://destination_bucket.s3.amazonaws.com/copied_object_name",
            "Bucket": "destination_bucket",
            "Key": "copied_object_name",
            "ETag": '"3858f62230ac3c915f300c664312c11f-2"',
        }
    )
    client.abort_multipart_upload = AsyncMock(return_value={})
    client.list_parts = AsyncMock(return_value={"Parts": []})
    return client


@pytest.fixture
def client() -> AsyncMock:
    """A mock S3 client with successful default responses."""
    return make_client()


@pytest.fixture
def copy_logger() -> MagicMock:
    """A copy logger that records info() and error() calls."""
    return MagicMock()


@pytest.fixture
def partial_request() -> CopyRequest:
    """A 100 MB copy with only the mandatory fields set."""
    return CopyRequest(
        source_bucket="source_bucket",
        source_key="object_key",
        destination_bucket="destination_bucket",
        destination_key="copied_object_name",
        object_size=100_000_000,
    )


@pytest.fixture
def full_request() -> CopyRequest:
    """A 75 MB copy with every optional attribute set."""
    return CopyRequest(
        source_bucket="source_bucket",
        source_key="object_key",
        destination_bucket="destination_bucket",
        destination_key="copied_object_name",
        object_size=75_000_000,
        part_size=50_000_000,
        acl="public-read",
        expires=datetime(2030, 1, 1, tzinfo=timezone.utc),
        server_side_encryption="AES256",
        content_type="application/octet-stream",
        content_disposition="attachment",
        content_encoding="gzip",
        content_language="en-US",
        metadata={"MetadataKey": "MetadataValue"},
        cache_control="max-age=3600",
        storage_class="STANDARD_IA",
    )
