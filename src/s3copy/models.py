"""Data model types for s3copy.

``CopyRequest`` is the caller-facing description of one copy and is
validated by Pydantic.  The remaining types are plain dataclasses that the
copy engine creates and mutates while an operation is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from s3copy.errors import InvalidStateTransition
from s3copy.partitions import MIN_PART_SIZE

DEFAULT_ACL = "private"


class CopyRequest(BaseModel):
    """Immutable description of one server-side multipart copy.

    Only ``source_bucket``, ``source_key``, ``destination_bucket``,
    ``destination_key`` and ``object_size`` are required.  Optional object
    attributes are forwarded to CreateMultipartUpload when set.
    """

    model_config = ConfigDict(frozen=True)

    source_bucket: str = Field(min_length=1)
    source_key: str = Field(min_length=1)
    destination_bucket: str = Field(min_length=1)
    destination_key: str = Field(min_length=1)
    object_size: int = Field(gt=0)
    part_size: int | None = Field(default=None, ge=MIN_PART_SIZE)
    acl: str = DEFAULT_ACL
    expires: datetime | None = None
    server_side_encryption: str | None = None
    content_type: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    metadata: dict[str, str] | None = None
    cache_control: str | None = None
    storage_class: str | None = None

    def create_upload_params(self) -> dict[str, Any]:
        """Build the CreateMultipartUpload keyword arguments for this copy.

        ACL is always sent (an empty value falls back to "private"); every
        other attribute is included only when it is set.
        """
        params: dict[str, Any] = {
            "Bucket": self.destination_bucket,
            "Key": self.destination_key,
            "ACL": self.acl or DEFAULT_ACL,
        }
        optional = (
            ("Expires", self.expires),
            ("ServerSideEncryption", self.server_side_encryption),
            ("ContentType", self.content_type),
            ("ContentDisposition", self.content_disposition),
            ("ContentEncoding", self.content_encoding),
            ("ContentLanguage", self.content_language),
            ("Metadata", self.metadata),
            ("CacheControl", self.cache_control),
            ("StorageClass", self.storage_class),
        )
        for name, value in optional:
            if value:
                params[name] = value
        return params

    def upload_params(self, upload_id: str | None) -> dict[str, Any]:
        """Bucket/Key/UploadId triple shared by abort and list-parts."""
        return {
            "Bucket": self.destination_bucket,
            "Key": self.destination_key,
            "UploadId": upload_id,
        }


class UploadStatus(Enum):
    """Lifecycle states of one multipart copy."""

    IDLE = "idle"
    INITIATING = "initiating"
    COPYING_PARTS = "copying_parts"
    COMPLETING = "completing"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTING = "aborting"
    ABORTED = "aborted"
    ABORT_FAILED = "abort_failed"


_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.IDLE: frozenset({UploadStatus.INITIATING}),
    UploadStatus.INITIATING: frozenset({UploadStatus.COPYING_PARTS, UploadStatus.FAILED}),
    UploadStatus.COPYING_PARTS: frozenset({UploadStatus.COMPLETING, UploadStatus.ABORTING}),
    UploadStatus.COMPLETING: frozenset({UploadStatus.COMPLETED, UploadStatus.ABORTING}),
    UploadStatus.ABORTING: frozenset({UploadStatus.ABORTED, UploadStatus.ABORT_FAILED}),
    UploadStatus.COMPLETED: frozenset(),
    UploadStatus.FAILED: frozenset(),
    UploadStatus.ABORTED: frozenset(),
    UploadStatus.ABORT_FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {
        UploadStatus.COMPLETED,
        UploadStatus.FAILED,
        UploadStatus.ABORTED,
        UploadStatus.ABORT_FAILED,
    }
)


@dataclass
class UploadSession:
    """Mutable state of one in-flight multipart copy.

    Attributes:
        upload_id: Identifier issued by CreateMultipartUpload, None before.
        processed_bytes: Bytes copied by parts that have succeeded so far.
        status: Current lifecycle state.
    """

    upload_id: str | None = None
    processed_bytes: int = 0
    status: UploadStatus = UploadStatus.IDLE

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, new_status: UploadStatus) -> None:
        """Move to ``new_status``.

        Raises:
            InvalidStateTransition: If the lifecycle has no such edge.
        """
        if new_status not in _TRANSITIONS[self.status]:
            raise InvalidStateTransition(self.status.value, new_status.value)
        self.status = new_status

    def add_processed(self, size: int) -> int:
        """Add ``size`` bytes to the running total and return the new total."""
        self.processed_bytes += size
        return self.processed_bytes


@dataclass(frozen=True)
class CompletedPart:
    """A successfully copied part, as referenced by CompleteMultipartUpload."""

    part_number: int
    etag: str

    def to_dict(self) -> dict[str, Any]:
        return {"ETag": self.etag, "PartNumber": self.part_number}


@dataclass
class CopyOutcome:
    """Terminal success result of a multipart copy.

    Attributes:
        bucket: Destination bucket.
        key: Destination key.
        etag: ETag of the assembled object (or of the single part when
            completion was synthesized).
        location: Object URL returned by the backend, if any.
        upload_id: The multipart upload identifier.
        version_id: Destination version id when the bucket is versioned.
        synthesized: True when no CompleteMultipartUpload call was made.
        raw: The backend response the outcome was built from.
    """

    bucket: str
    key: str
    etag: str = ""
    location: str | None = None
    upload_id: str | None = None
    version_id: str | None = None
    synthesized: bool = False
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(
        cls, response: dict[str, Any], bucket: str, key: str, upload_id: str | None
    ) -> CopyOutcome:
        """Build an outcome from a CompleteMultipartUpload response."""
        return cls(
            bucket=response.get("Bucket") or bucket,
            key=response.get("Key") or key,
            etag=response.get("ETag", ""),
            location=response.get("Location"),
            upload_id=upload_id,
            version_id=response.get("VersionId"),
            raw=dict(response),
        )
