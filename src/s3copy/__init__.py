"""s3copy - concurrent server-side multipart copy for S3-compatible storage."""

from s3copy.copier import MultipartCopy, copy_object_multipart, encode_copy_source
from s3copy.errors import (
    AbortIncomplete,
    CopyAborted,
    CopyCancelled,
    CopyError,
    InvalidCopyRequest,
)
from s3copy.models import CompletedPart, CopyOutcome, CopyRequest, UploadSession, UploadStatus
from s3copy.partitions import DEFAULT_PART_SIZE, MIN_PART_SIZE, Partition, plan_partitions

__all__ = [
    "AbortIncomplete",
    "CompletedPart",
    "CopyAborted",
    "CopyCancelled",
    "CopyError",
    "CopyOutcome",
    "CopyRequest",
    "DEFAULT_PART_SIZE",
    "InvalidCopyRequest",
    "MIN_PART_SIZE",
    "MultipartCopy",
    "Partition",
    "UploadSession",
    "UploadStatus",
    "copy_object_multipart",
    "encode_copy_source",
    "plan_partitions",
]
