"""Error definitions for s3copy.

Backend errors (``botocore.exceptions.ClientError`` and friends) are not
wrapped: they propagate to the caller unchanged wherever the copy protocol
says the raw failure is the outcome.  The classes below cover the outcomes
the copy engine itself constructs.
"""

from typing import Any


class CopyError(Exception):
    """A multipart copy failure with a code, message, and diagnostic details.

    Attributes:
        code: Short machine-readable error code (e.g. "MultipartCopyAborted").
        message: Human-readable error description.
        details: Structured diagnostic payload (abort parameters, the
            list-parts response, the offending input, ...).
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the copy error.

        Args:
            code: Error code.
            message: Error description.
            details: Optional structured details.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


# -- Copy outcomes --------------------------------------------------------------


class InvalidCopyRequest(CopyError):
    """The copy parameters cannot produce a valid multipart copy."""

    def __init__(self, message: str = "Invalid copy request", **details: Any) -> None:
        super().__init__(code="InvalidCopyRequest", message=message, details=details)


class CopyAborted(CopyError):
    """The upload was aborted and the backend confirmed no parts remain."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="MultipartCopyAborted",
            message="multipart copy aborted",
            details=details,
        )


class AbortIncomplete(CopyError):
    """Abort succeeded but list-parts still reports parts for the upload."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="AbortIncomplete",
            message="Abort procedure passed but copy parts were not removed",
            details=details,
        )

    @property
    def parts(self) -> list[dict[str, Any]]:
        """The parts the backend still lists for the aborted upload."""
        return list(self.details.get("Parts") or [])


class CopyCancelled(CopyError):
    """The caller cancelled the copy and cleanup completed."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="AbortError", message="Upload aborted.", details=details)


class PartCopyRejected(CopyError):
    """A part copy was refused before dispatch because the copy was cancelled."""

    def __init__(self, part_number: int) -> None:
        super().__init__(
            code="Aborted",
            message=f"Part {part_number} not dispatched: copy was aborted",
            details={"PartNumber": part_number},
        )


class InvalidStateTransition(CopyError):
    """The upload lifecycle was asked to move along an edge it does not have."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            code="InvalidStateTransition",
            message=f"Cannot transition upload from {current} to {requested}",
            details={"current": current, "requested": requested},
        )
