"""Server-side multipart copy of one S3 object.

A copy runs in three phases against the destination bucket:
    - CreateMultipartUpload
    - UploadPartCopy for every planned byte range, at most
      ``max_concurrent_parts`` at a time
    - CompleteMultipartUpload with the parts in ascending part order

Any failure after the upload exists triggers the abort protocol:
AbortMultipartUpload, then ListParts on the same upload to confirm nothing
is left behind.  The protocol always ends in an error: ``CopyAborted`` when
the listing is empty, ``AbortIncomplete`` when parts remain, or the raw
backend error when either call fails.

``MultipartCopy.abort()`` cancels a running copy.  Parts not yet
dispatched are refused; parts already in flight finish on their own.
``done()`` reports whichever settles first: the copy pipeline or the
cancellation cleanup.  The loser keeps running in the background and is
never awaited.
"""

import asyncio
import json
import logging
from typing import Any, NoReturn
from urllib.parse import quote

from s3copy import metrics
from s3copy.client import MultipartCopyBackend
from s3copy.errors import (
    AbortIncomplete,
    CopyAborted,
    CopyCancelled,
    PartCopyRejected,
)
from s3copy.limiter import DEFAULT_MAX_CONCURRENT_PARTS, ConcurrencyLimiter
from s3copy.logging_config import CopyLogger, StdlibCopyLogger
from s3copy.models import (
    CompletedPart,
    CopyOutcome,
    CopyRequest,
    UploadSession,
    UploadStatus,
)
from s3copy.partitions import Partition, plan_partitions
from s3copy.progress import ProgressReporter

logger = logging.getLogger(__name__)

# Characters encodeURIComponent-style escaping leaves alone besides
# letters, digits and "_.-"
_COPY_SOURCE_SAFE = "!~*'()"


def encode_copy_source(bucket: str, key: str) -> str:
    """Percent-encode ``bucket/key`` for the CopySource parameter.

    The separating slash is encoded too, so keys containing ``+ ? = &`` or
    further slashes reach the backend intact.
    """
    return quote(f"{bucket}/{key}", safe=_COPY_SOURCE_SAFE)


def build_completed_parts(
    partitions: list[Partition], results: list[dict[str, Any]]
) -> list[CompletedPart]:
    """Pair each partition with its UploadPartCopy result.

    Results without a ``CopyPartResult`` are left out.  The returned list is
    sorted by part number.
    """
    parts = []
    for partition, result in zip(partitions, results):
        copy_result = result.get("CopyPartResult")
        if copy_result:
            parts.append(CompletedPart(part_number=partition.part_number, etag=copy_result["ETag"]))
    return sorted(parts, key=lambda p: p.part_number)


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


class MultipartCopy:
    """Drives one multipart copy from initiation to a terminal outcome.

    One instance per copy operation; the instance owns its client handle,
    logger, upload session, concurrency limiter and progress channel.

    Attributes:
        client: The S3 backend (an aiobotocore S3 client or equivalent).
        request: What to copy and where.
        logger: Sink for phase transitions and failures.
        request_context: Correlation string attached to every log call.
        skip_single_part_completion: When True and the plan has exactly one
            part, skip CompleteMultipartUpload and synthesize the outcome.
        session: Upload identifier, processed bytes and lifecycle status.
        limiter: Gate for part-copy dispatch.
        progress: Processed-bytes notification channel.
    """

    def __init__(
        self,
        client: MultipartCopyBackend,
        request: CopyRequest,
        *,
        logger: CopyLogger | None = None,
        max_concurrent_parts: int = DEFAULT_MAX_CONCURRENT_PARTS,
        skip_single_part_completion: bool = False,
        request_context: str = "",
    ) -> None:
        self.client = client
        self.request = request
        self.logger = logger or StdlibCopyLogger()
        self.request_context = request_context
        self.skip_single_part_completion = skip_single_part_completion
        self.session = UploadSession()
        self.limiter = ConcurrencyLimiter(max_concurrent_parts)
        self.progress = ProgressReporter()
        self._cancelled = asyncio.Event()
        self._initiation_settled = asyncio.Event()
        self._completion_settled = asyncio.Event()
        self._halt_dispatch = False
        self._failure_cause: BaseException | None = None
        self._abort_task: asyncio.Future | None = None
        self._pipeline: asyncio.Future | None = None
        self._started = False

    # -- Introspection ---------------------------------------------------------

    @property
    def status(self) -> UploadStatus:
        return self.session.status

    @property
    def upload_id(self) -> str | None:
        return self.session.upload_id

    @property
    def processed_bytes(self) -> int:
        return self.session.processed_bytes

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def observable_processed_bytes(self) -> ProgressReporter:
        """The channel that reports cumulative copied bytes."""
        return self.progress

    # -- Public entry points ---------------------------------------------------

    def abort(self) -> None:
        """Cancel the copy.

        Takes effect at once for parts not yet dispatched.  Safe to call
        more than once and from a signal handler.
        """
        if self._cancelled.is_set():
            return
        logger.info(
            "Cancellation requested for %s/%s",
            self.request.destination_bucket,
            self.request.destination_key,
        )
        self._cancelled.set()

    async def done(self) -> CopyOutcome:
        """Run the copy and return its outcome.

        Returns:
            The completion descriptor.

        Raises:
            CopyAborted: A part or the completion failed and cleanup
                succeeded. The triggering error is the ``__cause__``.
            AbortIncomplete: Cleanup ran but the backend still lists parts.
            CopyCancelled: ``abort()`` was called and cleanup succeeded.
            InvalidCopyRequest: The request cannot be planned.
            botocore.exceptions.ClientError: Initiation failed, or the
                abort or list-parts call failed.
            RuntimeError: If done() was already called on this instance.
        """
        if self._started:
            raise RuntimeError("done() may only be called once per MultipartCopy")
        self._started = True

        pipeline = self._pipeline = asyncio.ensure_future(self._run_pipeline())
        watcher = asyncio.ensure_future(self._watch_cancellation())
        try:
            finished, _ = await asyncio.wait(
                {pipeline, watcher}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            # The awaiting task went away: stop dispatching and let cleanup
            # run in the background.
            self.abort()
            self._abandon(pipeline)
            self._abandon(watcher)
            raise

        # A pipeline that failed because of cancellation defers to the
        # cleanup path's report.
        pipeline_wins = pipeline in finished and (
            pipeline.exception() is None or not self._cancelled.is_set()
        )
        if pipeline_wins:
            if self._cancelled.is_set():
                self._abandon(watcher)
            else:
                watcher.cancel()
            winner = pipeline
        else:
            self._abandon(pipeline)
            winner = watcher

        try:
            outcome = await winner
        except Exception as exc:
            self.progress.error(exc)
            if isinstance(exc, CopyCancelled):
                metrics.record_operation("cancelled")
            else:
                metrics.record_operation(self.session.status.value)
            raise
        self.progress.complete()
        metrics.record_operation(self.session.status.value)
        return outcome

    # -- Lifecycle phases ------------------------------------------------------

    async def initiate(self) -> str:
        """Create the multipart upload on the destination.

        Returns:
            The backend-issued upload identifier.

        Raises:
            Exception: The backend error, unchanged.
        """
        self.session.transition(UploadStatus.INITIATING)
        try:
            result = await self.client.create_multipart_upload(
                **self.request.create_upload_params()
            )
        except Exception as exc:
            self.session.transition(UploadStatus.FAILED)
            self.logger.error("multipart copy failed to initiate", exc, self.request_context)
            raise

        self.session.upload_id = result["UploadId"]
        self.session.transition(UploadStatus.COPYING_PARTS)
        self.logger.info(
            f"multipart copy initiated successfully: {_dumps(result)}", self.request_context
        )
        return self.session.upload_id

    async def copy_parts(self, partitions: list[Partition]) -> list[dict[str, Any]]:
        """Copy every partition into the current upload.

        All parts are scheduled at once through the limiter in ascending
        part order.  The batch fails with the first part error; parts still
        waiting for a slot are then refused without contacting the backend.

        Returns:
            UploadPartCopy responses, one per partition, in partition order.
        """
        upload_id = self.session.upload_id
        results = await asyncio.gather(
            *(self.limiter.schedule(self._copy_part, p, upload_id) for p in partitions)
        )
        self.logger.info(
            f"copied all parts successfully: {_dumps(results)}", self.request_context
        )
        return list(results)

    async def complete(
        self, partitions: list[Partition], results: list[dict[str, Any]]
    ) -> CopyOutcome:
        """Commit the copied parts as the destination object.

        Raises:
            Exception: The CompleteMultipartUpload error, unchanged.
        """
        self.session.transition(UploadStatus.COMPLETING)
        parts = build_completed_parts(partitions, results)
        bucket = self.request.destination_bucket
        key = self.request.destination_key

        if self.skip_single_part_completion and len(partitions) == 1:
            self.session.transition(UploadStatus.COMPLETED)
            self.logger.info(
                "single part copied, completion call skipped", self.request_context
            )
            return CopyOutcome(
                bucket=bucket,
                key=key,
                etag=parts[0].etag if parts else "",
                upload_id=self.session.upload_id,
                synthesized=True,
                raw=dict(results[0]),
            )

        params = {
            "Bucket": bucket,
            "Key": key,
            "MultipartUpload": {"Parts": [p.to_dict() for p in parts]},
            "UploadId": self.session.upload_id,
        }
        try:
            response = await self.client.complete_multipart_upload(**params)
        except Exception as exc:
            self.logger.error("Multipart upload failed", exc, self.request_context)
            raise

        self.session.transition(UploadStatus.COMPLETED)
        self.logger.info(
            f"multipart copy completed successfully: {_dumps(response)}", self.request_context
        )
        return CopyOutcome.from_response(response, bucket, key, self.session.upload_id)

    async def abort_upload(self) -> NoReturn:
        """Abort the upload and verify the backend dropped its parts.

        Raises:
            CopyAborted: Abort succeeded and no parts are listed.
            AbortIncomplete: Abort succeeded but parts are still listed.
            Exception: The abort or list-parts error, unchanged.
        """
        params = self.request.upload_params(self.session.upload_id)
        self.session.transition(UploadStatus.ABORTING)
        try:
            await self.client.abort_multipart_upload(**params)
            parts_list = await self.client.list_parts(**params)
        except Exception as exc:
            self.session.transition(UploadStatus.ABORT_FAILED)
            self.logger.error("abort multipart copy failed", exc, self.request_context)
            raise

        if parts_list.get("Parts"):
            self.session.transition(UploadStatus.ABORT_FAILED)
            err = AbortIncomplete(details=parts_list)
            self.logger.error(
                "abort multipart copy failed, copy parts were not removed",
                err,
                self.request_context,
            )
            raise err from self._failure_cause

        self.session.transition(UploadStatus.ABORTED)
        self.logger.info(
            f"multipart copy aborted successfully: {_dumps(parts_list)}", self.request_context
        )
        raise CopyAborted(details=params) from self._failure_cause

    # -- Internals -------------------------------------------------------------

    async def _copy_part(self, partition: Partition, upload_id: str | None) -> dict[str, Any]:
        part_number = partition.part_number
        if self._cancelled.is_set() or self._halt_dispatch:
            metrics.record_part("rejected")
            raise PartCopyRejected(part_number)

        params = {
            "Bucket": self.request.destination_bucket,
            "CopySource": encode_copy_source(self.request.source_bucket, self.request.source_key),
            "CopySourceRange": partition.copy_source_range,
            "Key": self.request.destination_key,
            "PartNumber": part_number,
            "UploadId": upload_id,
        }
        try:
            result = await self.client.upload_part_copy(**params)
        except Exception as exc:
            self._halt_dispatch = True
            metrics.record_part("failure")
            self.logger.error(f"CopyPart {part_number} failed", exc, self.request_context)
            raise

        metrics.record_part("success", partition.size)
        self.logger.info(
            f"CopyPart {part_number} succeeded: {_dumps(result)}", self.request_context
        )
        self.progress.next(self.session.add_processed(partition.size))
        return result

    async def _run_pipeline(self) -> CopyOutcome:
        try:
            partitions = plan_partitions(self.request.object_size, self.request.part_size)
            if self._cancelled.is_set():
                raise CopyCancelled(details=self.request.upload_params(None))
            await self.initiate()
        finally:
            self._initiation_settled.set()

        try:
            results = await self.copy_parts(partitions)
            if self._cancelled.is_set():
                raise CopyCancelled(details=self.request.upload_params(self.session.upload_id))
            try:
                return await self.complete(partitions, results)
            finally:
                self._completion_settled.set()
        except Exception as exc:
            if self._cancelled.is_set():
                # Cleanup belongs to the cancellation path.
                raise
            self._failure_cause = exc
            return await asyncio.shield(self._abort_once())

    async def _watch_cancellation(self) -> CopyOutcome:
        await self._cancelled.wait()
        await self._initiation_settled.wait()

        # An outstanding CompleteMultipartUpload decides the outcome; the
        # upload is only aborted if it fails.
        if self.session.status is UploadStatus.COMPLETING:
            await self._completion_settled.wait()
        if self.session.status is UploadStatus.COMPLETED:
            return await self._pipeline

        nothing_to_abort = self.session.upload_id is None or self.session.is_terminal
        if self._abort_task is None and nothing_to_abort:
            err = CopyCancelled(details=self.request.upload_params(self.session.upload_id))
            self.logger.error("multipart copy cancelled", err, self.request_context)
            raise err

        try:
            return await asyncio.shield(self._abort_once())
        except CopyAborted as exc:
            err = CopyCancelled(details=exc.details)
            self.logger.error("multipart copy cancelled", err, self.request_context)
            raise err from exc

    def _abort_once(self) -> asyncio.Future:
        if self._abort_task is None:
            self._abort_task = asyncio.ensure_future(self.abort_upload())
            self._abandon(self._abort_task)
        return self._abort_task

    @staticmethod
    def _abandon(task: asyncio.Future) -> None:
        """Let ``task`` finish unobserved without unretrieved-exception noise."""

        def _consume(fut: asyncio.Future) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                logger.debug("Background copy task ended with %r", exc)

        task.add_done_callback(_consume)


async def copy_object_multipart(
    client: MultipartCopyBackend,
    request: CopyRequest,
    *,
    logger: CopyLogger | None = None,
    max_concurrent_parts: int = DEFAULT_MAX_CONCURRENT_PARTS,
    skip_single_part_completion: bool = False,
    request_context: str = "",
) -> CopyOutcome:
    """Copy ``request`` with a fresh MultipartCopy and return the outcome."""
    copier = MultipartCopy(
        client,
        request,
        logger=logger,
        max_concurrent_parts=max_concurrent_parts,
        skip_single_part_completion=skip_single_part_completion,
        request_context=request_context,
    )
    return await copier.done()
