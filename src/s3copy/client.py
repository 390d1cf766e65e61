"""S3 client construction and the backend interface the copy engine uses.

The engine talks to anything shaped like an aiobotocore S3 client: five
coroutine methods taking botocore keyword arguments.  ``S3ClientFactory``
builds such a client from ``S3Config``.

Credentials are resolved via the standard AWS credential chain (env vars,
~/.aws/credentials, IAM role, etc.) unless explicit keys are configured.
"""

import logging
from typing import Any, Protocol

from aiobotocore.session import AioSession
from botocore.config import Config as BotoConfig
from botocore.handlers import handle_copy_source_param

from s3copy.config import S3Config

logger = logging.getLogger(__name__)


class MultipartCopyBackend(Protocol):
    """The S3 operations a multipart copy consumes.

    Each returns the backend's response mapping or raises the backend's
    error (``botocore.exceptions.ClientError`` for aiobotocore clients).
    """

    async def create_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:
        """Start an upload. Returns a mapping with ``UploadId``."""
        ...

    async def upload_part_copy(self, **kwargs: Any) -> dict[str, Any]:
        """Copy a byte range of the source into one part.

        Returns a mapping with ``CopyPartResult.ETag``.
        """
        ...

    async def list_parts(self, **kwargs: Any) -> dict[str, Any]:
        """List the parts stored for an upload. Returns ``Parts`` if any."""
        ...

    async def complete_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:
        """Assemble the listed parts into the destination object."""
        ...

    async def abort_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:
        """Discard an upload and its parts."""
        ...


class S3ClientFactory:
    """Creates aiobotocore S3 clients from an ``S3Config``.

    Usable as an async context manager that yields a client and closes it
    on exit::

        async with S3ClientFactory(config.s3) as client:
            ...

    Attributes:
        config: The S3 connection settings.
    """

    def __init__(self, config: S3Config) -> None:
        self.config = config
        self._session = AioSession()
        self._client_ctx = None
        self._client = None

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``AioSession.create_client``."""
        kwargs: dict[str, Any] = {"region_name": self.config.region}
        if self.config.endpoint_url:
            kwargs["endpoint_url"] = self.config.endpoint_url
        if self.config.use_path_style:
            kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})
        if self.config.access_key_id and self.config.secret_access_key:
            kwargs["aws_access_key_id"] = self.config.access_key_id
            kwargs["aws_secret_access_key"] = self.config.secret_access_key
        return kwargs

    async def open(self) -> Any:
        """Create the client and return it."""
        self._client_ctx = self._session.create_client("s3", **self.client_kwargs())
        self._client = await self._client_ctx.__aenter__()
        # The copy engine sends CopySource already percent-encoded; botocore
        # would quote it a second time.
        self._client.meta.events.unregister(
            "before-parameter-build.s3.UploadPartCopy", handle_copy_source_param
        )
        logger.info(
            "S3 client created: region=%s endpoint=%s",
            self.config.region,
            self.config.endpoint_url or "<default>",
        )
        return self._client

    async def close(self) -> None:
        """Close the client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def __aenter__(self) -> Any:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
