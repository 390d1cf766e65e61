"""CLI entry point for s3copy."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from s3copy import metrics
from s3copy.client import S3ClientFactory
from s3copy.config import S3CopyConfig, load_config
from s3copy.copier import MultipartCopy
from s3copy.errors import CopyError
from s3copy.logging_config import configure_logging
from s3copy.models import CopyOutcome, CopyRequest

logger = logging.getLogger("s3copy")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="s3copy",
        description="s3copy - server-side multipart copy of a large S3 object",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )
    parser.add_argument("--source-bucket", required=True, help="Bucket holding the source object")
    parser.add_argument("--source-key", required=True, help="Key of the source object")
    parser.add_argument("--destination-bucket", required=True, help="Bucket to copy into")
    parser.add_argument("--destination-key", required=True, help="Key of the copied object")
    parser.add_argument(
        "--object-size",
        type=int,
        default=None,
        help="Source size in bytes (default: looked up with HeadObject)",
    )
    parser.add_argument(
        "--part-size",
        type=int,
        default=None,
        help="Bytes per copied part (overrides config)",
    )
    parser.add_argument(
        "--max-concurrent-parts",
        type=int,
        default=None,
        help="Part copies allowed in flight at once (overrides config)",
    )
    parser.add_argument("--acl", type=str, default=None, help="Canned ACL (default: private)")
    parser.add_argument("--storage-class", type=str, default=None, help="Destination storage class")
    parser.add_argument("--content-type", type=str, default=None, help="Destination Content-Type")
    parser.add_argument(
        "--request-context",
        type=str,
        default="",
        help="Correlation string attached to every log line",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace, config: S3CopyConfig, object_size: int) -> CopyRequest:
    """Assemble the CopyRequest from CLI arguments and config defaults."""
    fields = {
        "source_bucket": args.source_bucket,
        "source_key": args.source_key,
        "destination_bucket": args.destination_bucket,
        "destination_key": args.destination_key,
        "object_size": object_size,
        "part_size": args.part_size or config.copy_settings.part_size,
        "storage_class": args.storage_class,
        "content_type": args.content_type,
    }
    if args.acl:
        fields["acl"] = args.acl
    return CopyRequest(**fields)


async def run_copy(args: argparse.Namespace, config: S3CopyConfig) -> CopyOutcome:
    """Open a client, run one copy and return its outcome.

    SIGINT cancels the copy instead of killing the process, so the upload
    is aborted and cleaned up before exit.
    """
    async with S3ClientFactory(config.s3) as client:
        object_size = args.object_size
        if object_size is None:
            head = await client.head_object(Bucket=args.source_bucket, Key=args.source_key)
            object_size = int(head["ContentLength"])

        copier = MultipartCopy(
            client,
            build_request(args, config, object_size),
            max_concurrent_parts=args.max_concurrent_parts
            or config.copy_settings.max_concurrent_parts,
            skip_single_part_completion=config.copy_settings.skip_single_part_completion,
            request_context=args.request_context,
        )
        copier.observable_processed_bytes().subscribe(
            lambda copied: logger.info("Copied %d of %d bytes", copied, object_size)
        )

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, copier.abort)
        try:
            return await copier.done()
        finally:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the s3copy CLI.

    Loads configuration, applies CLI overrides, and runs the copy.  Exits
    with status 1 when the copy does not complete.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    config = S3CopyConfig()
    if args.config is not None:
        try:
            config = load_config(args.config)
        except FileNotFoundError:
            logger.error("Config file not found: %s", args.config)
            sys.exit(1)
        except Exception as exc:
            logger.error("Failed to load config: %s", exc)
            sys.exit(1)

    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format

    configure_logging(level=config.logging.level, fmt=config.logging.format)

    if config.observability.metrics:
        metrics.init_metrics()

    try:
        outcome = asyncio.run(run_copy(args, config))
    except ValidationError as exc:
        logger.error("Invalid copy parameters: %s", exc)
        sys.exit(1)
    except CopyError as exc:
        logger.error("Copy failed: %s (%s) details=%s", exc.message, exc.code, exc.details)
        sys.exit(1)
    except Exception as exc:
        logger.error("Copy failed: %s", exc)
        sys.exit(1)

    logger.info(
        "Copied s3://%s/%s to s3://%s/%s (etag=%s)",
        args.source_bucket,
        args.source_key,
        outcome.bucket,
        outcome.key,
        outcome.etag,
    )


if __name__ == "__main__":
    main()
