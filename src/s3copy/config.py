"""Configuration loading and Pydantic models for s3copy."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from s3copy.limiter import DEFAULT_MAX_CONCURRENT_PARTS
from s3copy.partitions import DEFAULT_PART_SIZE, MIN_PART_SIZE


class S3Config(BaseModel):
    """Connection settings for the S3-compatible backend."""

    region: str = "us-east-1"
    endpoint_url: str = ""
    use_path_style: bool = False
    access_key_id: str = ""
    secret_access_key: str = ""


class CopyConfig(BaseModel):
    """Multipart copy tuning."""

    part_size: int = Field(default=DEFAULT_PART_SIZE, ge=MIN_PART_SIZE)
    max_concurrent_parts: int = Field(default=DEFAULT_MAX_CONCURRENT_PARTS, ge=1)
    skip_single_part_completion: bool = False


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "INFO"
    format: str = "text"


class ObservabilityConfig(BaseModel):
    """Metrics toggle."""

    metrics: bool = False


class S3CopyConfig(BaseModel):
    """Top-level s3copy configuration."""

    s3: S3Config = Field(default_factory=S3Config)
    copy_settings: CopyConfig = Field(default_factory=CopyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _parse_s3(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the s3 section from YAML data.

    Handles the nested credentials block: s3.credentials.access_key_id
    -> access_key_id, etc.
    """
    if data is None:
        return {}
    result: dict[str, Any] = {
        "region": data.get("region", "us-east-1"),
        "endpoint_url": data.get("endpoint_url", ""),
        "use_path_style": data.get("use_path_style", False),
    }
    credentials = data.get("credentials")
    if isinstance(credentials, dict):
        result["access_key_id"] = credentials.get("access_key_id", "")
        result["secret_access_key"] = credentials.get("secret_access_key", "")
    return result


def _parse_copy(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the copy section from YAML data."""
    if data is None:
        return {}
    return {
        "part_size": data.get("part_size", DEFAULT_PART_SIZE),
        "max_concurrent_parts": data.get("max_concurrent_parts", DEFAULT_MAX_CONCURRENT_PARTS),
        "skip_single_part_completion": data.get("skip_single_part_completion", False),
    }


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the observability section from YAML data."""
    if data is None:
        return {}
    return {"metrics": data.get("metrics", False)}


def load_config(path: Path) -> S3CopyConfig:
    """Load an S3CopyConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated S3CopyConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return S3CopyConfig(
        s3=S3Config(**_parse_s3(raw.get("s3"))),
        copy_settings=CopyConfig(**_parse_copy(raw.get("copy"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
    )
