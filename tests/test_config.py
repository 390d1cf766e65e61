"""Tests for s3copy configuration loading."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from s3copy.config import S3CopyConfig, load_config


def _write_yaml(data) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        f.flush()
    return Path(f.name)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_example_config(self):
        """Loading the example config file populates all fields."""
        config = load_config(Path(__file__).resolve().parent.parent / "s3copy.example.yaml")
        assert config.s3.region == "us-east-1"
        assert config.s3.endpoint_url == ""
        assert config.s3.use_path_style is False
        assert config.copy_settings.part_size == 50_000_000
        assert config.copy_settings.max_concurrent_parts == 4
        assert config.copy_settings.skip_single_part_completion is False
        assert config.logging.level == "INFO"
        assert config.logging.format == "text"
        assert config.observability.metrics is False

    def test_load_minimal_config(self):
        """Loading an empty YAML uses defaults for all fields."""
        config = load_config(_write_yaml({}))
        assert config.s3.region == "us-east-1"
        assert config.copy_settings.max_concurrent_parts == 4

    def test_nested_credentials(self):
        """s3.credentials.* is flattened onto S3Config."""
        config = load_config(
            _write_yaml(
                {
                    "s3": {
                        "endpoint_url": "http://localhost:9000",
                        "use_path_style": True,
                        "credentials": {"access_key_id": "AK", "secret_access_key": "SK"},
                    }
                }
            )
        )
        assert config.s3.endpoint_url == "http://localhost:9000"
        assert config.s3.use_path_style is True
        assert config.s3.access_key_id == "AK"
        assert config.s3.secret_access_key == "SK"

    def test_copy_section(self):
        config = load_config(
            _write_yaml(
                {
                    "copy": {
                        "part_size": 100_000_000,
                        "max_concurrent_parts": 16,
                        "skip_single_part_completion": True,
                    }
                }
            )
        )
        assert config.copy_settings.part_size == 100_000_000
        assert config.copy_settings.max_concurrent_parts == 16
        assert config.copy_settings.skip_single_part_completion is True

    def test_part_size_below_minimum_rejected(self):
        with pytest.raises(ValidationError):
            load_config(_write_yaml({"copy": {"part_size": 1024}}))

    def test_zero_concurrency_rejected(self):
        with pytest.raises(ValidationError):
            load_config(_write_yaml({"copy": {"max_concurrent_parts": 0}}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_defaults_instance(self):
        """S3CopyConfig() with no arguments uses sane defaults."""
        config = S3CopyConfig()
        assert config.s3.region == "us-east-1"
        assert config.copy_settings.part_size == 50_000_000
        assert config.logging.level == "INFO"
        assert config.observability.metrics is False
