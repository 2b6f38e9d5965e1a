"""Shared test fixtures."""

from pathlib import Path

import pytest
from bookstage.config import (
    CatalogConfig,
    Config,
    ErrorsConfig,
    GenerateConfig,
    OutputConfig,
    ServeConfig,
    ServerConfig,
)

from tests.sources import RecordingSource


@pytest.fixture
def source() -> RecordingSource:
    """Recording source over the default catalog."""
    return RecordingSource()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Create a test configuration with tmp_path directories."""
    return Config(
        server=ServerConfig(),
        output=OutputConfig(out_dir=tmp_path / "site"),
        generate=GenerateConfig(concurrency=4),
        serve=ServeConfig(),
        errors=ErrorsConfig(),
        catalog=CatalogConfig(),
    )
