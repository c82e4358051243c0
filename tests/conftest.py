"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest

from logvolume.config import Config
from logvolume.driver import FlexVolumeDriver
from logvolume.models import MountRequest

from .support.config import rooted_config
from .support.constants import DATA_DIR
from .support.mounter import MockMounter


@pytest.fixture
def fake_root(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def config(fake_root: Path) -> Config:
    return rooted_config(fake_root)


@pytest.fixture
def mounter() -> MockMounter:
    return MockMounter()


@pytest.fixture
def driver(config: Config, mounter: MockMounter) -> FlexVolumeDriver:
    return FlexVolumeDriver(config, mounter=mounter)


@pytest.fixture
def options() -> dict[str, Any]:
    """Mount options as the kubelet would pass them, with a JSON format."""
    return json.loads((DATA_DIR / "request.json").read_text())


@pytest.fixture
def request_model(options: dict[str, Any]) -> MountRequest:
    return MountRequest.model_validate(options)
