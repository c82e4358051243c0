"""Tests for the unmount call."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

from logvolume.config import Config
from logvolume.driver import FlexVolumeDriver
from logvolume.models import DriverStatus

from .support.constants import CONTAINER_PATH
from .support.mounter import MockMounter


def assert_no_artifacts(config: Config, instance_key: str) -> None:
    """Assert that nothing named after the instance key is left."""
    for directory in (
        config.log_dir,
        config.cluster_config_dir,
        config.project_config_dir,
        config.position_dir,
        config.staging_cluster_dir,
        config.staging_project_dir,
    ):
        leftovers = [p for p in directory.iterdir() if instance_key in p.name]
        assert leftovers == [], f"left in {directory}"


def create_positions(config: Config) -> list[Path]:
    """Create the position files Fluentd would write for u1_v1."""
    positions = [
        config.position_dir / "custom_cluster_userformat_u1_v1.pos",
        config.position_dir / "custom_project_userformat_u1_v1.pos",
    ]
    for position in positions:
        position.write_text("/logs/app.log\t0000000000000010\t00000000001\n")
    return positions


def test_mount_unmount_symmetry(
    driver: FlexVolumeDriver,
    config: Config,
    mounter: MockMounter,
    options: dict[str, Any],
) -> None:
    options["format"] = "ltsv"
    assert driver.mount(CONTAINER_PATH, options).status == "Success"
    (mounter.mounts[CONTAINER_PATH] / "app.log").write_text("hello\n")
    positions = create_positions(config)

    response = driver.unmount(CONTAINER_PATH)

    assert json.loads(response.to_json()) == {
        "status": "Success",
        "message": "Success",
    }
    assert response.warnings == []
    assert mounter.mounts == {}
    for position in positions:
        assert not position.exists()
    assert_no_artifacts(config, "u1_v1")


def test_unmount_twice(
    driver: FlexVolumeDriver,
    config: Config,
    mounter: MockMounter,
    options: dict[str, Any],
) -> None:
    assert driver.mount(CONTAINER_PATH, options).status == "Success"
    assert driver.unmount(CONTAINER_PATH).status == DriverStatus.SUCCESS

    response = driver.unmount(CONTAINER_PATH)
    assert response.status == DriverStatus.SUCCESS
    assert response.warnings == []
    assert_no_artifacts(config, "u1_v1")


def test_unmount_leaves_other_volumes(
    driver: FlexVolumeDriver,
    config: Config,
    mounter: MockMounter,
    options: dict[str, Any],
) -> None:
    options["format"] = "ltsv"
    other_path = "/var/lib/kubelet/pods/u2/volumes/plugin/v1"
    other = dict(options, podUID="u2")
    assert driver.mount(CONTAINER_PATH, options).status == "Success"
    assert driver.mount(other_path, other).status == "Success"

    assert driver.unmount(CONTAINER_PATH).status == "Success"

    assert list(mounter.mounts) == [other_path]
    assert (config.log_dir / "u2_v1").is_dir()
    assert (config.cluster_config_dir / "u2_v1.conf").is_file()
    assert (config.project_config_dir / "u2_v1.conf").is_file()


def test_unbind_failure(
    driver: FlexVolumeDriver,
    config: Config,
    mounter: MockMounter,
    options: dict[str, Any],
) -> None:
    assert driver.mount(CONTAINER_PATH, options).status == "Success"
    mounter.fail_unbind = True

    response = driver.unmount(CONTAINER_PATH)

    assert response.status == DriverStatus.FAILURE
    assert "target is busy" in response.message
    # Nothing is removed while the container still sees the directory.
    assert (config.log_dir / "u1_v1").is_dir()


def test_path_without_pods(
    driver: FlexVolumeDriver, mounter: MockMounter
) -> None:
    mounter.mounts["/mnt/logs/v1"] = Path("/tmp")

    response = driver.unmount("/mnt/logs/v1")

    assert response.status == DriverStatus.SUCCESS
    assert mounter.mounts == {}
    assert len(response.warnings) == 1
    assert "'pods'" in response.warnings[0]


def test_cleanup_failure(
    driver: FlexVolumeDriver,
    config: Config,
    options: dict[str, Any],
) -> None:
    options["format"] = "ltsv"
    assert driver.mount(CONTAINER_PATH, options).status == "Success"
    positions = create_positions(config)

    with patch(
        "logvolume.driver.shutil.rmtree",
        side_effect=PermissionError("Operation not permitted"),
    ):
        response = driver.unmount(CONTAINER_PATH)

    assert response.status == DriverStatus.SUCCESS
    assert len(response.warnings) == 1
    assert "Operation not permitted" in response.warnings[0]
    assert str(config.log_dir / "u1_v1") in response.warnings[0]

    # Everything else was still cleaned up.
    assert not (config.cluster_config_dir / "u1_v1.conf").exists()
    assert not (config.project_config_dir / "u1_v1.conf").exists()
    for position in positions:
        assert not position.exists()


def test_options_disagree_with_path(
    driver: FlexVolumeDriver,
    config: Config,
    mounter: MockMounter,
    options: dict[str, Any],
) -> None:
    options["format"] = "ltsv"
    options["volumeName"] = "app-logs"
    options["podUID"] = "u9"
    assert driver.mount(CONTAINER_PATH, options).status == "Success"

    # The container path names the artifacts, not the options.
    assert mounter.mounts[CONTAINER_PATH].is_relative_to(
        config.log_dir / "u1_v1"
    )
    assert (config.cluster_config_dir / "u1_v1.conf").is_file()
    assert (config.project_config_dir / "u1_v1.conf").is_file()

    response = driver.unmount(CONTAINER_PATH)

    assert response.status == DriverStatus.SUCCESS
    assert response.warnings == []
    for name in ("u1_v1", "app-logs", "u9"):
        assert_no_artifacts(config, name)
