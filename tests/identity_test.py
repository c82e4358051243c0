"""Tests for identity derivation and container path parsing."""

import pytest

from logvolume.exceptions import ContainerPathError, RequestValidationError
from logvolume.identity import (
    derive_identity,
    escape_component,
    make_instance_key,
    parse_container_path,
)
from logvolume.models import MountRequest

from .support.constants import CONTAINER_PATH


def test_derive_identity(request_model: MountRequest) -> None:
    identity = derive_identity(request_model, "u1")
    assert identity.directory == "c1_c1_ns1_p1_p1_w1_ctr1"
    assert identity.instance_key == "u1_v1"

    # Derivation is deterministic.
    assert derive_identity(request_model, "u1") == identity


def test_pod_name(request_model: MountRequest) -> None:
    request = request_model.model_copy(update={"pod_name": "w1-abcde"})
    identity = derive_identity(request, "u1")
    assert identity.directory == "c1_c1_ns1_p1_p1_w1_w1-abcde_ctr1"
    assert len(identity.components) == 8


def test_distinct_instance_keys(request_model: MountRequest) -> None:
    other_volume = request_model.model_copy(update={"volume_name": "v2"})
    keys = {
        derive_identity(request_model, "u1").instance_key,
        derive_identity(request_model, "u2").instance_key,
        derive_identity(other_volume, "u1").instance_key,
    }
    assert len(keys) == 3


def test_escape_component() -> None:
    assert escape_component("plain") == "plain"
    assert escape_component("my_project") == "my-project"
    assert escape_component("team/a_b") == "team-a-b"


def test_escaped_project_name(request_model: MountRequest) -> None:
    plain = derive_identity(request_model, "u1")
    request = request_model.model_copy(
        update={"project_name": "my_odd/project", "cluster_name": "x_y"}
    )
    identity = derive_identity(request, "u1")
    assert len(identity.components) == len(plain.components)
    assert identity.components[4] == "my-odd-project"
    assert identity.components[1] == "x-y"
    assert "/" not in identity.directory


def test_make_instance_key() -> None:
    assert make_instance_key("u1", "v1") == "u1_v1"


@pytest.mark.parametrize(
    ("pod_uid", "volume_name"),
    [("u1", "../../escaped"), ("u1", "a/b"), ("..", "v1"), ("u1", ".")],
)
def test_make_unsafe_instance_key(pod_uid: str, volume_name: str) -> None:
    with pytest.raises(RequestValidationError):
        make_instance_key(pod_uid, volume_name)


def test_volume_name_override(request_model: MountRequest) -> None:
    identity = derive_identity(request_model, "u1", "app-logs")
    assert identity.instance_key == "u1_app-logs"


def test_parse_container_path() -> None:
    assert parse_container_path(CONTAINER_PATH) == ("u1", "v1")
    path = (
        "/var/lib/kubelet/pods/0f1e2d3c-aaaa-bbbb-cccc-123456789abc"
        "/volumes/cattle.io~log-aggregator/app-logs/"
    )
    assert parse_container_path(path) == (
        "0f1e2d3c-aaaa-bbbb-cccc-123456789abc",
        "app-logs",
    )


@pytest.mark.parametrize(
    "path",
    [
        "/mnt/somewhere/v1",
        "/var/lib/kubelet/pods",
        "/var/lib/kubelet/pods/u1",
        "/var/lib/kubelet/pods/u1/volumes/plugin/..",
        "/var/lib/kubelet/pods/../volumes/plugin/v1",
        "",
    ],
)
def test_parse_bad_container_path(path: str) -> None:
    with pytest.raises(ContainerPathError):
        parse_container_path(path)
