"""Stable identities for log volumes.

A mount request is reduced to two keys.  The directory identity names the
host log directory and is built from the workload's cluster, project, and
container attributes.  The instance key (pod UID and volume name) names the
per-mount artifacts: Fluentd sources and position files.  The instance key
must be recoverable from the container path alone, since that is all the
kubelet gives us on unmount.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath

from .constants import IDENTITY_DELIMITER, POD_MARKER
from .exceptions import ContainerPathError, RequestValidationError
from .models import MountRequest

__all__ = [
    "VolumeIdentity",
    "derive_identity",
    "escape_component",
    "make_instance_key",
    "parse_container_path",
]

_RESERVED_CHARACTERS = (IDENTITY_DELIMITER, "/")
_REPLACEMENT = "-"
_INVALID_KEY_PARTS = ("", ".", "..")


@dataclass(frozen=True)
class VolumeIdentity:
    """Keys derived from a single mount request."""

    directory: str
    """Name of the host log directory for this container."""

    instance_key: str
    """Name shared by the Fluentd artifacts of this pod's volume."""

    @property
    def components(self) -> list[str]:
        """Escaped components of the directory identity, in order."""
        return self.directory.split(IDENTITY_DELIMITER)


def escape_component(value: str) -> str:
    """Make a value safe to use as one component of a directory identity.

    Project and cluster names are free-form display names and may contain
    the delimiter or a path separator.  Both are replaced so that splitting
    the identity on the delimiter yields the original component count.
    """
    for char in _RESERVED_CHARACTERS:
        value = value.replace(char, _REPLACEMENT)
    return value


def make_instance_key(pod_uid: str, volume_name: str) -> str:
    """Join a pod UID and volume name into an instance key.

    Raises
    ------
    RequestValidationError
        Raised if either part could not be a single path component.
    """
    for part in (pod_uid, volume_name):
        if part in _INVALID_KEY_PARTS or "/" in part:
            msg = f"Invalid pod UID or volume name for instance key: {part!r}"
            raise RequestValidationError(msg)
    return f"{pod_uid}{IDENTITY_DELIMITER}{volume_name}"


def derive_identity(
    request: MountRequest, pod_uid: str, volume_name: str | None = None
) -> VolumeIdentity:
    """Build the directory identity and instance key for a request.

    Parameters
    ----------
    request
        Validated mount options.
    pod_uid
        UID of the pod, preferably from the container path.
    volume_name
        Name of the volume, preferably from the container path.  Defaults
        to the volume name in the options.

    Returns
    -------
    VolumeIdentity
        Keys for the request.  The same inputs always give the same keys.

    Raises
    ------
    RequestValidationError
        Raised if the pod UID or volume name is not usable in a path.
    """
    components = [
        request.cluster_id,
        request.cluster_name,
        request.namespace,
        request.project_id,
        request.project_name,
        request.workload_name,
    ]
    if request.pod_name:
        components.append(request.pod_name)
    components.append(request.container_name)
    escaped = [escape_component(c) for c in components]
    return VolumeIdentity(
        directory=IDENTITY_DELIMITER.join(escaped),
        instance_key=make_instance_key(
            pod_uid, volume_name or request.volume_name
        ),
    )


def parse_container_path(container_path: str) -> tuple[str, str]:
    """Recover the pod UID and volume name from a kubelet container path.

    The kubelet mounts FlexVolumes at
    ``<root>/pods/<uid>/volumes/<vendor~driver>/<volume>``.

    Parameters
    ----------
    container_path
        Mount point given to ``mount`` or ``unmount``.

    Returns
    -------
    tuple of str
        Pod UID and volume name.

    Raises
    ------
    ContainerPathError
        Raised if the path has no ``pods`` segment followed by a UID and at
        least one further segment, or if either is ``..``.
    """
    parts = [p for p in PurePosixPath(container_path).parts if p != "/"]
    try:
        marker = parts.index(POD_MARKER)
    except ValueError:
        raise ContainerPathError(
            f"Container path {container_path} has no '{POD_MARKER}' segment"
        ) from None
    if marker + 2 >= len(parts):
        raise ContainerPathError(
            f"Container path {container_path} has no pod UID and volume"
            f" after '{POD_MARKER}'"
        )
    pod_uid, volume_name = parts[marker + 1], parts[-1]
    if ".." in (pod_uid, volume_name):
        raise ContainerPathError(
            f"Container path {container_path} has a relative pod UID or"
            " volume"
        )
    return pod_uid, volume_name
