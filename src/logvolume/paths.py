"""Map volume identities to host paths.

Nothing here touches the filesystem.  The host tree is the only record of
what has been mounted, so every path must be a pure function of the
identity, the format, and the configuration.
"""

from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .constants import (
    CLUSTER_POSITION_PREFIX,
    CUSTOM_FORMAT_DIR,
    PROJECT_POSITION_PREFIX,
)
from .identity import VolumeIdentity

__all__ = ["ArtifactPaths", "PathResolver", "VolumePaths"]


@dataclass(frozen=True)
class ArtifactPaths:
    """Per-instance files and directories, known from the instance key."""

    host_root: Path
    """Directory holding every log directory for this pod's volume."""

    cluster_config: Path
    project_config: Path
    cluster_position: Path
    project_position: Path
    cluster_staging: Path
    project_staging: Path


@dataclass(frozen=True)
class VolumePaths(ArtifactPaths):
    """Every path belonging to one mount."""

    host_dir: Path
    """Log directory bind-mounted into the container."""

    is_custom: bool
    """Whether the format needs generated Fluentd sources."""


class PathResolver:
    """Resolve identities into paths under the configured directories."""

    def __init__(self, config: Config) -> None:
        self._config = config

    def is_predefined(self, log_format: str) -> bool:
        return log_format in self._config.predefined_formats

    def resolve(
        self, identity: VolumeIdentity, log_format: str
    ) -> VolumePaths:
        """Return all paths for a mount of the given format."""
        artifacts = self.resolve_for_unmount(identity.instance_key)
        if self.is_predefined(log_format):
            format_dir = log_format
        else:
            format_dir = CUSTOM_FORMAT_DIR
        return VolumePaths(
            host_root=artifacts.host_root,
            cluster_config=artifacts.cluster_config,
            project_config=artifacts.project_config,
            cluster_position=artifacts.cluster_position,
            project_position=artifacts.project_position,
            cluster_staging=artifacts.cluster_staging,
            project_staging=artifacts.project_staging,
            host_dir=artifacts.host_root / format_dir / identity.directory,
            is_custom=not self.is_predefined(log_format),
        )

    def resolve_for_unmount(self, instance_key: str) -> ArtifactPaths:
        """Return the paths that can be known from the instance key alone.

        On unmount only the container path is available, so neither the
        directory identity nor the format can be reconstructed.  Removing
        ``host_root`` covers whichever log directory was created.
        """
        config = self._config
        filename = f"{instance_key}.conf"
        return ArtifactPaths(
            host_root=config.log_dir / instance_key,
            cluster_config=config.cluster_config_dir / filename,
            project_config=config.project_config_dir / filename,
            cluster_position=(
                config.position_dir
                / f"{CLUSTER_POSITION_PREFIX}{instance_key}.pos"
            ),
            project_position=(
                config.position_dir
                / f"{PROJECT_POSITION_PREFIX}{instance_key}.pos"
            ),
            cluster_staging=config.staging_cluster_dir / filename,
            project_staging=config.staging_project_dir / filename,
        )
