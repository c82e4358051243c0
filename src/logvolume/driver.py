"""FlexVolume driver for per-workload log directories.

The driver keeps no state of its own.  Every call recomputes identities and
paths from its arguments, and the host directory tree is the only record of
what is mounted.
"""

import json
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from structlog.stdlib import BoundLogger, get_logger

from .config import Config
from .constants import ROOT_LOGGER
from .exceptions import (
    CleanupError,
    ConfigSyncError,
    ContainerPathError,
    DirectoryError,
    LogVolumeError,
    NotMountedError,
    RequestValidationError,
    UnbindError,
)
from .identity import derive_identity, make_instance_key, parse_container_path
from .models import DriverResponse, InitResponse, MountRequest
from .paths import PathResolver, VolumePaths
from .storage.mount import BindMounter
from .sync import FileSynchronizer
from .templates import ConfigRenderer, TemplateKind

__all__ = ["FlexVolumeDriver"]


class FlexVolumeDriver:
    """Implement the ``init``, ``mount``, and ``unmount`` calls.

    No method raises for an expected failure; each returns a response with
    ``Failure`` status instead.  Problems that do not affect the outcome of
    the call are logged and listed in the response's ``warnings``.

    Parameters
    ----------
    config
        Driver configuration.
    mounter
        Bind mount implementation, replaced in tests.
    logger
        Logger to use.  If not given, the root driver logger is used.
    """

    def __init__(
        self,
        config: Config,
        mounter: BindMounter | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or get_logger(ROOT_LOGGER)
        self._mounter = mounter or BindMounter(self._logger)
        self._resolver = PathResolver(config)
        self._renderer = ConfigRenderer()
        self._synchronizer = FileSynchronizer(self._logger)

    def init(self) -> InitResponse:
        """Create the driver's directories and report capabilities."""
        self._logger.info("Initializing driver")
        try:
            self._ensure_directories()
        except DirectoryError as e:
            self._logger.error("Initialization failed", error=str(e))
            return InitResponse.failure(e)
        return InitResponse.success()

    def mount(
        self, container_path: str, options: str | Mapping[str, Any]
    ) -> DriverResponse:
        """Bind a host log directory into a container.

        Parameters
        ----------
        container_path
            Mount point chosen by the kubelet.
        options
            Mount options, either as the JSON text passed on the command
            line or already decoded.

        Returns
        -------
        DriverResponse
            ``Success`` once the bind mount exists.  Failure to write
            Fluentd sources for a custom format does not prevent the mount.
        """
        logger = self._logger.bind(container_path=container_path)
        logger.debug("Mount requested", options=options)
        warnings: list[str] = []
        try:
            request = self._parse_request(options)
            pod_uid, volume_name = self._instance_parts(
                request, container_path
            )
            identity = derive_identity(request, pod_uid, volume_name)
            self._ensure_directories()
            paths = self._resolver.resolve(identity, request.format)
            logger = logger.bind(
                instance_key=identity.instance_key,
                host_dir=str(paths.host_dir),
            )
            if paths.is_custom:
                try:
                    self._write_sources(request, paths)
                except ConfigSyncError as e:
                    logger.warning("Fluentd sources not written", error=str(e))
                    warnings.append(str(e))
            self._make_host_dir(paths.host_dir)
            self._mounter.bind(paths.host_dir, container_path)
        except LogVolumeError as e:
            logger.error("Mount failed", error=str(e))
            return DriverResponse.failure(e, warnings)
        logger.info("Mounted log volume")
        return DriverResponse.success(warnings)

    def unmount(self, container_path: str) -> DriverResponse:
        """Unbind a container path and remove everything the mount created.

        Parameters
        ----------
        container_path
            Mount point chosen by the kubelet.

        Returns
        -------
        DriverResponse
            ``Success`` if the path is no longer mounted, even if some
            artifacts could not be removed.
        """
        logger = self._logger.bind(container_path=container_path)
        logger.debug("Unmount requested")
        try:
            self._mounter.unbind(container_path)
        except NotMountedError as e:
            logger.info("Path was not mounted", output=e.output.strip())
        except UnbindError as e:
            logger.error("Unmount failed", error=str(e))
            return DriverResponse.failure(e)
        warnings = self._clean_up(container_path)
        logger.info("Unmounted log volume", warnings=warnings)
        return DriverResponse.success(warnings)

    def _parse_request(self, options: str | Mapping[str, Any]) -> MountRequest:
        if isinstance(options, str):
            try:
                options = json.loads(options)
            except json.JSONDecodeError as e:
                msg = f"Mount options are not valid JSON: {e!s}"
                raise RequestValidationError(msg) from e
        if not isinstance(options, Mapping):
            raise RequestValidationError("Mount options must be a JSON object")
        try:
            return MountRequest.model_validate(dict(options))
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            msg = f"Invalid mount options: {'; '.join(problems)}"
            raise RequestValidationError(msg) from e

    def _instance_parts(
        self, request: MountRequest, container_path: str
    ) -> tuple[str, str]:
        # Unmount only sees the container path, so it wins over the options
        # whenever it can be parsed.
        try:
            pod_uid, volume_name = parse_container_path(container_path)
        except ContainerPathError as e:
            if not request.pod_uid:
                msg = f"Pod UID not in mount options and {e!s}"
                raise RequestValidationError(msg) from e
            return request.pod_uid, request.volume_name
        if (
            request.pod_uid not in (None, pod_uid)
            or request.volume_name != volume_name
        ):
            self._logger.warning(
                "Mount options disagree with container path",
                container_path=container_path,
                pod_uid=request.pod_uid,
                volume_name=request.volume_name,
            )
        return pod_uid, volume_name

    def _ensure_directories(self) -> None:
        for directory in self._config.directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                msg = f"create dir {directory!s} failed, {e!s}"
                raise DirectoryError(msg) from e

    def _make_host_dir(self, host_dir: Path) -> None:
        try:
            host_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"create hostPath {host_dir!s} failed, {e!s}"
            raise DirectoryError(msg) from e

    def _write_sources(
        self, request: MountRequest, paths: VolumePaths
    ) -> None:
        common = {
            "path": f"{paths.host_dir!s}/*.*",
            "format": request.format,
        }
        cluster = self._renderer.render(
            TemplateKind.CLUSTER,
            {**common, "position_file": str(paths.cluster_position)},
        )
        project = self._renderer.render(
            TemplateKind.PROJECT,
            {
                **common,
                "position_file": str(paths.project_position),
                "project": f"{request.cluster_id}:{request.project_id}",
            },
        )
        self._synchronizer.sync(
            cluster, paths.cluster_config, paths.cluster_staging
        )
        self._synchronizer.sync(
            project, paths.project_config, paths.project_staging
        )

    def _clean_up(self, container_path: str) -> list[str]:
        # Nothing here may fail the unmount.  A half-cleaned host must not
        # block a later mount or unmount of the same volume.
        try:
            pod_uid, volume_name = parse_container_path(container_path)
            instance_key = make_instance_key(pod_uid, volume_name)
        except (ContainerPathError, RequestValidationError) as e:
            self._logger.error("Cannot clean up after unmount", error=str(e))
            return [str(e)]
        paths = self._resolver.resolve_for_unmount(instance_key)
        warnings = []
        for path in (
            paths.cluster_config,
            paths.project_config,
            paths.host_root,
            paths.cluster_position,
            paths.project_position,
        ):
            try:
                self._remove(path)
            except CleanupError as e:
                self._logger.warning("Cleanup incomplete", error=str(e))
                warnings.append(str(e))
        return warnings

    def _remove(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except FileNotFoundError:
            return
        except OSError as e:
            raise CleanupError(f"remove {path!s} failed, {e!s}") from e
        self._logger.debug(f"Removed {path!s}")
