"""Bind mounts through the system ``mount`` and ``umount`` commands."""

import re
import subprocess
from pathlib import Path

from structlog.stdlib import BoundLogger

from ..exceptions import BindError, NotMountedError, UnbindError

__all__ = ["BindMounter"]

_NOT_MOUNTED = re.compile(
    r"not mounted|no such file or directory|not found", re.IGNORECASE
)
"""``umount`` output meaning there was nothing to unmount."""


class BindMounter:
    """Make host directories visible inside container mount points.

    Both operations need root and may block for as long as the kernel
    does; there is no timeout here.
    """

    def __init__(
        self,
        logger: BoundLogger,
        *,
        mount_command: str = "mount",
        umount_command: str = "umount",
    ) -> None:
        self._logger = logger
        self._mount = mount_command
        self._umount = umount_command

    def bind(self, host_dir: Path, container_path: str) -> None:
        """Recursively bind-mount ``host_dir`` at ``container_path``.

        Raises
        ------
        BindError
            Raised if the mount command fails, with its combined output.
        """
        args = [self._mount, "--rbind", str(host_dir), container_path]
        self._logger.debug("Binding", command=args)
        try:
            proc = self._run(args)
        except OSError as e:
            msg = f"Cannot run {self._mount}: {e!s}"
            raise BindError(msg) from e
        if proc.returncode != 0:
            msg = (
                f"run bind mount command failed, hostPath: {host_dir!s},"
                f" containerPath: {container_path}, exit status:"
                f" {proc.returncode}, output: {proc.stdout.strip()}"
            )
            raise BindError(msg, output=proc.stdout)

    def unbind(self, container_path: str) -> None:
        """Unmount ``container_path``.

        Raises
        ------
        NotMountedError
            Raised if the path was not mounted.
        UnbindError
            Raised if the unmount command fails for any other reason.
        """
        args = [self._umount, container_path]
        self._logger.debug("Unbinding", command=args)
        try:
            proc = self._run(args)
        except OSError as e:
            msg = f"Cannot run {self._umount}: {e!s}"
            raise UnbindError(msg) from e
        if proc.returncode == 0:
            return
        output = proc.stdout.strip()
        msg = f"unmount container path {container_path} failed, {output}"
        if _NOT_MOUNTED.search(output):
            raise NotMountedError(msg, output=proc.stdout)
        raise UnbindError(msg, output=proc.stdout)

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            args,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
