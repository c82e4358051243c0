"""Write generated configuration only when it changes.

Fluentd watches its configuration directory.  Rewriting a source with
identical content can still make it reload the source and reset its read
position, so new content is staged and compared with the live file first.
"""

import os
import tempfile
from enum import StrEnum
from pathlib import Path

from structlog.stdlib import BoundLogger

from .exceptions import ConfigSyncError

__all__ = ["FileSynchronizer", "SyncResult"]


class SyncResult(StrEnum):
    """Outcome of synchronizing one file."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"


class FileSynchronizer:
    """Stage, compare, and atomically replace configuration files."""

    def __init__(self, logger: BoundLogger) -> None:
        self._logger = logger

    def sync(
        self, content: str, destination: Path, staging: Path
    ) -> SyncResult:
        """Make ``destination`` contain ``content``.

        Parameters
        ----------
        content
            Freshly rendered file contents.
        destination
            Live file read by Fluentd.
        staging
            Scratch file used for the comparison.  It is removed before
            returning, whatever the outcome.

        Returns
        -------
        SyncResult
            Whether the destination was rewritten.

        Raises
        ------
        ConfigSyncError
            Raised on any I/O failure.  The destination is either untouched
            or fully replaced, never partially written.
        """
        try:
            staging.parent.mkdir(parents=True, exist_ok=True)
            staging.write_text(content, encoding="utf-8")
            if self._is_current(staging, destination):
                self._logger.debug(f"{destination!s} is unchanged")
                return SyncResult.UNCHANGED
            self._replace(staging.read_bytes(), destination)
        except OSError as e:
            msg = f"Cannot write {destination!s}: {e!s}"
            raise ConfigSyncError(msg) from e
        finally:
            self._discard(staging)
        self._logger.info(f"Wrote {destination!s}")
        return SyncResult.WRITTEN

    def _is_current(self, staging: Path, destination: Path) -> bool:
        try:
            current = destination.read_bytes()
        except FileNotFoundError:
            return False
        return current == staging.read_bytes()

    def _replace(self, data: bytes, destination: Path) -> None:
        # The temporary file lives beside the destination so the rename
        # stays on one filesystem.  Its name does not end in .conf, so
        # Fluentd never picks it up.
        fd, tmpname = tempfile.mkstemp(
            prefix=f".{destination.name}.",
            suffix=".tmp",
            dir=destination.parent,
        )
        tmpfile = Path(tmpname)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            tmpfile.chmod(0o644)
            tmpfile.replace(destination)
        except BaseException:
            tmpfile.unlink(missing_ok=True)
            raise

    def _discard(self, staging: Path) -> None:
        try:
            staging.unlink(missing_ok=True)
        except OSError as e:
            self._logger.warning(f"Cannot remove {staging!s}: {e!s}")
