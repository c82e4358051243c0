"""Exceptions for the log volume driver."""

__all__ = [
    "BindError",
    "CleanupError",
    "ConfigSyncError",
    "ContainerPathError",
    "DirectoryError",
    "LogVolumeError",
    "NotMountedError",
    "RequestValidationError",
    "TemplateRenderError",
    "UnbindError",
]


class LogVolumeError(Exception):
    """Base class for all expected driver failures."""


class RequestValidationError(LogVolumeError):
    """Mount options were missing, empty, or not valid JSON."""


class ConfigSyncError(LogVolumeError):
    """Generating or writing Fluentd configuration failed."""


class TemplateRenderError(ConfigSyncError):
    """A configuration template was malformed or missing a field."""


class DirectoryError(LogVolumeError):
    """A required directory could not be created."""


class BindError(LogVolumeError):
    """The bind mount command failed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class UnbindError(LogVolumeError):
    """The unmount command failed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class NotMountedError(UnbindError):
    """The path to unmount was not mounted in the first place."""


class CleanupError(LogVolumeError):
    """A configuration, position, or log artifact could not be removed."""


class ContainerPathError(LogVolumeError):
    """A container path does not have the shape the kubelet gives it."""
