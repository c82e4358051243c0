"""Constants for the log volume driver.  Overrideable for testing."""

from pathlib import Path

__all__ = [
    "CLUSTER_POSITION_PREFIX",
    "CONFIG_FILE",
    "CONFIG_FILE_ENV_VAR",
    "CUSTOM_FORMAT_DIR",
    "ENV_PREFIX",
    "IDENTITY_DELIMITER",
    "LOG_FILE",
    "POD_MARKER",
    "PREDEFINED_FORMATS",
    "PROJECT_POSITION_PREFIX",
    "ROOT_LOGGER",
]

ENV_PREFIX = "LOGVOLUME_"
"""Prefix for environment variables governing driver behavior."""

CONFIG_FILE = Path("/etc/logvolume/config.yaml")
"""Default application configuration file."""

CONFIG_FILE_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
"""Name of environment variable overriding the configuration file."""

LOG_FILE = Path("/var/log/rancher-flexvolume.log")
"""Default driver log file.

Standard output is reserved for the JSON response read by the kubelet, so
logs go here instead.
"""

ROOT_LOGGER = "logvolume"
"""Root logger name."""

PREDEFINED_FORMATS = ["json", "apache2", "nginx", "rfc3164", "rfc5424"]
"""Log formats Fluentd parses natively, needing no generated config."""

CUSTOM_FORMAT_DIR = "custom"
"""Host directory segment used for every format not in the predefined set."""

IDENTITY_DELIMITER = "_"
"""Separator joining the components of a directory identity."""

POD_MARKER = "pods"
"""Kubelet path segment that precedes the pod UID in a container path."""

CLUSTER_POSITION_PREFIX = "custom_cluster_userformat_"
PROJECT_POSITION_PREFIX = "custom_project_userformat_"
