"""Application configuration for the log volume driver."""

import contextlib
import logging
import sys
from pathlib import Path
from typing import Annotated, Self

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging

from .constants import ENV_PREFIX, LOG_FILE, PREDEFINED_FORMATS, ROOT_LOGGER

__all__ = ["Config"]


class EnvFirstSettings(BaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX, extra="forbid", validate_by_name=True
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and we want environment variables
        to take precedent.
        """
        return (env_settings, init_settings)


class Config(EnvFirstSettings):
    """Configuration for the log volume driver."""

    log_dir: Annotated[
        Path,
        Field(
            title="Base directory for workload logs",
            description=(
                "Per-volume host directories are created below this and"
                " bind-mounted into containers."
            ),
            validation_alias=AliasChoices(ENV_PREFIX + "LOG_DIR", "logDir"),
        ),
    ] = Path("/var/log/rancher-log-volumes")

    cluster_config_dir: Annotated[
        Path,
        Field(
            title="Directory for cluster-scope Fluentd sources",
            validation_alias=AliasChoices(
                ENV_PREFIX + "CLUSTER_CONFIG_DIR", "clusterConfigDir"
            ),
        ),
    ] = Path("/var/lib/fluentd/etc/config/customer/cluster")

    project_config_dir: Annotated[
        Path,
        Field(
            title="Directory for project-scope Fluentd sources",
            validation_alias=AliasChoices(
                ENV_PREFIX + "PROJECT_CONFIG_DIR", "projectConfigDir"
            ),
        ),
    ] = Path("/var/lib/fluentd/etc/config/customer/project")

    position_dir: Annotated[
        Path,
        Field(
            title="Directory for Fluentd position files",
            validation_alias=AliasChoices(
                ENV_PREFIX + "POSITION_DIR", "positionDir"
            ),
        ),
    ] = Path("/fluentd/etc/log")

    staging_dir: Annotated[
        Path,
        Field(
            title="Scratch directory for rendering configuration",
            description=(
                "Rendered configuration is staged under the cluster and"
                " project subdirectories of this and compared with the"
                " live files before anything is replaced."
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "STAGING_DIR", "stagingDir"
            ),
        ),
    ] = Path("/tmp/fluentd/etc/config/customer")

    predefined_formats: Annotated[
        list[str],
        Field(
            title="Formats Fluentd understands natively",
            description=(
                "Any format not in this list is treated as custom and gets"
                " generated source configuration."
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "PREDEFINED_FORMATS", "predefinedFormats"
            ),
        ),
    ] = list(PREDEFINED_FORMATS)

    log_file: Annotated[
        Path | None,
        Field(
            title="Driver log file",
            description=(
                "If not set, logs go to standard error. Standard output is"
                " never used, since the kubelet reads the response there."
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_FILE", "logFile"
            ),
        ),
    ] = LOG_FILE

    debug: Annotated[
        bool,
        Field(
            title="Show debug output and log style",
            description=(
                "If True, then log level will be set to debug and will"
                " use non-structured, human-readable output."
            ),
        ),
    ] = False

    log_profile: Annotated[
        Profile,
        Field(
            title="Logging profile",
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_PROFILE", "logProfile"
            ),
        ),
    ] = Profile.production

    log_level: Annotated[
        LogLevel,
        Field(
            title="Log level",
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_LEVEL", "logLevel"
            ),
        ),
    ] = LogLevel.INFO

    add_timestamp: Annotated[
        bool,
        Field(
            title="Add timestamp to log lines",
            validation_alias=AliasChoices(
                ENV_PREFIX + "ADD_TIMESTAMP", "addTimestamp"
            ),
        ),
    ] = True

    @classmethod
    def from_file(cls, path: Path | None) -> Self:
        """Construct the configuration from a YAML file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML, or `None` to use only
            defaults and the environment.

        Returns
        -------
        Config
            The corresponding configuration.
        """
        if path is None:
            return cls()
        with path.open("r") as f:
            return cls.model_validate(yaml.safe_load(f) or {})

    @property
    def staging_cluster_dir(self) -> Path:
        return self.staging_dir / "cluster"

    @property
    def staging_project_dir(self) -> Path:
        return self.staging_dir / "project"

    @property
    def directories(self) -> list[Path]:
        """Every directory the driver expects to exist before a mount."""
        return [
            self.staging_cluster_dir,
            self.staging_project_dir,
            self.cluster_config_dir,
            self.project_config_dir,
            self.position_dir,
            self.log_dir,
        ]

    def configure_logging(self) -> None:
        """Configure logging based on the driver configuration."""
        if self.debug:
            log_level = LogLevel.DEBUG
            log_profile = Profile.development
        else:
            log_level = self.log_level
            log_profile = self.log_profile

        configure_logging(
            profile=log_profile,
            log_level=log_level,
            add_timestamp=self.add_timestamp,
            name=ROOT_LOGGER,
        )

        # Safir logs to stdout, which belongs to the kubelet.  Keep its
        # formatting but move the output.
        logger = logging.getLogger(ROOT_LOGGER)
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        if self.log_file is not None:
            with contextlib.suppress(OSError):
                handler = logging.FileHandler(self.log_file)
        for old in logger.handlers:
            if old.formatter:
                handler.setFormatter(old.formatter)
        logger.handlers = [handler]
