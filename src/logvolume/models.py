"""Models for FlexVolume requests and responses."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)

__all__ = [
    "Capabilities",
    "DriverResponse",
    "DriverStatus",
    "InitResponse",
    "MountRequest",
]

RequiredOption = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1)
]


class MountRequest(BaseModel):
    """Workload attributes passed as FlexVolume mount options.

    The kubelet merges the volume's ``options`` with some of its own keys
    (``kubernetes.io/pod.uid`` and friends); anything not listed here is
    ignored.
    """

    model_config = ConfigDict(
        extra="ignore", frozen=True, populate_by_name=True
    )

    cluster_name: Annotated[
        RequiredOption, Field(title="Cluster name", alias="clusterName")
    ]

    cluster_id: Annotated[
        RequiredOption, Field(title="Cluster ID", alias="clusterID")
    ]

    project_name: Annotated[
        RequiredOption, Field(title="Project name", alias="projectName")
    ]

    project_id: Annotated[
        RequiredOption, Field(title="Project ID", alias="projectID")
    ]

    namespace: Annotated[
        RequiredOption, Field(title="Namespace", alias="namespace")
    ]

    workload_name: Annotated[
        RequiredOption, Field(title="Workload name", alias="workloadName")
    ]

    container_name: Annotated[
        RequiredOption, Field(title="Container name", alias="containerName")
    ]

    volume_name: Annotated[
        RequiredOption, Field(title="Volume name", alias="volumeName")
    ]

    format: Annotated[
        RequiredOption,
        Field(
            title="Log format",
            description=(
                "Either one of the formats Fluentd parses natively, or a"
                " custom format expression."
            ),
            alias="format",
        ),
    ]

    pod_name: Annotated[
        str | None,
        Field(
            title="Pod name",
            validation_alias=AliasChoices("podName", "kubernetes.io/pod.name"),
        ),
    ] = None

    pod_uid: Annotated[
        str | None,
        Field(
            title="Pod UID",
            description="If not given, it is taken from the container path.",
            validation_alias=AliasChoices("podUID", "kubernetes.io/pod.uid"),
        ),
    ] = None

    @field_validator("pod_name", "pod_uid")
    @classmethod
    def _empty_as_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class DriverStatus(StrEnum):
    """Result status understood by the kubelet."""

    SUCCESS = "Success"
    FAILURE = "Failure"
    NOT_SUPPORTED = "Not Supported"


class DriverResponse(BaseModel):
    """Response printed for a FlexVolume call."""

    status: Annotated[DriverStatus, Field(title="Status")]

    message: Annotated[str, Field(title="Human-readable message")]

    warnings: Annotated[
        list[str],
        Field(
            title="Non-fatal problems",
            description=(
                "Failures that were logged but did not change the status."
                " Not sent to the kubelet."
            ),
            exclude=True,
        ),
    ] = []

    @classmethod
    def success(cls, warnings: list[str] | None = None) -> Self:
        return cls(
            status=DriverStatus.SUCCESS,
            message="Success",
            warnings=warnings or [],
        )

    @classmethod
    def failure(
        cls, error: Exception | str, warnings: list[str] | None = None
    ) -> Self:
        return cls(
            status=DriverStatus.FAILURE,
            message=str(error),
            warnings=warnings or [],
        )

    @classmethod
    def not_supported(cls, command: str) -> Self:
        return cls(
            status=DriverStatus.NOT_SUPPORTED,
            message=f"{command} is not supported",
        )

    def to_json(self) -> str:
        """Serialize the response as the kubelet expects it."""
        return self.model_dump_json()


class Capabilities(BaseModel):
    """Driver capabilities reported by ``init``."""

    attach: Annotated[bool, Field(title="Supports attach/detach")] = False


class InitResponse(DriverResponse):
    """Response for the ``init`` call."""

    capabilities: Annotated[
        Capabilities, Field(title="Driver capabilities")
    ] = Capabilities()
