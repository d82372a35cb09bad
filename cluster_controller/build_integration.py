"""Build integration settings and their change classification.

The build integration layers an image build on top of the broker image. Its
resources are managed elsewhere; the reconciliation core only needs to know
whether the build settings appeared, changed or went away.
"""

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BuildIntegrationConfig(BaseModel):
    """Build integration settings from the ``kafka-build-integration`` JSON block."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_image: str = Field(alias="sourceImage")
    source_tag: str = Field(default="latest", alias="sourceTag")
    tag: str = "latest"

    @field_validator("source_image", "source_tag", "tag")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate image parts are not empty."""
        if not v:
            raise ValueError("build integration image parts cannot be empty")
        return v


class BuildIntegrationDiff(str, Enum):
    """What needs to happen to the build integration resources."""

    NONE = "none"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class BuildIntegrationComparator(Protocol):
    """Classifies a build integration change between two configurations."""

    def __call__(
        self,
        current: BuildIntegrationConfig | None,
        desired: BuildIntegrationConfig | None,
    ) -> BuildIntegrationDiff: ...


def compare_build_integration(
    current: BuildIntegrationConfig | None, desired: BuildIntegrationConfig | None
) -> BuildIntegrationDiff:
    """Default comparator based on presence and value equality.

    Args:
        current: Currently applied build settings, or None
        desired: Desired build settings, or None

    Returns:
        The change classification
    """
    if current is None and desired is None:
        return BuildIntegrationDiff.NONE
    if current is None:
        return BuildIntegrationDiff.CREATE
    if desired is None:
        return BuildIntegrationDiff.DELETE
    if current != desired:
        return BuildIntegrationDiff.UPDATE
    return BuildIntegrationDiff.NONE
