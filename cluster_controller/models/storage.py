"""Broker data storage configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

EPHEMERAL = "ephemeral"
PERSISTENT_CLAIM = "persistent-claim"


class Storage(BaseModel):
    """Storage used for the broker log directories.

    Parsed from the ``kafka-storage`` JSON block, e.g.
    ``{"type": "persistent-claim", "size": "100Gi", "class": "fast", "delete-claim": true}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["ephemeral", "persistent-claim"] = EPHEMERAL
    size: str | None = None
    storage_class: str | None = Field(default=None, alias="class")
    delete_claim: bool = Field(default=False, alias="delete-claim")

    @model_validator(mode="after")
    def validate_claim_settings(self) -> "Storage":
        """Validate size is given for claims and claim settings are not used otherwise."""
        if self.type == PERSISTENT_CLAIM and not self.size:
            raise ValueError("persistent-claim storage requires a size")
        if self.type == EPHEMERAL and (self.size or self.storage_class or self.delete_claim):
            raise ValueError("size, class and delete-claim only apply to persistent-claim storage")
        return self

    @property
    def is_persistent(self) -> bool:
        return self.type == PERSISTENT_CLAIM
