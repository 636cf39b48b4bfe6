"""Entity and relationship domain models."""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

DEFAULT_CONFIDENCE = 85.0
DEFAULT_RELATIONSHIP_TYPE = "ASSOCIATED"

RELATIONSHIP_TYPES = ["parent_of", "invested_in", "gp_of", "employed_at", "co_investor"]


class EntityCategory(str, Enum):
    """Closed set of categories an entity can be drawn as."""

    LP = "LP"
    GP = "GP"
    FUND = "FUND"
    PORTCO = "PORTCO"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    DEAL = "DEAL"
    CONTACT = "CONTACT"
    AGRITECH = "AGRITECH"
    HEALTHCARE = "HEALTHCARE"
    BLOCKCHAIN = "BLOCKCHAIN"
    PUBLIC_MARKET = "PUBLIC_MARKET"
    FIRM = "FIRM"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> "EntityCategory":
        """Parse a raw category label case-insensitively.

        Missing labels fall back to FIRM, unrecognised labels to OTHER.
        """
        if isinstance(raw, cls):
            return raw
        if raw is None or str(raw).strip() == "":
            return cls.FIRM
        try:
            return cls(str(raw).strip().upper().replace(" ", "_"))
        except ValueError:
            return cls.OTHER

    @property
    def is_firm_like(self) -> bool:
        return self in (EntityCategory.GP, EntityCategory.LP, EntityCategory.FIRM)


class Entity(BaseModel):
    """Represents an institutional record that can become a graph node.

    Attributes:
        id: Opaque unique identifier.
        display_name: Human readable name (raw records use ``name``).
        category: Category tag (raw records use ``type`` or ``entity_type``).
        confidence_score: Data confidence, 85 when the record has none.
        tenant_id: Owning tenant.
    """

    id: str
    display_name: str = Field(
        default="Unknown", validation_alias=AliasChoices("display_name", "name")
    )
    category: EntityCategory = Field(
        default=EntityCategory.FIRM,
        validation_alias=AliasChoices("category", "type", "entity_type"),
    )
    confidence_score: float = DEFAULT_CONFIDENCE
    tenant_id: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> EntityCategory:
        return EntityCategory.parse(value)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _default_confidence(cls, value: Any) -> Any:
        return DEFAULT_CONFIDENCE if value is None else value


class Contact(BaseModel):
    """A person from the contact registry."""

    id: str
    full_name: str
    tenant_id: str = ""
    confidence_score: float | None = None

    def to_entity(self) -> Entity:
        return Entity(
            id=self.id,
            display_name=self.full_name,
            category=EntityCategory.CONTACT,
            confidence_score=self.confidence_score,
            tenant_id=self.tenant_id,
        )


class Relationship(BaseModel):
    """A directed, typed edge between two entity identifiers."""

    id: str
    source_id: str
    target_id: str
    relationship_type: str = DEFAULT_RELATIONSHIP_TYPE
    tenant_id: str = ""

    @field_validator("relationship_type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        return value or DEFAULT_RELATIONSHIP_TYPE
