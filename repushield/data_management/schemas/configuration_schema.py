"""Monitoring configuration schemas.

A Configuration carries the tracked entity's identity, its keyword ontology
and the platforms to monitor. Identity (id, created_at) never changes; the
remaining fields are replaced wholesale on update by the ConfigurationStore.

FilterCriteria is the read-only projection of a Configuration consumed by the
filter engine. It is built once per platform agent invocation.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    """Closed set of monitored sources."""

    TWITTER = "twitter"
    REDDIT = "reddit"
    FACEBOOK = "facebook"
    NEWS = "news"


class EntityType(str, Enum):
    INDIVIDUAL = "individual"
    POLITICAL_PARTY = "political-party"
    BRAND = "brand"
    ORGANIZATION = "organization"


class EntityHandles(BaseModel):
    """Known accounts of the tracked entity, grouped by surface."""

    twitter: list[str] = Field(default_factory=list)
    youtube: list[str] = Field(default_factory=list)
    facebook: list[str] = Field(default_factory=list)
    website: list[str] = Field(default_factory=list)


class EntityDetails(BaseModel):
    """Identity of the tracked entity."""

    name: str = Field(..., min_length=1, description="Primary entity name")
    alternate_names: list[str] = Field(default_factory=list)
    description: str = ""
    handles: EntityHandles = Field(default_factory=EntityHandles)
    spokespersons: list[str] = Field(default_factory=list)
    leadership: list[str] = Field(default_factory=list)
    abbreviations: list[str] = Field(default_factory=list)


class Ontology(BaseModel):
    """The four keyword sets used for filtering and query construction."""

    core_keywords: list[str] = Field(default_factory=list)
    associated_keywords: list[str] = Field(default_factory=list)
    narrative_keywords: list[str] = Field(default_factory=list)
    exclusion_keywords: list[str] = Field(default_factory=list)


class PlatformOptions(BaseModel):
    languages: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    verified_only: bool = False


class PlatformConfig(BaseModel):
    """Platform selection plus per-platform options."""

    platforms: list[Platform] = Field(default_factory=list)
    options: dict[str, PlatformOptions] = Field(default_factory=dict)

    def is_enabled(self, platform: Platform) -> bool:
        return platform in self.platforms


class Configuration(BaseModel):
    """
    Monitoring configuration for one tracked entity.

    Attributes:
        id: Immutable configuration identifier (uuid4 string)
        entity_type: Kind of entity being tracked
        entity_details: Name, aliases and handles
        ontology: Keyword sets
        platform_config: Enabled platforms
        is_active: Whether this is the single active configuration
        created_at: Creation timestamp (UTC)
        updated_at: Timestamp of the last wholesale update (UTC)
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_type: EntityType = EntityType.ORGANIZATION
    entity_details: EntityDetails
    ontology: Ontology = Field(default_factory=Ontology)
    platform_config: PlatformConfig = Field(default_factory=PlatformConfig)
    is_active: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def entity_name(self) -> str:
        return self.entity_details.name


class FilterCriteria(BaseModel):
    """Read-only projection of a Configuration used by the filter engine."""

    model_config = ConfigDict(frozen=True)

    entity_name: str
    alternate_names: tuple[str, ...] = ()
    core_keywords: tuple[str, ...] = ()
    associated_keywords: tuple[str, ...] = ()
    narrative_keywords: tuple[str, ...] = ()
    exclusion_keywords: tuple[str, ...] = ()
    twitter_handles: tuple[str, ...] = ()
    facebook_handles: tuple[str, ...] = ()

    @classmethod
    def from_configuration(cls, config: Configuration) -> "FilterCriteria":
        details = config.entity_details
        ontology = config.ontology
        return cls(
            entity_name=details.name,
            alternate_names=tuple(details.alternate_names),
            core_keywords=tuple(ontology.core_keywords),
            associated_keywords=tuple(ontology.associated_keywords),
            narrative_keywords=tuple(ontology.narrative_keywords),
            exclusion_keywords=tuple(ontology.exclusion_keywords),
            twitter_handles=tuple(details.handles.twitter),
            facebook_handles=tuple(details.handles.facebook),
        )
