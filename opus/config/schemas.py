"""Pydantic schemas for Opus configuration files.

This module defines the data models for:
- opus.yaml (project manifest with the plugin's options)
- package.json (installed package manifest with its declared mappings)
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("opus.config")

# =============================================================================
# Common Types
# =============================================================================

IntegrityLevel = Literal["low", "medium", "high"]

INTEGRITY_LEVELS: tuple[IntegrityLevel, ...] = ("low", "medium", "high")

# Namespace key under a manifest's "extra" section, and in opus.yaml
OPUS_KEY = "opus"


# =============================================================================
# Project Manifest (opus.yaml)
# =============================================================================


class OpusOptions(BaseModel):
    """Plugin options declared by the project.

    - framework: overrides the framework identity (defaults to the project name)
    - external-mapping: allow packages to map files on behalf of their dependencies
    - integrity: conflict and cleanup strictness
    """

    model_config = {"populate_by_name": True}

    framework: str | None = None
    external_mapping: bool = Field(default=False, alias="external-mapping")
    integrity: IntegrityLevel = "medium"

    @field_validator("integrity", mode="before")
    @classmethod
    def normalize_integrity(cls, v: Any) -> str:
        """Lowercase the level, falling back to medium for unknown values."""
        level = str(v).lower()
        if level not in INTEGRITY_LEVELS:
            logger.warning("Unknown integrity level %r, using 'medium'", v)
            return "medium"
        return level


class OpusSettings(BaseModel):
    """The project's opus section."""

    enabled: bool | None = None
    options: OpusOptions = Field(default_factory=OpusOptions)


class ProjectManifest(BaseModel):
    """Project manifest (opus.yaml) schema."""

    name: str
    vendor_dir: str = "vendor"
    opus: OpusSettings = Field(default_factory=OpusSettings)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Project name cannot be empty."""
        if not v.strip():
            raise ValueError("Project name cannot be empty")
        return v


# =============================================================================
# Package Manifest (package.json)
# =============================================================================


class PackageManifest(BaseModel):
    """Installed package manifest (package.json) schema."""

    name: str
    version: str | None = None
    require: dict[str, str] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Package name cannot be empty."""
        if not v.strip():
            raise ValueError("Package name cannot be empty")
        return v

    @property
    def opus(self) -> dict[str, Any] | None:
        """The package's opus section, or None if it declares none."""
        section = self.extra.get(OPUS_KEY)
        return section if isinstance(section, dict) else None
