"""Branding records and the typed artifacts of the PWA asset pipeline."""
from __future__ import annotations

import enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assets.colors import is_hex_color, normalize_hex_color


class ArtifactKind(str, enum.Enum):
    icon = "icon"
    splash = "splash"


class IconPurpose(str, enum.Enum):
    any = "any"
    maskable = "maskable"


class OutputFormat(str, enum.Enum):
    png = "png"
    jpeg = "jpeg"


CONTENT_TYPES = {
    OutputFormat.png: "image/png",
    OutputFormat.jpeg: "image/jpeg",
}


class ArtifactState(str, enum.Enum):
    """Terminal per-artifact state: uploaded|failed after generate, removed|removal_failed after delete."""
    uploaded = "uploaded"
    failed = "failed"
    removed = "removed"
    removal_failed = "removal_failed"


class ArtifactSpec(BaseModel):
    """One entry of the static catalog. `key` is the dimension key used in result maps."""
    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    width: int
    height: int
    purpose: Optional[IconPurpose] = None
    output_format: OutputFormat
    key: str
    device_pixel_ratio: int = 1

    @property
    def maskable(self) -> bool:
        return self.purpose == IconPurpose.maskable

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self.output_format]


class GeneratedArtifact(BaseModel):
    spec: ArtifactSpec
    data: bytes
    storage_path: str
    fallback: bool = False


class ArtifactOutcome(BaseModel):
    key: str
    kind: ArtifactKind
    storage_path: str
    state: ArtifactState
    error: Optional[str] = None
    fallback: bool = False


class AssetGenerationResult(BaseModel):
    success: bool
    icon_urls: Dict[str, str] = Field(default_factory=dict)
    splash_urls: Dict[str, str] = Field(default_factory=dict)
    outcomes: List[ArtifactOutcome] = Field(default_factory=list)
    logo_used: bool = False
    error: Optional[str] = None


class AssetDeletionResult(BaseModel):
    success: bool
    deleted_icons: int = 0
    deleted_splash_screens: int = 0
    failed: List[str] = Field(default_factory=list)
    outcomes: List[ArtifactOutcome] = Field(default_factory=list)
    error: Optional[str] = None


class BrandingUpdate(BaseModel):
    """PATCH body for organization branding."""
    primary_color: Optional[str] = None
    subdomain: Optional[str] = None
    regenerate_assets: bool = False

    @field_validator("primary_color")
    @classmethod
    def _check_color(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not is_hex_color(v):
            raise ValueError("primary_color must be a hex colour like #1e3a5f")
        return normalize_hex_color(v)

    @field_validator("subdomain")
    @classmethod
    def _check_subdomain(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not v or not all(c.isalnum() or c == "-" for c in v) or v.startswith("-"):
            raise ValueError("subdomain may contain only letters, digits and hyphens")
        return v


class BrandingResponse(BaseModel):
    organization_id: str
    name: str
    subdomain: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: str = "#000000"
    has_logo: bool = False
    icon_urls: Dict[str, str] = Field(default_factory=dict)
    splash_urls: Dict[str, str] = Field(default_factory=dict)
