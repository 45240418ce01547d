"""
Canonical artifact catalog and deterministic storage paths.

Every caller (branding updates, admin generator, public redirects, purge on
org deletion) takes sizes and paths from here. Deletion paths are derived from
the same catalog through storage_path(), so generate and delete always agree.
"""
from __future__ import annotations

import re

from models_branding import ArtifactKind, ArtifactSpec, IconPurpose, OutputFormat

ICON_SIZES: tuple[int, ...] = (16, 32, 48, 64, 72, 96, 128, 144, 152, 180, 192, 384, 512)
MASKABLE_ICON_SIZES: tuple[int, ...] = (192, 512)

# iOS launch images, portrait and landscape, in storage-key order.
SPLASH_DIMENSIONS: tuple[tuple[int, int], ...] = (
    (640, 1136),
    (750, 1334),
    (828, 1792),
    (1125, 2436),
    (1136, 640),
    (1170, 2532),
    (1242, 2208),
    (1242, 2688),
    (1284, 2778),
    (1334, 750),
    (1536, 2048),
    (1620, 2160),
    (1668, 2224),
    (1668, 2388),
    (1792, 828),
    (2048, 1536),
    (2048, 2732),
    (2160, 1620),
    (2208, 1242),
    (2224, 1668),
    (2266, 1488),
    (2360, 1640),
    (2388, 1668),
    (2436, 1125),
    (2532, 1170),
    (2556, 1179),
    (2622, 1206),
    (2688, 1242),
    (2732, 2048),
    (2736, 1260),
    (2778, 1284),
    (2796, 1290),
    (2868, 1320),
)

# (short side, long side) of @3x devices; everything else is @2x.
_RETINA_HD_SCREENS = frozenset({
    (1125, 2436),
    (1170, 2532),
    (1179, 2556),
    (1206, 2622),
    (1242, 2208),
    (1242, 2688),
    (1260, 2736),
    (1284, 2778),
    (1290, 2796),
    (1320, 2868),
})

ORG_PREFIX = "organizations"
ICONS_DIR = "icons"
SPLASH_DIR = "splash"

_ORG_ID_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_SPLASH_KEY_RE = re.compile(r"^(\d+)-(\d+)$")


def icon_key(size: int, maskable: bool = False) -> str:
    key = f"{size}x{size}"
    return f"maskable-{key}" if maskable else key


def splash_key(width: int, height: int) -> str:
    return f"{width}-{height}"


def parse_splash_key(key: str) -> tuple[int, int] | None:
    m = _SPLASH_KEY_RE.match(key or "")
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def device_pixel_ratio(width: int, height: int) -> int:
    short, long = sorted((width, height))
    return 3 if (short, long) in _RETINA_HD_SCREENS else 2


def validate_org_id(organization_id: str) -> str:
    org = (organization_id or "").strip()
    if not org or org in (".", "..") or not _ORG_ID_RE.match(org):
        raise ValueError(f"Invalid organization id: {organization_id!r}")
    return org


def icon_filename(size: int, maskable: bool = False) -> str:
    prefix = "maskable-icon" if maskable else "icon"
    return f"{prefix}-{size}x{size}.png"


def splash_filename(width: int, height: int) -> str:
    return f"apple-splash-{width}-{height}.jpg"


def icon_spec(size: int, maskable: bool = False) -> ArtifactSpec:
    return ArtifactSpec(
        kind=ArtifactKind.icon,
        width=size,
        height=size,
        purpose=IconPurpose.maskable if maskable else IconPurpose.any,
        output_format=OutputFormat.png,
        key=icon_key(size, maskable),
    )


def splash_spec(width: int, height: int) -> ArtifactSpec:
    return ArtifactSpec(
        kind=ArtifactKind.splash,
        width=width,
        height=height,
        output_format=OutputFormat.jpeg,
        key=splash_key(width, height),
        device_pixel_ratio=device_pixel_ratio(width, height),
    )


def catalog(include_splash: bool = True) -> list[ArtifactSpec]:
    specs = [icon_spec(size) for size in ICON_SIZES]
    specs.extend(icon_spec(size, maskable=True) for size in MASKABLE_ICON_SIZES)
    if include_splash:
        specs.extend(splash_spec(w, h) for w, h in SPLASH_DIMENSIONS)
    return specs


def filename_for(spec: ArtifactSpec) -> str:
    if spec.kind == ArtifactKind.icon:
        return icon_filename(spec.width, spec.maskable)
    return splash_filename(spec.width, spec.height)


def storage_path(organization_id: str, spec: ArtifactSpec) -> str:
    """The only path template: organizations/{org}/{icons|splash}/{filename}."""
    org = validate_org_id(organization_id)
    directory = ICONS_DIR if spec.kind == ArtifactKind.icon else SPLASH_DIR
    return f"{ORG_PREFIX}/{org}/{directory}/{filename_for(spec)}"


def plan_generation(organization_id: str) -> list[tuple[ArtifactSpec, str]]:
    return [(spec, storage_path(organization_id, spec)) for spec in catalog()]


def plan_deletion(organization_id: str) -> list[str]:
    return [storage_path(organization_id, spec) for spec in catalog()]


def logo_dir(organization_id: str) -> str:
    return f"{ORG_PREFIX}/{validate_org_id(organization_id)}/logo"


def logo_path(organization_id: str, digest: str, extension: str) -> str:
    """Where an uploaded original logo is kept; not part of the generated catalog."""
    return f"{logo_dir(organization_id)}/logo-{digest[:12]}.{extension.lstrip('.')}"
