"""Web app manifest and <head> tags for a generated asset set."""
from __future__ import annotations

import html
from typing import Any, Callable, Iterable

from assets.planner import filename_for
from models_branding import ArtifactKind, ArtifactSpec

# Browser-tab favicons; too small to be useful as install icons.
FAVICON_ONLY_SIZES = (16, 32)
APPLE_TOUCH_ICON_SIZE = 180


def _icons(specs: Iterable[ArtifactSpec]) -> list[ArtifactSpec]:
    return [s for s in specs if s.kind == ArtifactKind.icon]


def _splash(specs: Iterable[ArtifactSpec]) -> list[ArtifactSpec]:
    return [s for s in specs if s.kind == ArtifactKind.splash]


def manifest_icon_entries(
    specs: Iterable[ArtifactSpec], src_for: Callable[[ArtifactSpec], str]
) -> list[dict[str, str]]:
    """src_for(spec) -> URL; favicon-only sizes are left out of the manifest."""
    return [
        {
            "src": src_for(spec),
            "sizes": f"{spec.width}x{spec.height}",
            "type": spec.content_type,
            "purpose": spec.purpose.value if spec.purpose else "any",
        }
        for spec in _icons(specs)
        if spec.width not in FAVICON_ONLY_SIZES
    ]


def build_manifest(
    specs: Iterable[ArtifactSpec],
    *,
    name: str,
    short_name: str,
    description: str,
    background_color: str,
    theme_color: str,
    icon_base: str = "/icons",
) -> dict[str, Any]:
    base = icon_base.rstrip("/")
    return {
        "name": name,
        "short_name": short_name,
        "description": description,
        "start_url": "/",
        "scope": "/",
        "display": "standalone",
        "background_color": background_color,
        "theme_color": theme_color,
        "orientation": "portrait-primary",
        "icons": manifest_icon_entries(specs, lambda s: f"{base}/{filename_for(s)}"),
    }


def splash_media_query(spec: ArtifactSpec) -> str:
    ratio = spec.device_pixel_ratio or 2
    short, long = sorted((spec.width, spec.height))
    orientation = "portrait" if spec.width < spec.height else "landscape"
    return (
        f"(device-width: {short // ratio}px) and (device-height: {long // ratio}px) "
        f"and (-webkit-device-pixel-ratio: {ratio}) and (orientation: {orientation})"
    )


def build_html_tags(
    specs: Iterable[ArtifactSpec],
    *,
    short_name: str,
    theme_color: str,
    icon_base: str = "/icons",
    splash_base: str = "/splash",
) -> dict[str, str]:
    specs = list(specs)
    icon_base = icon_base.rstrip("/")
    splash_base = splash_base.rstrip("/")
    esc = html.escape
    tags = {
        "viewport": '<meta name="viewport" content="width=device-width, initial-scale=1">',
        "theme_color": f'<meta name="theme-color" content="{esc(theme_color)}">',
        "manifest": '<link rel="manifest" href="/manifest.json">',
        "favicon_ico": f'<link rel="icon" href="{icon_base}/icon-48x48.png" sizes="48x48">',
        "favicon_16": f'<link rel="icon" type="image/png" sizes="16x16" href="{icon_base}/icon-16x16.png">',
        "favicon_32": f'<link rel="icon" type="image/png" sizes="32x32" href="{icon_base}/icon-32x32.png">',
        "apple_touch_icon": (
            f'<link rel="apple-touch-icon" sizes="{APPLE_TOUCH_ICON_SIZE}x{APPLE_TOUCH_ICON_SIZE}" '
            f'href="{icon_base}/icon-{APPLE_TOUCH_ICON_SIZE}x{APPLE_TOUCH_ICON_SIZE}.png">'
        ),
        "apple_mobile_web_app_capable": '<meta name="apple-mobile-web-app-capable" content="yes">',
        "apple_mobile_web_app_status_bar_style": (
            '<meta name="apple-mobile-web-app-status-bar-style" content="default">'
        ),
        "apple_mobile_web_app_title": f'<meta name="apple-mobile-web-app-title" content="{esc(short_name)}">',
    }
    tags["ios_splash_screens"] = "\n".join(
        f'<link rel="apple-touch-startup-image" href="{splash_base}/{filename_for(s)}" '
        f'media="{splash_media_query(s)}">'
        for s in _splash(specs)
    )
    return tags
