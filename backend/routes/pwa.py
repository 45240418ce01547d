"""
PWA endpoints.

POST /api/generate-pwa-assets   platform-admin tool: logo in, base64 icons/splash + manifest + tags out
GET  /api/icons/{size}          tenant icon redirect (stored asset or default)
GET  /api/splash/{dimensions}   tenant splash redirect (stored asset or default)
GET  /manifest.json             tenant web manifest

Tenants are resolved from the X-Subdomain header set by the edge proxy.
"""
from __future__ import annotations

import base64
import logging

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.orm import Session

from assets.colors import is_hex_color, normalize_hex_color
from assets.errors import AssetError, SynthesisError
from assets.manifest import build_html_tags, build_manifest, manifest_icon_entries
from assets.planner import (
    MASKABLE_ICON_SIZES,
    catalog,
    filename_for,
    icon_spec,
    parse_splash_key,
    splash_spec,
    storage_path,
)
from assets.synchronizer import AssetSynchronizer
from auth import require_platform_admin, ClerkClaims
from db.session import get_db
from db.models import Organization
from models_branding import ArtifactKind
from routes.deps import get_synchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pwa"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MIN_ICON_SIZE = 16
MAX_ICON_SIZE = 512
DEFAULT_ICON_PATH = "/icons/icon-192x192.png"
DEFAULT_SPLASH_PATH = "/icons/apple-splash-1125-2436.jpg"
DEFAULT_SUBDOMAIN = "www"
MANIFEST_MEDIA_TYPE = "application/manifest+json"


def _color_field(value: str | None, default: str) -> str:
    value = (value or "").strip()
    if not value:
        return default
    if not is_hex_color(value):
        raise HTTPException(status_code=400, detail=f"Invalid colour: {value}")
    return normalize_hex_color(value)


@router.post("/api/generate-pwa-assets")
async def generate_pwa_assets(
    logo: UploadFile | None = File(None),
    app_name: str = Form("My PWA App", alias="appName"),
    short_name: str = Form("PWA", alias="shortName"),
    description: str = Form("A Progressive Web App"),
    background_color: str | None = Form(None, alias="backgroundColor"),
    theme_color: str | None = Form(None, alias="themeColor"),
    generate_splash: str = Form("false", alias="generateSplash"),
    claims: ClerkClaims = Depends(require_platform_admin),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    """Render the full catalog from an uploaded logo without storing anything."""
    if logo is None:
        raise HTTPException(status_code=400, detail="No logo file provided")
    data = await logo.read()
    if not data:
        raise HTTPException(status_code=400, detail="No logo file provided")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Logo exceeds 10MB")

    background_color = _color_field(background_color, "#ffffff")
    theme_color = _color_field(theme_color, "#000000")
    include_splash = generate_splash.strip().lower() == "true"

    try:
        rendered = await run_in_threadpool(sync.render_catalog, data, background_color, include_splash)
    except SynthesisError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AssetError as e:
        logger.exception("Error generating PWA assets")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to generate PWA assets", "details": str(e)},
        )

    icons = []
    splash_screens = []
    for spec, payload in rendered:
        encoded = base64.b64encode(payload).decode("ascii")
        if spec.kind == ArtifactKind.icon:
            icons.append({
                "name": filename_for(spec),
                "size": spec.width,
                "purpose": spec.purpose.value if spec.purpose else "any",
                "mimeType": spec.content_type,
                "data": encoded,
            })
        else:
            splash_screens.append({
                "name": filename_for(spec),
                "width": spec.width,
                "height": spec.height,
                "mimeType": spec.content_type,
                "data": encoded,
            })

    specs = [spec for spec, _ in rendered]
    manifest = build_manifest(
        specs,
        name=app_name,
        short_name=short_name,
        description=description,
        background_color=background_color,
        theme_color=theme_color,
    )
    html_tags = build_html_tags(specs, short_name=short_name, theme_color=theme_color)
    logger.info("Admin %s generated %d icons, %d splash screens", claims.sub, len(icons), len(splash_screens))
    # camelCase keys, as read by the dashboard icon tool
    return {
        "success": True,
        "assets": {"icons": icons, "splashScreens": splash_screens},
        "manifest": manifest,
        "htmlTags": html_tags,
        "summary": {
            "totalIcons": len(icons),
            "totalSplashScreens": len(splash_screens),
            "maskableIcons": len(MASKABLE_ICON_SIZES),
        },
    }


def _org_for_subdomain(db: Session, subdomain: str | None) -> Organization | None:
    sub = (subdomain or DEFAULT_SUBDOMAIN).strip().lower()
    return db.query(Organization).filter(Organization.subdomain == sub).first()


@router.get("/api/icons/{size}")
def tenant_icon(
    size: str,
    x_subdomain: str | None = Header(None, alias="X-Subdomain"),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    if not size.isdigit() or not MIN_ICON_SIZE <= int(size) <= MAX_ICON_SIZE:
        return PlainTextResponse("Invalid size parameter", status_code=400)
    spec = icon_spec(int(size))
    try:
        org = _org_for_subdomain(db, x_subdomain)
        if org is not None:
            key = storage_path(org.id, spec)
            if sync.store.exists(key):
                return RedirectResponse(sync.store.public_url(key))
    except (AssetError, ValueError) as e:
        logger.warning("Error serving dynamic icon: %s", e)
        return RedirectResponse(DEFAULT_ICON_PATH)
    return RedirectResponse(f"/icons/{filename_for(spec)}")


@router.get("/api/splash/{dimensions}")
def tenant_splash(
    dimensions: str,
    x_subdomain: str | None = Header(None, alias="X-Subdomain"),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    parsed = parse_splash_key(dimensions)
    if parsed is None:
        return PlainTextResponse("Invalid dimensions parameter", status_code=400)
    spec = splash_spec(*parsed)
    try:
        org = _org_for_subdomain(db, x_subdomain)
        if org is not None:
            key = storage_path(org.id, spec)
            if sync.store.exists(key):
                return RedirectResponse(sync.store.public_url(key))
    except (AssetError, ValueError) as e:
        logger.warning("Error serving dynamic splash screen: %s", e)
        return RedirectResponse(DEFAULT_SPLASH_PATH)
    return RedirectResponse(f"/icons/apple-splash-{dimensions}.jpg")


def _default_manifest() -> dict:
    return {
        "name": "Punchcard Rewards",
        "short_name": "Punchcard",
        "description": "Collect stamps and redeem rewards",
        "start_url": "/",
        "scope": "/",
        "display": "standalone",
        "background_color": "#ffffff",
        "theme_color": "#000000",
        "orientation": "portrait-primary",
        "icons": [
            {"src": DEFAULT_ICON_PATH, "sizes": "192x192", "type": "image/png", "purpose": "any"},
        ],
        "categories": ["business", "productivity"],
    }


@router.get("/manifest.json")
def tenant_manifest(
    x_subdomain: str | None = Header(None, alias="X-Subdomain"),
    db: Session = Depends(get_db),
):
    org = _org_for_subdomain(db, x_subdomain)
    if org is None:
        return JSONResponse(
            _default_manifest(),
            media_type=MANIFEST_MEDIA_TYPE,
            headers={"Cache-Control": "public, max-age=300"},
        )
    name = org.name
    manifest = {
        "name": f"{name} Rewards",
        "short_name": name[:15],
        "description": f"{name} rewards program",
        "start_url": "/",
        "scope": "/",
        "display": "standalone",
        "background_color": "#ffffff",
        "theme_color": org.primary_color or "#000000",
        "orientation": "portrait-primary",
        "icons": manifest_icon_entries(
            [s for s in catalog(include_splash=False) if not s.maskable],
            lambda s: f"/api/icons/{s.width}",
        ),
        "categories": ["business", "productivity", "social"],
    }
    return JSONResponse(
        manifest,
        media_type=MANIFEST_MEDIA_TYPE,
        headers={"Cache-Control": "public, max-age=3600"},
    )
