"""
Authenticated API: organization branding and its generated PWA assets.
Uses rbac_require_org, audit log, S3 and the asset synchronizer.
"""
from __future__ import annotations

import hashlib
import logging

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from assets.errors import StorageError, SynthesisError
from assets.planner import logo_dir, logo_path
from assets.synchronizer import AssetSynchronizer
from assets.synthesizer import decode_logo
from auth import rbac_require_org, rbac_require_org_admin, ClerkClaims
from audit import log as audit_log, BRANDING, PWA_ASSETS
from db.session import get_db
from db.models import Organization, OrganizationMember
from models_branding import (
    AssetDeletionResult,
    AssetGenerationResult,
    BrandingResponse,
    BrandingUpdate,
)
from routes.deps import get_synchronizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])

ALLOWED_LOGO_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}
LOGO_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/jpg": "jpg", "image/webp": "webp"}
MAX_LOGO_BYTES = 5 * 1024 * 1024

Rbac = tuple[ClerkClaims, Organization, OrganizationMember]


def _branding_payload_for(org: Organization, sync: AssetSynchronizer) -> BrandingResponse:
    payload = BrandingResponse(
        organization_id=org.id,
        name=org.name,
        subdomain=org.subdomain,
        logo_url=org.logo_url,
        primary_color=org.primary_color or "#000000",
        has_logo=bool(org.logo_url),
    )
    if org.logo_url:
        payload.icon_urls, payload.splash_urls = sync.public_urls(org.id)
    return payload


def _remove_previous_logo(
    sync: AssetSynchronizer, org_id: str, old_url: str | None, keep: str | None = None
) -> None:
    """Best-effort removal of a replaced or cleared original logo."""
    key = sync.store.key_for_url(old_url)
    if not key or key == keep or not key.startswith(logo_dir(org_id) + "/"):
        return
    try:
        sync.store.delete(key)
    except StorageError as e:
        logger.warning("Could not remove previous logo %s for org=%s: %s", key, org_id, e)


def _logo_content_type(filename: str, declared: str | None) -> str:
    content_type = (declared or "").lower().strip()
    if content_type in ALLOWED_LOGO_CONTENT_TYPES:
        return content_type
    name = filename.lower().strip()
    if name.endswith(".png"):
        return "image/png"
    if name.endswith(".jpg") or name.endswith(".jpeg"):
        return "image/jpeg"
    if name.endswith(".webp"):
        return "image/webp"
    raise HTTPException(status_code=400, detail="Logo must be PNG, JPG, or WebP")


@router.get("/branding", response_model=BrandingResponse)
def get_branding(
    rbac: Rbac = Depends(rbac_require_org),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    _, org, _ = rbac
    return _branding_payload_for(org, sync)


@router.patch("/branding")
def update_branding(
    body: BrandingUpdate,
    rbac: Rbac = Depends(rbac_require_org_admin),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    claims, org, _ = rbac
    changes: dict[str, str] = {}
    if body.subdomain is not None and body.subdomain != org.subdomain:
        taken = (
            db.query(Organization)
            .filter(Organization.subdomain == body.subdomain, Organization.id != org.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=409, detail="Subdomain already in use")
        org.subdomain = body.subdomain
        changes["subdomain"] = body.subdomain
    if body.primary_color is not None:
        org.primary_color = body.primary_color
        changes["primary_color"] = body.primary_color
    db.commit()
    if changes:
        audit_log(db, org.id, claims.sub, "update", BRANDING, org.id, changes)

    assets: AssetGenerationResult | None = None
    if body.regenerate_assets:
        assets = sync.generate(org.id, logo_url=org.logo_url, primary_color=org.primary_color)
    return {"branding": _branding_payload_for(org, sync), "assets": assets}


@router.post("/branding/logo")
async def upload_branding_logo(
    file: UploadFile = File(...),
    rbac: Rbac = Depends(rbac_require_org_admin),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    """Store the original logo, point the org at it, then regenerate every icon and splash screen."""
    claims, org, _ = rbac
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    content_type = _logo_content_type(file.filename, file.content_type)

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > MAX_LOGO_BYTES:
        raise HTTPException(status_code=413, detail="Logo exceeds 5MB")
    try:
        decode_logo(data)
    except SynthesisError as e:
        raise HTTPException(status_code=400, detail=str(e))

    digest = hashlib.sha256(data).hexdigest()
    key = logo_path(org.id, digest, LOGO_EXTENSIONS[content_type])
    try:
        await run_in_threadpool(sync.store.put_bytes, key, data, content_type)
    except StorageError as e:
        logger.error("Logo upload failed for org=%s: %s", org.id, e)
        raise HTTPException(status_code=502, detail="Logo upload failed")

    previous_url = org.logo_url
    org.logo_url = sync.store.public_url(key)
    db.commit()
    await run_in_threadpool(_remove_previous_logo, sync, org.id, previous_url, key)
    audit_log(
        db,
        org.id,
        claims.sub,
        "update",
        BRANDING,
        org.id,
        {"filename": file.filename, "content_type": content_type, "sha256": digest},
    )

    # The logo stays updated even if asset generation fails; the result says what happened.
    assets = await run_in_threadpool(
        sync.generate, org.id, org.logo_url, org.primary_color, data
    )
    if not assets.success:
        logger.warning("Logo updated but asset generation failed for org=%s: %s", org.id, assets.error)
    else:
        audit_log(db, org.id, claims.sub, "generate", PWA_ASSETS, org.id, {"source": "logo_upload"})
    return {"branding": _branding_payload_for(org, sync), "assets": assets}


@router.delete("/branding/logo")
def delete_branding_logo(
    rbac: Rbac = Depends(rbac_require_org_admin),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    claims, org, _ = rbac
    previous_url = org.logo_url
    had_logo = bool(org.logo_url)
    org.logo_url = None
    db.commit()
    _remove_previous_logo(sync, org.id, previous_url)
    if had_logo:
        audit_log(db, org.id, claims.sub, "delete", BRANDING, org.id, {"logo_deleted": True})
    deleted = sync.delete(org.id)
    return {"branding": _branding_payload_for(org, sync), "assets": deleted}


@router.post("/branding/assets", response_model=AssetGenerationResult)
def regenerate_assets(
    rbac: Rbac = Depends(rbac_require_org_admin),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    claims, org, _ = rbac
    result = sync.generate(org.id, logo_url=org.logo_url, primary_color=org.primary_color)
    if result.success:
        audit_log(db, org.id, claims.sub, "generate", PWA_ASSETS, org.id, {"logo_used": result.logo_used})
    return result


@router.delete("/branding/assets", response_model=AssetDeletionResult)
def purge_assets(
    rbac: Rbac = Depends(rbac_require_org_admin),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    claims, org, _ = rbac
    result = sync.delete(org.id)
    audit_log(
        db,
        org.id,
        claims.sub,
        "delete",
        PWA_ASSETS,
        org.id,
        {"deleted_icons": result.deleted_icons, "deleted_splash_screens": result.deleted_splash_screens},
    )
    return result
