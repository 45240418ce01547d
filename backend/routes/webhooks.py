"""
Webhooks: Clerk (user/org sync, asset purge when an organization is deleted).
"""
from __future__ import annotations

import os
import json
import logging

from fastapi import APIRouter, Request, HTTPException, Header, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from assets.synchronizer import AssetSynchronizer
from clerk_sync import ensure_org_synced, ensure_org_user_synced, ensure_user_synced, find_org
from db.session import get_db
from routes.deps import get_synchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


def _verify(payload: bytes, svix_id: str | None, svix_timestamp: str | None, svix_signature: str | None) -> dict:
    secret = os.environ.get("CLERK_WEBHOOK_SECRET")
    if not secret or not svix_signature:
        raise HTTPException(status_code=400, detail="CLERK_WEBHOOK_SECRET or Svix-Signature missing")
    try:
        wh = Webhook(secret)
        return wh.verify(payload, {"svix-id": svix_id, "svix-timestamp": svix_timestamp, "svix-signature": svix_signature})
    except WebhookVerificationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid webhook: {e}")


def handle_clerk_event(data: dict, db: Session, sync: AssetSynchronizer) -> dict:
    typ = data.get("type")
    obj = data.get("data", {}) or {}
    if typ in ("organizationMembership.created", "organizationMembership.updated"):
        org_obj = obj.get("organization") if isinstance(obj.get("organization"), dict) else {}
        user_obj = obj.get("public_user_data") if isinstance(obj.get("public_user_data"), dict) else {}
        org_id = org_obj.get("id")
        org_slug = org_obj.get("slug")
        org_name = org_obj.get("name") or org_slug or ""
        user_id = user_obj.get("user_id")
        role = (obj.get("role") or "member").split(":", 1)[-1].lower()
        if org_id and user_id:
            ensure_org_user_synced(db, org_id, user_id, org_name=org_name, org_slug=org_slug, org_role=role)
    elif typ in ("user.created", "user.updated"):
        user_id = obj.get("id")
        email = obj.get("email_addresses", [{}])[0].get("email_address") if obj.get("email_addresses") else None
        name = f"{obj.get('first_name') or ''} {obj.get('last_name') or ''}".strip() or None
        if user_id:
            ensure_user_synced(db, user_id, user_email=email, user_name=name)
    elif typ in ("organization.created", "organization.updated"):
        org_id = obj.get("id")
        if org_id:
            ensure_org_synced(db, org_id, org_name=obj.get("name") or "", org_slug=obj.get("slug"))
    elif typ == "organization.deleted":
        org = find_org(db, obj.get("id") or "")
        if org is not None:
            result = sync.delete(org.id)
            logger.info("Purged assets for deleted org=%s (%d failed)", org.id, len(result.failed))
            db.delete(org)
            db.commit()
            return {"received": True, "purged": result.model_dump()}
    return {"received": True}


@router.post("/webhooks/clerk")
async def clerk_webhook(
    request: Request,
    svix_id: str | None = Header(None, alias="Svix-Id"),
    svix_timestamp: str | None = Header(None, alias="Svix-Timestamp"),
    svix_signature: str | None = Header(None, alias="Svix-Signature"),
    db: Session = Depends(get_db),
    sync: AssetSynchronizer = Depends(get_synchronizer),
):
    """Verify Svix signature and sync user/org/member from Clerk events."""
    payload = await request.body()
    _verify(payload, svix_id, svix_timestamp, svix_signature)
    return await run_in_threadpool(handle_clerk_event, json.loads(payload), db, sync)
