"""Audit log helper. Call after branding mutations."""
from __future__ import annotations

import logging
import uuid
from sqlalchemy.orm import Session

from db.models import AuditLog

logger = logging.getLogger(__name__)

BRANDING = "branding"
PWA_ASSETS = "pwa_assets"


def log(
    db: Session,
    organization_id: str,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: str | None = None,
    details: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        id=str(uuid.uuid4()),
        organization_id=organization_id,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
    )
    db.add(entry)
    db.commit()
    logger.info("audit org=%s actor=%s %s %s", organization_id, actor_id, action, resource_type)
    return entry
