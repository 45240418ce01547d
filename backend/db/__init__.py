from .session import get_db, engine, SessionLocal, Base
from .models import AuditLog, Organization, OrganizationMember, Role, User

__all__ = [
    "get_db",
    "engine",
    "SessionLocal",
    "Base",
    "AuditLog",
    "Organization",
    "OrganizationMember",
    "Role",
    "User",
]
