"""SQLAlchemy models for organizations, members and branding. Use Alembic for migrations."""
from __future__ import annotations

import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .session import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Role(str, enum.Enum):
    owner = "owner"
    admin = "admin"
    member = "member"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True)
    clerk_org_id = Column("clerk_org_id", String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    subdomain = Column(String, unique=True, nullable=True)
    # Branding consumed by the PWA asset pipeline
    logo_url = Column("logo_url", String, nullable=True)
    primary_color = Column("primary_color", String, nullable=False, default="#000000")
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="organization", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    clerk_id = Column("clerk_id", String, unique=True, nullable=False)
    email = Column(String, nullable=True)
    name = Column(String, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("OrganizationMember", back_populates="user")


class OrganizationMember(Base):
    __tablename__ = "organization_members"

    id = Column(String, primary_key=True)
    organization_id = Column("organization_id", String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False, default=Role.member.value)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String, primary_key=True)
    organization_id = Column("organization_id", String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column("actor_id", String, nullable=False)
    action = Column(String, nullable=False)
    resource_type = Column("resource_type", String, nullable=False)
    resource_id = Column("resource_id", String, nullable=True)
    details = Column(JSONType, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="audit_logs")
