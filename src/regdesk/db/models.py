"""
regdesk.db.models

Persistence schema for the registration desk.

Responsibilities:
- Define ORM models:
  - AdminUser: provisioned admin credentials (username + bcrypt hash)
  - IdentityAccount: identity-provider principals (one per admin username)
  - UserRole: role grants keyed by identity account
  - Registration: public event registrations
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from regdesk.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC timestamps; SQLite has no tz-aware storage.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class AppRole(enum.StrEnum):
    admin = "admin"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


# Usernames are unique regardless of case; lookups still match the stored value exactly.
Index("ux_admin_users_username_lower", func.lower(AdminUser.username), unique=True)


class IdentityAccount(Base):
    __tablename__ = "identity_accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    user_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    last_sign_in_at: Mapped[datetime | None] = mapped_column(nullable=True)

    roles: Mapped[list[UserRole]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("identity_accounts.id"), nullable=False, index=True
    )
    role: Mapped[AppRole] = mapped_column(Enum(AppRole), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    account: Mapped[IdentityAccount] = relationship(back_populates="roles")

    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    student_id: Mapped[str] = mapped_column(String(20), nullable=False)
    roll_number: Mapped[str] = mapped_column(String(20), nullable=False)
    section: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    blood_group: Mapped[str] = mapped_column(String(3), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    present_address: Mapped[str] = mapped_column(Text, nullable=False)
    permanent_address: Mapped[str] = mapped_column(Text, nullable=False)
    fee_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)


# --- Module Notes -----------------------------------------------------------
# `admin_users` is provisioned out of band and only ever read by the credential verifier.
# `identity_accounts`/`user_roles` back the identity-provider emulation under `/auth/v1`
# and `/rest/v1/rpc`.
