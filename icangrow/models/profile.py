"""
iCanGrow API — Profile & Invitation Models
============================================

What:  ORM models for the `profiles` and `user_invitations` tables.
Why:   A profile is both the login identity and the authorization subject:
       every protected request re-reads it to check `status` and `role`.

Table Design:
    - profiles.id is the identity carried in token `sub` and stored in every
      created_by / approved_by / performed_by column.
    - token_version is bumped by logout and password changes; tokens whose
      "ver" claim no longer matches are rejected.
    - email is unique (case-folded before insert by AuthService).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from icangrow.database import Base
from icangrow.lifecycle import InvitationStatus, ProfileStatus, Role
from icangrow.models.mixins import Timestamps, UUIDPrimaryKey


class Profile(UUIDPrimaryKey, Timestamps, Base):
    """
    Lifecycle:
        signup → status='pending', email_verified=False
        verify-email → email_verified=True
        first login → status='active'
        admin update → 'inactive' / 'suspended' (login and API access refused)
    """

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        default=Role.GROWER.value,
        comment="admin, grower, cultivation_lead, qa_manager, packaging_dispatch, environmental_tech",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProfileStatus.PENDING.value,
        comment="pending, active, inactive, suspended",
    )
    facility: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role='{self.role}', status='{self.status}')>"


class UserInvitation(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "user_invitations"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvitationStatus.PENDING.value
    )
    invited_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
