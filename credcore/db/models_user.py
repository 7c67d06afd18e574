"""SQLAlchemy models for users, organizations, and memberships."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from credcore.db.base import BaseEntity


class UserEntity(BaseEntity):
    """A user account or an organization (is_organization=True)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(48), primary_key=True)
    login: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    avatar_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    is_organization: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class OrgMemberEntity(BaseEntity):
    """Membership of a user in an organization."""

    __tablename__ = "org_members"

    org_id: Mapped[str] = mapped_column(
        String(48), ForeignKey("users.id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(48), ForeignKey("users.id"), primary_key=True
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UserEmailEntity(BaseEntity):
    """An email address belonging to a user account."""

    __tablename__ = "user_emails"

    user_id: Mapped[str] = mapped_column(
        String(48), ForeignKey("users.id"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
