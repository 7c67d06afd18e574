"""SQLAlchemy model for registered API clients."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credcore.db.base import BaseEntity


class RegisteredClientEntity(BaseEntity):
    """A registered API client identified by its ID key fingerprint."""

    __tablename__ = "registered_clients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    client_uri: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    redirect_uris: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    client_type: Mapped[str] = mapped_column(String(32), nullable=False)
    jwks: Mapped[str] = mapped_column(Text, nullable=False, default="")
    client_metadata: Mapped[dict[str, str]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
