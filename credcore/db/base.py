"""Declarative base for credcore SQLAlchemy models."""

from sqlalchemy.orm import DeclarativeBase


class BaseEntity(DeclarativeBase):
    """Base class for all credcore database entities."""
