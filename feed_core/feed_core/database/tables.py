"""SQLAlchemy 2.0 ORM table definitions for the package catalog.

Uses the ``Mapped`` / ``mapped_column`` declaration style.  The same tables
are used by every SQL dialect provider (SQLite, PostgreSQL, MySQL).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Shared declarative base for all catalog tables."""


class PackageTable(Base):
    """One row per package version."""

    __tablename__ = "packages"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    package_id: Mapped[str] = mapped_column(String(128), nullable=False)
    package_id_lower: Mapped[str] = mapped_column(String(128), nullable=False)
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    authors: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    listed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("package_id_lower", "version", name="uq_packages_id_version"),
        Index("ix_packages_id_lower", "package_id_lower"),
    )
