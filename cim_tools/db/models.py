"""SQLAlchemy ORM models for the catalog and the asset library."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


def _utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Entry(Base):
    """Catalog entry (product or product variation)."""

    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    identifier: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )  # SKU
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(
        String(50), nullable=False, default="product"
    )  # 'product' or 'variation'
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("entries.id", ondelete="CASCADE"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="publish", index=True
    )  # publish, private, draft, pending, future, trash
    primary_image_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gallery: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True
    )  # Comma-separated asset ids
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Entry(id={self.id}, identifier={self.identifier}, status={self.status})>"


class Asset(Base):
    """Media library asset. The file lives under the media root."""

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    storage_path: Mapped[str] = mapped_column(
        Text, nullable=False, unique=True
    )  # Relative to the media root, e.g. 2023/06/photo.jpg
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Asset(id={self.id}, path={self.storage_path})>"
