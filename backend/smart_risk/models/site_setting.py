"""Site setting model: key/value store for CMS content and configuration."""
from datetime import datetime
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from smart_risk.database import Base


class SiteSetting(Base):
    """A single setting; ``value`` is often a ``{"fr": ..., "en": ...}`` pair."""

    __tablename__ = "site_settings"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[object | None] = mapped_column(JSON, nullable=True)
    category: Mapped[str] = mapped_column(String(50), default="general", index=True)
    updated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<SiteSetting(key={self.key}, category={self.category})>"
