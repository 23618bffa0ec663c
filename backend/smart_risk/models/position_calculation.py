"""Saved position sizing results."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from smart_risk.database import Base


class PositionCalculation(Base):
    """Snapshot of one calculator run; never updated."""

    __tablename__ = "position_calculations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True)
    calculation_data: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return f"<PositionCalculation(id={self.id}, user_id={self.user_id})>"
