"""Trading journal model: one row per user and trading day."""
from datetime import date, datetime
from uuid import uuid4
from sqlalchemy import String, Float, Boolean, Date, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from smart_risk.database import Base


class TradingJournalEntry(Base):
    """Net P&L and notes for one day. Saving the same day again replaces it."""

    __tablename__ = "trading_journal"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True)
    trade_date: Mapped[date] = mapped_column(Date, nullable=False)

    pnl: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[str] = mapped_column(Text, default="")
    has_traded: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "trade_date", name="uq_trading_journal_user_date"),
    )

    def __repr__(self) -> str:
        return f"<TradingJournalEntry(user_id={self.user_id}, trade_date={self.trade_date}, pnl={self.pnl})>"
