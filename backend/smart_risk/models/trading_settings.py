"""Per-user money management settings."""
from datetime import datetime
from sqlalchemy import String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from smart_risk.database import Base


class UserTradingSettings(Base):
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True
    )

    initial_capital: Mapped[float] = mapped_column(Float, default=0.0)
    current_balance: Mapped[float] = mapped_column(Float, default=0.0)

    # Percentages of the capital
    risk_per_trade: Mapped[float] = mapped_column(Float, default=1.0)
    daily_loss_max: Mapped[float] = mapped_column(Float, default=3.0)
    weekly_target: Mapped[float] = mapped_column(Float, default=2.0)
    monthly_target: Mapped[float] = mapped_column(Float, default=8.0)

    secure_mode: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<UserTradingSettings(user_id={self.user_id}, risk_per_trade={self.risk_per_trade})>"
