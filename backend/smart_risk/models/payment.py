"""Payment model: append-only record of a charge."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Float, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from smart_risk.database import Base

PAYMENT_STATUSES = ("completed", "failed", "refunded", "pending")


class Payment(Base):
    """A completed, failed or refunded charge.

    Rows are never updated after creation except for refund/dispute
    metadata.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(10), default="eur")
    status: Mapped[str] = mapped_column(String(50), default="completed")

    # Stripe payment intent / charge id; unique so redelivered events cannot duplicate a row
    transaction_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    payment_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    plan_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("subscription_plans.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["Profile | None"] = relationship("Profile", foreign_keys=[user_id])
    plan: Mapped["SubscriptionPlan | None"] = relationship("SubscriptionPlan", foreign_keys=[plan_id])

    __table_args__ = (
        Index("idx_payment_user_id", "user_id"),
        Index("idx_payment_status", "status"),
        Index("idx_payment_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, status={self.status})>"
