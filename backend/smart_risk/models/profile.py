"""Profile model: the application-level record for an authenticated user."""
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from smart_risk.database import Base

PROFILE_ROLES = ("user", "admin")
SUBSCRIPTION_STATUSES = ("active", "trialing", "past_due", "canceled", "payment_failed")


class Profile(Base):
    """One row per auth user, keyed by the auth user id.

    The row is created lazily (first login, reconciliation or webhook), so
    readers must cope with it being absent.
    """

    __tablename__ = "user_profiles"

    # Same value as the auth service's user id
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user")

    # Subscription state
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=False)
    subscription_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subscription_end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Stripe integration
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_profile_email", "email"),
        Index("idx_profile_stripe_customer_id", "stripe_customer_id"),
        Index("idx_profile_is_subscribed", "is_subscribed"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email}, subscribed={self.is_subscribed})>"
