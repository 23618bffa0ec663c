"""Pydantic schemas for payment records and Stripe payment reporting."""
from datetime import datetime
from typing import Optional, List, Any
from pydantic import BaseModel, Field


class PaymentRecord(BaseModel):
    """Typed payment row."""

    id: str
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    amount: float
    currency: str = "eur"
    status: str
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentListItem(PaymentRecord):
    """Payment row joined with the payer's profile and the plan name."""

    user_email: Optional[str] = None
    user_name: Optional[str] = None
    plan_name: Optional[str] = None


class PaymentStats(BaseModel):
    """Aggregates shown above the admin payment table."""

    total_revenue: float = 0.0
    monthly_revenue: float = 0.0
    success_rate: float = 0.0
    average_payment: float = 0.0


class PaymentListResponse(BaseModel):
    """Schema for the admin payment list."""

    items: List[PaymentListItem]
    total: int
    stats: PaymentStats


class StripePaymentsRequest(BaseModel):
    """Body of the stripe-payments function."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(100, ge=1, le=100)


class StripePaymentItem(BaseModel):
    """A Stripe charge normalised for the admin payment screen."""

    id: str
    amount: float
    currency: str
    status: str
    created_at: datetime
    payment_method: str = "card"
    transaction_id: str
    stripe_payment_intent_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    refunded: bool = False
    refund_amount: float = 0.0
    failure_message: Optional[str] = None
    receipt_url: Optional[str] = None
    disputed: bool = False
    card_brand: Optional[str] = None
    card_last4: Optional[str] = None


class UpcomingPayout(BaseModel):
    amount: float
    arrival_date: datetime
    status: str


class StripePaymentStats(PaymentStats):
    """Payment statistics computed from live Stripe charges."""

    total_transactions: int = 0
    refunded_amount: float = 0.0
    dispute_count: int = 0
    upcoming_payouts: List[UpcomingPayout] = Field(default_factory=list)


class StripePaymentsResponse(BaseModel):
    payments: List[StripePaymentItem]
    stats: StripePaymentStats
