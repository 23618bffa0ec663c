"""Pydantic schemas for the admin dashboard, analytics and Stripe reporting."""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from smart_risk.schemas.payments import PaymentListItem
from smart_risk.schemas.profiles import ProfileRecord


class StripeAnalyticsRequest(BaseModel):
    """Body of the stripe-analytics function."""

    start_date: datetime
    previous_start_date: datetime


class StripeAnalyticsResponse(BaseModel):
    """Live subscription metrics reported by Stripe."""

    mrr: float
    churn_rate: float
    retention_rate: float
    payment_success_rate: float
    trial_count: int


class DashboardStats(BaseModel):
    total_users: int
    subscribed_users: int
    total_revenue: float
    monthly_revenue: float
    avg_revenue_per_user: float
    user_growth: float
    conversion_rate: float


class DashboardResponse(BaseModel):
    """Admin home screen."""

    stats: DashboardStats
    recent_users: List[ProfileRecord]
    recent_payments: List[PaymentListItem]


class NamedAmount(BaseModel):
    name: str
    revenue: float
    percentage: float


class MonthlyRevenue(BaseModel):
    month: str  # "YYYY-MM"
    revenue: float


class NamedCount(BaseModel):
    name: str
    count: int


class RevenueAnalytics(BaseModel):
    total: float
    current: float
    previous: float
    growth: float
    by_plan: List[NamedAmount]
    by_month: List[MonthlyRevenue]


class UserAnalytics(BaseModel):
    total: int
    new: int
    by_plan: List[NamedCount]
    ltv: float


class PerformanceAnalytics(BaseModel):
    mrr: float
    arr: float
    mrr_source: Literal["stripe", "estimate"]
    avg_order_value: float
    payment_success_rate: float
    churn_rate: Optional[float] = None
    retention_rate: Optional[float] = None
    trial_count: Optional[int] = None


class AnalyticsResponse(BaseModel):
    """Admin analytics screen for one time range."""

    time_range: Literal["week", "month", "year"]
    start_date: datetime
    previous_start_date: datetime
    revenue: RevenueAnalytics
    users: UserAnalytics
    conversion_rate: float
    performance: PerformanceAnalytics


class QuickStats(BaseModel):
    """Small live counters polled by the admin layout."""

    total_users: int = 0
    subscribed_users: int = 0
    payments_today: int = 0
    fetched_at: datetime = Field(default_factory=datetime.utcnow)
