"""
Admin back-office metrics.

The first half of this module is pure arithmetic over plain numbers and
payment rows; the second half runs the aggregate queries behind the admin
screens. Nothing is cached: every call reflects the database at that moment.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import stripe
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_risk.config import settings
from smart_risk.models.payment import Payment
from smart_risk.models.profile import Profile
from smart_risk.models.subscription_plan import SubscriptionPlan
from smart_risk.schemas.analytics import (
    AnalyticsResponse,
    DashboardResponse,
    DashboardStats,
    MonthlyRevenue,
    NamedAmount,
    NamedCount,
    PerformanceAnalytics,
    QuickStats,
    RevenueAnalytics,
    StripeAnalyticsResponse,
    UserAnalytics,
)
from smart_risk.schemas.payments import PaymentListItem, PaymentStats
from smart_risk.schemas.plans import PlanStatsResponse
from smart_risk.schemas.profiles import ProfileRecord
from smart_risk.services import stripe_reporting

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}

# Assumed subscriber lifetime, in months, for the LTV figure
LTV_MONTHS = 12


# ---------------------------------------------------------------------------
# Pure metrics
# ---------------------------------------------------------------------------

def percentage_change(current: float, previous: float) -> float:
    """Growth from ``previous`` to ``current`` in percent, one decimal.

    A previous value of zero counts as 100% growth.
    """
    if not previous:
        return 100.0
    return round((current - previous) / previous * 100, 1)


def conversion_rate(subscribed: int, total: int) -> float:
    """Share of users with a subscription, in percent."""
    if total <= 0:
        return 0.0
    return round(subscribed / total * 100, 1)


def arpu(revenue: float, users: int) -> float:
    """Average revenue per user."""
    if users <= 0:
        return 0.0
    return round(revenue / users, 2)


def estimate_mrr(subscribers: int, plan_price: float) -> float:
    """Monthly recurring revenue assuming every subscriber pays ``plan_price``."""
    return round(subscribers * plan_price, 2)


def payment_stats(payments: Iterable[Payment], now: Optional[datetime] = None) -> PaymentStats:
    """Totals over payment rows of any status.

    Revenue only counts completed payments; the success rate is completed
    payments over all payments.
    """
    now = now or datetime.utcnow()
    payments = list(payments)
    completed = [p for p in payments if p.status == "completed"]
    total = sum(p.amount or 0 for p in completed)
    monthly = sum(
        p.amount or 0 for p in completed
        if p.created_at and p.created_at.year == now.year and p.created_at.month == now.month
    )
    return PaymentStats(
        total_revenue=round(total, 2),
        monthly_revenue=round(monthly, 2),
        success_rate=conversion_rate(len(completed), len(payments)),
        average_payment=round(total / len(completed), 2) if completed else 0.0,
    )


def _month_start(year: int, month: int) -> datetime:
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1)


def revenue_by_month(payments: Iterable[Payment], months: int = 6, now: Optional[datetime] = None) -> List[MonthlyRevenue]:
    """Completed revenue for each of the last ``months`` calendar months, oldest first."""
    now = now or datetime.utcnow()
    buckets: Dict[str, float] = {}
    for offset in range(months - 1, -1, -1):
        start = _month_start(now.year, now.month - offset)
        buckets[start.strftime("%Y-%m")] = 0.0

    for payment in payments:
        if payment.status != "completed" or payment.created_at is None:
            continue
        key = payment.created_at.strftime("%Y-%m")
        if key in buckets:
            buckets[key] += payment.amount or 0

    return [MonthlyRevenue(month=month, revenue=round(revenue, 2)) for month, revenue in buckets.items()]


def period_bounds(time_range: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start of the current period and of the one before it.

    The previous period is ``[previous_start, start)``; both have the same
    length (7, 30 or 365 days).
    """
    if time_range not in PERIOD_DAYS:
        raise ValueError(f"Unknown time range: {time_range}")
    now = now or datetime.utcnow()
    length = timedelta(days=PERIOD_DAYS[time_range])
    start = now - length
    return start, start - length


# ---------------------------------------------------------------------------
# Aggregate queries
# ---------------------------------------------------------------------------

async def count_profiles(db: AsyncSession, *criteria) -> int:
    result = await db.execute(select(func.count(Profile.id)).where(*criteria))
    return result.scalar() or 0


async def active_plan_price(db: AsyncSession) -> float:
    """Price of the cheapest active plan, or the configured default."""
    result = await db.execute(
        select(SubscriptionPlan.price)
        .where(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.price.asc())
        .limit(1)
    )
    price = result.scalar_one_or_none()
    return price if price is not None else settings.DEFAULT_PLAN_PRICE


async def _completed_payments(db: AsyncSession) -> List[Payment]:
    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.plan))
        .where(Payment.status == "completed")
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


def payment_list_item(payment: Payment) -> PaymentListItem:
    """Payment row joined with its payer and plan (relationships must be loaded)."""
    item = PaymentListItem.model_validate(payment)
    if payment.user is not None:
        item.user_email = payment.user.email
        item.user_name = payment.user.full_name
    if payment.plan is not None:
        item.plan_name = payment.plan.name
    return item


async def dashboard(db: AsyncSession, now: Optional[datetime] = None) -> DashboardResponse:
    """Headline figures, five newest users and five newest payments."""
    now = now or datetime.utcnow()

    total_users = await count_profiles(db)
    subscribed_users = await count_profiles(db, Profile.is_subscribed.is_(True))
    users_a_month_ago = await count_profiles(db, Profile.created_at < now - timedelta(days=30))

    stats = payment_stats(await _completed_payments(db), now=now)

    recent_users = await db.execute(select(Profile).order_by(Profile.created_at.desc()).limit(5))
    recent_payments = await db.execute(
        select(Payment)
        .options(selectinload(Payment.user), selectinload(Payment.plan))
        .order_by(Payment.created_at.desc())
        .limit(5)
    )

    return DashboardResponse(
        stats=DashboardStats(
            total_users=total_users,
            subscribed_users=subscribed_users,
            total_revenue=stats.total_revenue,
            monthly_revenue=stats.monthly_revenue,
            avg_revenue_per_user=arpu(stats.total_revenue, total_users),
            user_growth=percentage_change(total_users, users_a_month_ago),
            conversion_rate=conversion_rate(subscribed_users, total_users),
        ),
        recent_users=[ProfileRecord.model_validate(p) for p in recent_users.scalars().all()],
        recent_payments=[payment_list_item(p) for p in recent_payments.scalars().all()],
    )


def fetch_live_metrics(start: datetime, previous_start: datetime) -> Optional[StripeAnalyticsResponse]:
    """Stripe metrics, or None when Stripe is not configured or unreachable."""
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY not configured; using estimated MRR")
        return None
    try:
        return stripe_reporting.compute_stripe_analytics(start, previous_start)
    except stripe.StripeError as e:
        logger.warning(f"Stripe analytics unavailable, using estimated MRR: {e}")
        return None
    except Exception as e:
        # Unexpected payload shapes fall back the same way as an outage
        logger.exception(f"Stripe analytics could not be computed, using estimated MRR: {e}")
        return None


async def analytics(db: AsyncSession, time_range: str = "month", now: Optional[datetime] = None) -> AnalyticsResponse:
    """
    Revenue, user and performance analytics for one time range.

    MRR and the subscription health figures come from Stripe when it answers;
    otherwise MRR is ``subscribers x active plan price`` and the health
    figures are derived from local payment rows.
    """
    now = now or datetime.utcnow()
    start, previous_start = period_bounds(time_range, now)

    payments = await _completed_payments(db)
    current = [p for p in payments if p.created_at and p.created_at >= start]
    previous = [p for p in payments if p.created_at and previous_start <= p.created_at < start]

    total_revenue = round(sum(p.amount or 0 for p in payments), 2)
    current_revenue = round(sum(p.amount or 0 for p in current), 2)
    previous_revenue = round(sum(p.amount or 0 for p in previous), 2)

    plan_revenue: Dict[str, float] = {}
    for payment in payments:
        name = payment.plan.name if payment.plan is not None else "Pro"
        plan_revenue[name] = plan_revenue.get(name, 0.0) + (payment.amount or 0)
    by_plan = [
        NamedAmount(
            name=name,
            revenue=round(revenue, 2),
            percentage=round(revenue / total_revenue * 100, 1) if total_revenue else 0.0,
        )
        for name, revenue in sorted(plan_revenue.items(), key=lambda kv: kv[1], reverse=True)
    ]

    total_users = await count_profiles(db)
    new_users = await count_profiles(db, Profile.created_at >= start)
    subscribed_users = await count_profiles(db, Profile.is_subscribed.is_(True))

    live = fetch_live_metrics(start, previous_start)
    if live is not None:
        mrr = live.mrr
        performance_extra = {
            "mrr_source": "stripe",
            "payment_success_rate": live.payment_success_rate,
            "churn_rate": live.churn_rate,
            "retention_rate": live.retention_rate,
            "trial_count": live.trial_count,
        }
    else:
        mrr = estimate_mrr(subscribed_users, await active_plan_price(db))
        all_payments = await db.execute(select(Payment.status).where(Payment.created_at >= start))
        statuses = list(all_payments.scalars().all())
        completed = sum(1 for status in statuses if status == "completed")
        performance_extra = {
            "mrr_source": "estimate",
            "payment_success_rate": conversion_rate(completed, len(statuses)) if statuses else 100.0,
        }

    return AnalyticsResponse(
        time_range=time_range,
        start_date=start,
        previous_start_date=previous_start,
        revenue=RevenueAnalytics(
            total=total_revenue,
            current=current_revenue,
            previous=previous_revenue,
            growth=percentage_change(current_revenue, previous_revenue),
            by_plan=by_plan,
            by_month=revenue_by_month(payments, now=now),
        ),
        users=UserAnalytics(
            total=total_users,
            new=new_users,
            by_plan=[
                NamedCount(name="Gratuit", count=total_users - subscribed_users),
                NamedCount(name="Pro", count=subscribed_users),
            ],
            ltv=round(arpu(current_revenue, total_users) * LTV_MONTHS, 2),
        ),
        conversion_rate=conversion_rate(subscribed_users, total_users),
        performance=PerformanceAnalytics(
            mrr=mrr,
            arr=round(mrr * 12, 2),
            avg_order_value=round(total_revenue / len(payments), 2) if payments else 0.0,
            **performance_extra,
        ),
    )


async def plan_stats(db: AsyncSession) -> PlanStatsResponse:
    """Plan counts and the estimated monthly revenue from current subscribers."""
    total_plans = (await db.execute(select(func.count(SubscriptionPlan.id)))).scalar() or 0
    active_plans = (
        await db.execute(select(func.count(SubscriptionPlan.id)).where(SubscriptionPlan.is_active.is_(True)))
    ).scalar() or 0
    subscribers = await count_profiles(db, Profile.is_subscribed.is_(True))

    return PlanStatsResponse(
        total_plans=total_plans,
        active_plans=active_plans,
        total_subscribers=subscribers,
        monthly_revenue=estimate_mrr(subscribers, await active_plan_price(db)),
    )


async def quick_stats(db: AsyncSession, now: Optional[datetime] = None) -> QuickStats:
    """Counters refreshed periodically by the admin layout."""
    now = now or datetime.utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    payments_today = (
        await db.execute(select(func.count(Payment.id)).where(Payment.created_at >= midnight))
    ).scalar() or 0

    return QuickStats(
        total_users=await count_profiles(db),
        subscribed_users=await count_profiles(db, Profile.is_subscribed.is_(True)),
        payments_today=payments_today,
        fetched_at=now,
    )
