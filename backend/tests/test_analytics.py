"""Tests for the admin metric helpers and the analytics fallback."""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
import stripe

from smart_risk.models.payment import Payment
from smart_risk.models.subscription_plan import SubscriptionPlan
from smart_risk.schemas.analytics import StripeAnalyticsResponse
from smart_risk.services import analytics


def test_percentage_change_from_zero_is_full_growth():
    assert analytics.percentage_change(5, 0) == 100.0


def test_percentage_change():
    assert analytics.percentage_change(150, 100) == 50.0
    assert analytics.percentage_change(50, 200) == -75.0


def test_conversion_rate_and_arpu_handle_no_users():
    assert analytics.conversion_rate(0, 0) == 0.0
    assert analytics.arpu(100, 0) == 0.0
    assert analytics.conversion_rate(1, 3) == 33.3
    assert analytics.arpu(100, 3) == 33.33


def test_estimate_mrr_rounds_to_cents():
    assert analytics.estimate_mrr(10, 29.99) == 299.90
    assert analytics.estimate_mrr(3, 9.999) == 30.0


def test_payment_stats_counts_only_completed_revenue():
    now = datetime(2025, 3, 15, 12, 0)
    payments = [
        Payment(amount=30.0, status="completed", created_at=datetime(2025, 3, 2)),
        Payment(amount=20.0, status="completed", created_at=datetime(2025, 2, 10)),
        Payment(amount=99.0, status="failed", created_at=datetime(2025, 3, 3)),
        Payment(amount=10.0, status="refunded", created_at=datetime(2025, 3, 4)),
    ]

    stats = analytics.payment_stats(payments, now=now)

    assert stats.total_revenue == 50.0
    assert stats.monthly_revenue == 30.0
    assert stats.success_rate == 50.0
    assert stats.average_payment == 25.0


def test_revenue_by_month_covers_six_months_oldest_first():
    now = datetime(2025, 2, 20)
    payments = [
        Payment(amount=10.0, status="completed", created_at=datetime(2025, 2, 1)),
        Payment(amount=5.0, status="completed", created_at=datetime(2024, 11, 30)),
        Payment(amount=7.0, status="completed", created_at=datetime(2024, 1, 1)),
    ]

    months = analytics.revenue_by_month(payments, now=now)

    assert [m.month for m in months] == ["2024-09", "2024-10", "2024-11", "2024-12", "2025-01", "2025-02"]
    assert months[2].revenue == 5.0
    assert months[-1].revenue == 10.0


def test_period_bounds():
    now = datetime(2025, 3, 31)
    start, previous_start = analytics.period_bounds("week", now)
    assert start == now - timedelta(days=7)
    assert previous_start == now - timedelta(days=14)

    with pytest.raises(ValueError):
        analytics.period_bounds("decade", now)


@pytest.mark.asyncio
async def test_mrr_estimated_when_stripe_unreachable(test_db, make_profile):
    test_db.add(SubscriptionPlan(name="Premium", price=29.99, features=[], is_active=True))
    await test_db.commit()
    for _ in range(10):
        await make_profile(is_subscribed=True)
    await make_profile(is_subscribed=False)

    with patch("stripe.Subscription.list", side_effect=stripe.APIConnectionError("network down")):
        result = await analytics.analytics(test_db, "month")

    assert result.performance.mrr_source == "estimate"
    assert result.performance.mrr == pytest.approx(299.90)
    assert result.performance.arr == pytest.approx(3598.80)
    assert result.performance.churn_rate is None
    assert result.users.total == 11
    assert result.conversion_rate == 90.9


@pytest.mark.asyncio
async def test_mrr_estimate_uses_default_price_without_plans(test_db, make_profile):
    await make_profile(is_subscribed=True)

    with patch("stripe.Subscription.list", side_effect=stripe.APIConnectionError("network down")):
        result = await analytics.analytics(test_db, "week")

    assert result.performance.mrr == pytest.approx(29.99)


@pytest.mark.asyncio
async def test_live_stripe_metrics_used_when_available(test_db, make_profile):
    await make_profile(is_subscribed=True)
    live = StripeAnalyticsResponse(
        mrr=120.5, churn_rate=10.0, retention_rate=90.0, payment_success_rate=97.5, trial_count=4
    )

    with patch("smart_risk.services.stripe_reporting.compute_stripe_analytics", return_value=live):
        result = await analytics.analytics(test_db, "year")

    assert result.performance.mrr_source == "stripe"
    assert result.performance.mrr == 120.5
    assert result.performance.trial_count == 4
    assert result.performance.retention_rate == 90.0


@pytest.mark.asyncio
async def test_malformed_stripe_payload_falls_back_to_estimate(test_db, make_profile, caplog):
    await make_profile(is_subscribed=True)

    with patch(
        "smart_risk.services.stripe_reporting.compute_stripe_analytics",
        side_effect=KeyError("data"),
    ):
        result = await analytics.analytics(test_db, "month")

    assert result.performance.mrr_source == "estimate"
    assert result.performance.mrr == pytest.approx(29.99)
    assert "could not be computed" in caplog.text


@pytest.mark.asyncio
async def test_revenue_growth_against_previous_period(test_db, make_profile):
    payer = await make_profile(is_subscribed=True)
    now = datetime.utcnow()
    test_db.add_all([
        Payment(user_id=payer.id, amount=60.0, status="completed", created_at=now - timedelta(days=2)),
        Payment(user_id=payer.id, amount=40.0, status="completed", created_at=now - timedelta(days=10)),
        Payment(user_id=payer.id, amount=500.0, status="failed", created_at=now - timedelta(days=1)),
    ])
    await test_db.commit()

    with patch("stripe.Subscription.list", side_effect=stripe.APIConnectionError("network down")):
        result = await analytics.analytics(test_db, "week", now=now)

    assert result.revenue.current == 60.0
    assert result.revenue.previous == 40.0
    assert result.revenue.growth == 50.0
    assert result.revenue.total == 100.0
    assert result.revenue.by_plan[0].name == "Pro"
    assert result.revenue.by_plan[0].percentage == 100.0
    # One completed and one failed payment in the current week
    assert result.performance.payment_success_rate == 50.0
