"""Tests for the admin back-office endpoints."""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from smart_risk.models.payment import Payment
from smart_risk.models.profile import Profile
from smart_risk.models.subscription_plan import SubscriptionPlan


@pytest.fixture
async def premium_plan(test_db):
    plan = SubscriptionPlan(name="Premium", price=29.99, features=["Calculateur de position"], is_active=True)
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return plan


@pytest.mark.asyncio
@pytest.mark.parametrize("path", [
    "/api/admin/dashboard",
    "/api/admin/analytics",
    "/api/admin/users",
    "/api/admin/plans",
    "/api/admin/payments",
    "/api/admin/quick-stats",
])
async def test_regular_users_are_forbidden(client, make_profile, headers_for, path):
    user = await make_profile()

    response = await client.get(path, headers=headers_for(user.id))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_routes_require_token(client):
    response = await client.get("/api/admin/dashboard")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_dashboard(client, test_db, admin_headers, make_profile, premium_plan):
    payer = await make_profile(is_subscribed=True, email="payer@example.com")
    test_db.add(Payment(user_id=payer.id, plan_id=premium_plan.id, amount=29.99, status="completed",
                        transaction_id="in_1"))
    await test_db.commit()

    response = await client.get("/api/admin/dashboard", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["total_users"] == 2
    assert data["stats"]["subscribed_users"] == 1
    assert data["stats"]["total_revenue"] == 29.99
    assert data["stats"]["conversion_rate"] == 50.0
    # Nobody existed a month ago
    assert data["stats"]["user_growth"] == 100.0
    assert len(data["recent_users"]) == 2
    assert data["recent_payments"][0]["user_email"] == "payer@example.com"
    assert data["recent_payments"][0]["plan_name"] == "Premium"


@pytest.mark.asyncio
async def test_analytics_endpoint_falls_back_to_estimate(client, admin_headers, make_profile, premium_plan):
    for _ in range(3):
        await make_profile(is_subscribed=True)

    with patch("smart_risk.services.analytics.fetch_live_metrics", return_value=None):
        response = await client.get("/api/admin/analytics", params={"time_range": "week"}, headers=admin_headers)

    assert response.status_code == 200
    performance = response.json()["performance"]
    assert performance["mrr_source"] == "estimate"
    assert performance["mrr"] == pytest.approx(89.97)


@pytest.mark.asyncio
async def test_analytics_rejects_unknown_range(client, admin_headers):
    response = await client.get("/api/admin/analytics", params={"time_range": "decade"}, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_subscription_stats(client, test_db, admin_headers, make_profile, premium_plan):
    test_db.add(SubscriptionPlan(name="Legacy", price=9.99, is_active=False))
    await test_db.commit()
    await make_profile(is_subscribed=True)

    response = await client.get("/api/admin/subscriptions/stats", headers=admin_headers)

    assert response.json() == {
        "total_plans": 2,
        "active_plans": 1,
        "total_subscribers": 1,
        "monthly_revenue": 29.99,
    }


@pytest.mark.asyncio
async def test_quick_stats(client, test_db, admin_headers, make_profile):
    user = await make_profile(is_subscribed=True)
    test_db.add(Payment(user_id=user.id, amount=10, status="completed"))
    await test_db.commit()

    response = await client.get("/api/admin/quick-stats", headers=admin_headers)

    data = response.json()
    assert data["total_users"] == 2
    assert data["subscribed_users"] == 1
    assert data["payments_today"] == 1


# -- users ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_users_search_and_filter(client, admin_headers, make_profile):
    await make_profile(email="alice@trading.com", full_name="Alice", is_subscribed=True)
    await make_profile(email="bob@trading.com", full_name="Bob")
    await make_profile(email="carol@other.com", full_name="Carol")

    response = await client.get("/api/admin/users", params={"search": "trading"}, headers=admin_headers)
    data = response.json()
    assert data["total"] == 2
    assert {u["email"] for u in data["items"]} == {"alice@trading.com", "bob@trading.com"}

    response = await client.get("/api/admin/users", params={"subscribed": "true"}, headers=admin_headers)
    assert [u["full_name"] for u in response.json()["items"]] == ["Alice"]

    response = await client.get("/api/admin/users", params={"role": "admin"}, headers=admin_headers)
    assert [u["email"] for u in response.json()["items"]] == ["admin@example.com"]


@pytest.mark.asyncio
async def test_list_users_sorted_and_paginated(client, admin_headers, make_profile):
    for name in ("Charlie", "Alpha", "Bravo"):
        await make_profile(full_name=name)

    response = await client.get(
        "/api/admin/users",
        params={"sort_by": "full_name", "sort_order": "asc", "limit": 2},
        headers=admin_headers,
    )

    data = response.json()
    assert [u["full_name"] for u in data["items"]] == ["Alpha", "Bravo"]
    assert data["limit"] == 2


@pytest.mark.asyncio
async def test_get_and_update_user(client, test_db, admin_headers, make_profile):
    user = await make_profile(full_name="Before")

    response = await client.get(f"/api/admin/users/{user.id}", headers=admin_headers)
    assert response.json()["full_name"] == "Before"

    response = await client.put(
        f"/api/admin/users/{user.id}",
        json={"role": "admin", "is_subscribed": True, "subscription_status": "active"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "admin"
    assert data["is_subscribed"] is True
    # Fields not sent are untouched
    assert data["full_name"] == "Before"


@pytest.mark.asyncio
async def test_update_user_rejects_unknown_role(client, admin_headers, make_profile):
    user = await make_profile()

    response = await client.put(f"/api/admin/users/{user.id}", json={"role": "owner"}, headers=admin_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_user_404(client, admin_headers):
    response = await client.get("/api/admin/users/does-not-exist", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_user(client, test_db, admin_headers, make_profile):
    user = await make_profile()

    response = await client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)

    assert response.status_code == 204
    test_db.expunge_all()
    assert await test_db.get(Profile, user.id) is None


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client, admin, admin_headers):
    response = await client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400


# -- plans ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_plan_lifecycle(client, admin_headers):
    response = await client.post(
        "/api/admin/plans",
        json={"name": "Premium", "price": 29.99, "features": [" Journal de trading ", ""]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    plan = response.json()
    assert plan["features"] == ["Journal de trading"]
    assert plan["is_active"] is True

    response = await client.put(f"/api/admin/plans/{plan['id']}", json={"price": 24.99}, headers=admin_headers)
    assert response.json()["price"] == 24.99
    assert response.json()["name"] == "Premium"

    response = await client.post(f"/api/admin/plans/{plan['id']}/toggle", headers=admin_headers)
    assert response.json()["is_active"] is False

    response = await client.get("/api/admin/plans", headers=admin_headers)
    assert [p["id"] for p in response.json()] == [plan["id"]]

    response = await client.delete(f"/api/admin/plans/{plan['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get("/api/admin/plans", headers=admin_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_plan_price_cannot_be_negative(client, admin_headers):
    response = await client.post("/api/admin/plans", json={"name": "Free", "price": -1}, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_plan_with_wrapped_features_is_read(client, test_db, admin_headers):
    test_db.add(SubscriptionPlan(name="Old", price=5, features={"features": ["A", "B"]}))
    await test_db.commit()

    response = await client.get("/api/admin/plans", headers=admin_headers)

    assert response.json()[0]["features"] == ["A", "B"]


# -- payments ------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_payments_with_search_and_status(client, test_db, admin_headers, make_profile, premium_plan):
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    now = datetime.utcnow()
    test_db.add_all([
        Payment(user_id=alice.id, plan_id=premium_plan.id, amount=29.99, status="completed",
                transaction_id="in_alice", created_at=now - timedelta(days=1)),
        Payment(user_id=bob.id, amount=29.99, status="failed", transaction_id="in_bob", created_at=now),
    ])
    await test_db.commit()

    response = await client.get("/api/admin/payments", headers=admin_headers)
    data = response.json()
    assert data["total"] == 2
    assert data["items"][0]["transaction_id"] == "in_bob"
    assert data["stats"]["total_revenue"] == 29.99
    assert data["stats"]["success_rate"] == 50.0

    response = await client.get("/api/admin/payments", params={"search": "alice"}, headers=admin_headers)
    items = response.json()["items"]
    assert [p["user_email"] for p in items] == ["alice@example.com"]
    assert items[0]["plan_name"] == "Premium"

    response = await client.get("/api/admin/payments", params={"status": "failed"}, headers=admin_headers)
    assert [p["transaction_id"] for p in response.json()["items"]] == ["in_bob"]

    response = await client.get("/api/admin/payments", params={"search": "in_ali"}, headers=admin_headers)
    assert response.json()["total"] == 1
