"""Tests for the Remote Data Client wrapper and the auth session manager."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from smart_risk.client import (
    AuthSessionManager,
    Filter,
    PaymentRepository,
    PlanRepository,
    ProfileRepository,
    RemoteDataClient,
    RemoteDataError,
)
from smart_risk.client.session import user_from_session


# -- remote client -------------------------------------------------------


@pytest.mark.asyncio
async def test_library_errors_become_remote_data_errors():
    library = MagicMock()
    library.table.return_value.select.return_value.eq.return_value.execute = AsyncMock(
        side_effect=ConnectionError("connection reset")
    )
    remote = RemoteDataClient(library)

    with pytest.raises(RemoteDataError) as info:
        await remote.select("user_profiles", filters=[Filter.eq("id", "u1")])

    assert info.value.operation == "select"
    assert info.value.target == "user_profiles"
    assert isinstance(info.value.cause, ConnectionError)


@pytest.mark.asyncio
async def test_filters_are_applied_in_order():
    library = MagicMock()
    query = library.table.return_value.select.return_value
    query.gte.return_value = query
    query.in_.return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=[{"id": "p1"}], count=None))
    remote = RemoteDataClient(library)

    result = await remote.select(
        "payments", filters=[Filter.gte("amount", 10), Filter.in_("status", ("completed", "failed"))]
    )

    assert result.data == [{"id": "p1"}]
    query.gte.assert_called_once_with("amount", 10)
    query.in_.assert_called_once_with("status", ["completed", "failed"])


@pytest.mark.asyncio
async def test_update_without_filter_refused():
    remote = RemoteDataClient(MagicMock())
    with pytest.raises(ValueError):
        await remote.update("user_profiles", {"is_subscribed": True}, [])


@pytest.mark.asyncio
async def test_invoke_decodes_json_bytes():
    library = MagicMock()
    library.functions.invoke = AsyncMock(return_value=b'{"site_name": "Smart Risk"}')
    remote = RemoteDataClient(library)

    assert await remote.invoke("site-settings", method="GET") == {"site_name": "Smart Risk"}
    options = library.functions.invoke.call_args.kwargs["invoke_options"]
    assert options["method"] == "GET"
    assert "body" not in options


@pytest.mark.asyncio
async def test_auth_failures_are_returned_not_raised():
    library = MagicMock()
    library.auth.sign_in_with_password = AsyncMock(side_effect=RuntimeError("Invalid login credentials"))
    remote = RemoteDataClient(library)

    result = await remote.sign_in("a@example.com", "wrong")

    assert not result.ok
    assert "Invalid login" in str(result.error)


def test_user_from_session_accepts_dicts_and_objects():
    assert user_from_session(None) is None
    assert user_from_session({"user": {"id": "u1", "email": "a@example.com"}}).email == "a@example.com"
    session = MagicMock()
    session.user.id = "u2"
    session.user.email = None
    assert user_from_session(session).id == "u2"


# -- session manager -----------------------------------------------------


@pytest.fixture
async def manager(remote):
    mgr = AuthSessionManager(remote)
    await mgr.start()
    await mgr.settle()
    yield mgr
    await mgr.stop()


@pytest.mark.asyncio
async def test_starts_signed_out(manager):
    assert manager.ready.is_set()
    assert manager.loading is False
    assert manager.user is None
    assert manager.profile is None
    assert manager.is_authenticated is False


@pytest.mark.asyncio
async def test_sign_in_loads_profile(manager, remote):
    user_id = remote.add_account("trader@example.com", "secret")
    remote.tables["user_profiles"].append(
        {"id": user_id, "email": "trader@example.com", "role": "admin", "is_subscribed": True}
    )

    result = await manager.sign_in("trader@example.com", "secret")
    await manager.settle()

    assert result.ok
    assert manager.user.id == user_id
    assert manager.profile.is_subscribed is True
    assert manager.is_admin is True
    assert manager.last_email == "trader@example.com"


@pytest.mark.asyncio
async def test_invalid_credentials_leave_user_unset(manager, remote):
    remote.add_account("trader@example.com", "secret")

    result = await manager.sign_in("trader@example.com", "wrong")
    await manager.settle()

    assert result.ok is False
    assert manager.user is None


@pytest.mark.asyncio
async def test_user_without_profile_needs_setup(manager, remote):
    remote.add_account("new@example.com", "secret")

    await manager.sign_in("new@example.com", "secret")
    await manager.settle()

    assert manager.user is not None
    assert manager.profile is None
    assert manager.needs_profile_setup is True
    assert await manager.refresh_profile() is None


@pytest.mark.asyncio
async def test_profile_fetch_failure_keeps_user(manager, remote):
    remote.add_account("trader@example.com", "secret")
    remote.failures.add(("select", "user_profiles"))

    await manager.sign_in("trader@example.com", "secret")
    await manager.settle()

    assert manager.user is not None
    assert manager.profile is None


@pytest.mark.asyncio
async def test_sign_out_clears_state(manager, remote):
    user_id = remote.add_account("trader@example.com", "secret")
    remote.tables["user_profiles"].append({"id": user_id, "role": "user"})
    await manager.sign_in("trader@example.com", "secret")
    await manager.settle()

    await manager.sign_out()
    await manager.settle()

    assert manager.user is None
    assert manager.profile is None
    assert manager.last_email == "trader@example.com"


@pytest.mark.asyncio
async def test_events_applied_in_arrival_order(remote):
    first = remote.add_account("first@example.com", "pw")
    remote.tables["user_profiles"].append({"id": first, "role": "user"})
    remote.select_delay["user_profiles"] = 0.05
    mgr = AuthSessionManager(remote)
    await mgr.start()

    await mgr.sign_in("first@example.com", "pw")
    await mgr.sign_out()
    await mgr.settle()

    # The slow profile read for the sign-in must not win over the later sign-out
    assert mgr.user is None
    assert mgr.profile is None
    await mgr.stop()


@pytest.mark.asyncio
async def test_existing_session_restored_on_start(remote):
    user_id = remote.add_account("trader@example.com", "secret")
    remote.session = remote._session_for(remote.accounts["trader@example.com"])
    mgr = AuthSessionManager(remote)

    await mgr.start()
    assert await mgr.wait_ready(timeout=1)

    assert mgr.user.id == user_id
    await mgr.stop()


@pytest.mark.asyncio
async def test_unreadable_session_treated_as_signed_out(remote):
    remote.failures.add("get_session")
    mgr = AuthSessionManager(remote)

    await mgr.start()
    await mgr.settle()

    assert mgr.ready.is_set()
    assert mgr.user is None
    await mgr.stop()


@pytest.mark.asyncio
async def test_wait_for_user_times_out(manager):
    assert await manager.wait_for_user(0.01) is None


@pytest.mark.asyncio
async def test_wait_for_user_sees_late_sign_in(manager, remote):
    remote.add_account("late@example.com", "pw")

    async def sign_in_later():
        await asyncio.sleep(0.02)
        await manager.sign_in("late@example.com", "pw")

    task = asyncio.create_task(sign_in_later())
    user = await manager.wait_for_user(1.0)
    await task

    assert user is not None
    assert user.email == "late@example.com"


@pytest.mark.asyncio
async def test_profile_repository_self_update_validates_before_request(remote):
    repo = ProfileRepository(remote)
    remote.tables["user_profiles"].append({"id": "u1", "full_name": "Old"})

    updated = await repo.update_self("u1", "New")
    assert updated.full_name == "New"

    with pytest.raises(ValueError):
        await repo.update_self("u1", "")
    assert remote.tables["user_profiles"][0]["full_name"] == "New"


@pytest.mark.asyncio
async def test_payment_and_plan_repositories_return_records(remote):
    remote.tables["payments"].extend([
        {"id": "p1", "amount": 29.99, "status": "completed", "created_at": "2025-01-01T00:00:00"},
        {"id": "p2", "amount": 9.99, "status": "failed", "created_at": "2025-02-01T00:00:00"},
    ])
    remote.tables["subscription_plans"].extend([
        {"id": "plan-b", "name": "Premium", "price": 29.99, "features": ["Journal"], "is_active": True},
        {"id": "plan-a", "name": "Legacy", "price": 9.99, "features": None, "is_active": False},
    ])

    recent = await PaymentRepository(remote).recent(limit=1)
    plans = await PlanRepository(remote).active()

    assert [p.id for p in recent] == ["p2"]
    assert recent[0].status == "failed"
    assert [p.name for p in plans] == ["Premium"]
    assert plans[0].features == ["Journal"]


@pytest.mark.asyncio
async def test_sign_up_and_reset_pass_results_through(manager):
    created = await manager.sign_up("new@example.com", "pw", "New Trader")
    duplicate = await manager.sign_up("new@example.com", "pw", "New Trader")
    reset = await manager.reset_password("new@example.com")

    assert created.ok
    assert created.data["user"]["email"] == "new@example.com"
    assert duplicate.ok is False
    assert "already registered" in str(duplicate.error)
    assert reset.ok


@pytest.mark.asyncio
async def test_malformed_profile_row_leaves_profile_unset(manager, remote):
    user_id = remote.add_account("trader@example.com", "secret")
    remote.tables["user_profiles"].append({"id": user_id, "role": "user", "is_subscribed": None})

    await manager.sign_in("trader@example.com", "secret")
    await manager.settle()

    assert manager.user.id == user_id
    assert manager.profile is None
    assert await manager.refresh_profile() is None
    assert manager.loading is False
