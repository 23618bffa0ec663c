"""Pytest configuration and fixtures."""
import asyncio
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from smart_risk.config import settings
from smart_risk.database import Base, get_db
from smart_risk.models.profile import Profile
from smart_risk.auth.security import create_access_token
from smart_risk.client.remote import AuthResult, QueryResult, RemoteDataClient, RemoteDataError
from smart_risk.rate_limit import limiter

settings.SUPABASE_JWT_SECRET = "test-jwt-secret"
settings.STRIPE_SECRET_KEY = "sk_test_123"
settings.STRIPE_WEBHOOK_SECRET = "whsec_test_123"
limiter.enabled = False

from main import app  # noqa: E402


@pytest.fixture
async def test_db():
    """Create test database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    AsyncSessionLocal = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with AsyncSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def client(test_db):
    """HTTP client bound to the app, with the test database injected."""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(test_db):
    """Factory persisting a profile row."""
    async def _make(role: str = "user", **fields) -> Profile:
        profile = Profile(
            id=fields.pop("id", str(uuid.uuid4())),
            email=fields.pop("email", f"{uuid.uuid4().hex[:8]}@example.com"),
            full_name=fields.pop("full_name", "Test Trader"),
            role=role,
            **fields,
        )
        test_db.add(profile)
        await test_db.commit()
        await test_db.refresh(profile)
        return profile

    return _make


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def headers_for():
    """Bearer headers for a user id."""
    return auth_headers


@pytest.fixture
async def admin(make_profile):
    return await make_profile(role="admin", email="admin@example.com")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin.id)


# ---------------------------------------------------------------------------
# In-memory Remote Data Client
# ---------------------------------------------------------------------------

class FakeSubscription:
    def __init__(self, listeners: List[Callable], callback: Callable):
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self):
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class FakeRemoteDataClient(RemoteDataClient):
    """Tables as lists of dicts; failures and latency are switchable per operation."""

    def __init__(self):
        super().__init__(client=None)
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.failures: set = set()
        self.select_delay: Dict[str, float] = {}
        self.functions: Dict[str, Callable[[Optional[dict], str], Any]] = {}
        self.rpc_calls: List[tuple] = []
        self.invocations: List[tuple] = []
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.session: Optional[Dict[str, Any]] = None
        self._listeners: List[Callable] = []
        self.procedures: Dict[str, Callable[[dict], Any]] = {
            "activate_user_subscription": self._activate_user_subscription,
        }

    # -- helpers -----------------------------------------------------------

    def _check(self, operation: str, target: str):
        if operation in self.failures or (operation, target) in self.failures:
            raise RemoteDataError(operation, target, RuntimeError("simulated outage"))

    @staticmethod
    def _matches(row, filters) -> bool:
        for f in filters:
            value = row.get(f.column)
            if f.op == "eq" and value != f.value:
                return False
            if f.op == "gte" and (value is None or value < f.value):
                return False
            if f.op == "lt" and (value is None or value >= f.value):
                return False
            if f.op == "in_" and value not in f.value:
                return False
        return True

    def _emit(self, event: str, session):
        for listener in list(self._listeners):
            listener(event, session)

    def _activate_user_subscription(self, params):
        caller = (self.session or {}).get("user", {}).get("id")
        if params.get("user_id") != caller:
            raise RemoteDataError("rpc", "activate_user_subscription", PermissionError("forbidden"))
        rows = self.tables["user_profiles"]
        for row in rows:
            if row["id"] == params["user_id"]:
                row["is_subscribed"] = True
                return None
        rows.append({"id": params["user_id"], "role": "user", "is_subscribed": True})
        return None

    # -- storage -----------------------------------------------------------

    async def select(self, table, columns="*", filters=(), order=None, desc=False, limit=None, count=False):
        self._check("select", table)
        if table in self.select_delay:
            await asyncio.sleep(self.select_delay[table])
        rows = [dict(r) for r in self.tables[table] if self._matches(r, filters)]
        total = len(rows)
        if order:
            rows.sort(key=lambda r: (r.get(order) is None, r.get(order)), reverse=desc)
        if limit is not None:
            rows = rows[:limit]
        return QueryResult(data=rows, count=total if count else None)

    async def insert(self, table, rows):
        self._check("insert", table)
        rows = rows if isinstance(rows, list) else [rows]
        existing_ids = {r.get("id") for r in self.tables[table]}
        for row in rows:
            if row.get("id") is not None and row["id"] in existing_ids:
                raise RemoteDataError("insert", table, RuntimeError("duplicate key value"))
        self.tables[table].extend(dict(r) for r in rows)
        return [dict(r) for r in rows]

    async def update(self, table, values, filters):
        self._check("update", table)
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        self._check("delete", table)
        kept = [r for r in self.tables[table] if not self._matches(r, filters)]
        removed = [r for r in self.tables[table] if self._matches(r, filters)]
        self.tables[table] = kept
        return removed

    async def upsert(self, table, rows, on_conflict):
        self._check("upsert", table)
        rows = rows if isinstance(rows, list) else [rows]
        keys = [k.strip() for k in on_conflict.split(",")]
        stored = []
        for row in rows:
            for existing in self.tables[table]:
                if all(existing.get(k) == row.get(k) for k in keys):
                    existing.update(row)
                    stored.append(dict(existing))
                    break
            else:
                self.tables[table].append(dict(row))
                stored.append(dict(row))
        return stored

    async def rpc(self, function, params=None):
        self._check("rpc", function)
        self.rpc_calls.append((function, params))
        return self.procedures[function](params or {})

    async def invoke(self, function, body=None, method="POST"):
        self._check("invoke", function)
        self.invocations.append((function, body, method))
        handler = self.functions.get(function)
        if handler is None:
            raise RemoteDataError("invoke", function, RuntimeError("function not deployed"))
        return handler(body, method)

    # -- auth --------------------------------------------------------------

    def add_account(self, email: str, password: str, user_id: Optional[str] = None) -> str:
        user_id = user_id or str(uuid.uuid4())
        self.accounts[email] = {"id": user_id, "email": email, "password": password}
        return user_id

    def _session_for(self, account):
        return {
            "access_token": f"token-{account['id']}",
            "refresh_token": "refresh",
            "expires_at": int(datetime.utcnow().timestamp()) + 3600,
            "user": {"id": account["id"], "email": account["email"]},
        }

    async def sign_up(self, email, password, full_name=None):
        if email in self.accounts:
            return AuthResult(error=ValueError("User already registered"))
        user_id = self.add_account(email, password)
        return AuthResult(data={"user": {"id": user_id, "email": email}})

    async def sign_in(self, email, password):
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            return AuthResult(error=ValueError("Invalid login credentials"))
        self.session = self._session_for(account)
        self._emit("SIGNED_IN", self.session)
        return AuthResult(data=self.session)

    async def sign_out(self):
        self.session = None
        self._emit("SIGNED_OUT", None)
        return AuthResult()

    async def reset_password(self, email, redirect_to=None):
        return AuthResult(data={})

    async def get_session(self):
        self._check("get_session", "auth")
        return self.session

    def on_auth_state_change(self, callback):
        self._listeners.append(callback)
        return FakeSubscription(self._listeners, callback)


@pytest.fixture
def remote():
    return FakeRemoteDataClient()
