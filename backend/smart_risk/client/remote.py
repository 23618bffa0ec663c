"""
Remote Data Client: the single seam between application code and the
backend platform (auth, row storage, RPC and serverless functions).

Every remote failure surfaces as :class:`RemoteDataError`, whatever the
underlying library raised, so call sites only ever catch one exception type.
Auth operations are the exception to that rule: they hand back an
:class:`AuthResult` with the platform's error instead of raising.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from supabase import AsyncClient, acreate_client

from smart_risk.config import settings, warn_missing_settings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class RemoteDataError(Exception):
    """A call to the backend platform failed."""

    def __init__(self, operation: str, target: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.target = target
        self.cause = cause
        message = f"{operation} on {target} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


@dataclass(frozen=True)
class Filter:
    """A column predicate applied to select, update, delete and count."""

    column: str
    op: str
    value: Any

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def gte(cls, column: str, value: Any) -> "Filter":
        return cls(column, "gte", value)

    @classmethod
    def lt(cls, column: str, value: Any) -> "Filter":
        return cls(column, "lt", value)

    @classmethod
    def in_(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, "in_", list(values))

    def apply(self, query):
        return getattr(query, self.op)(self.column, self.value)


@dataclass
class QueryResult:
    data: List[Row]
    count: Optional[int] = None


@dataclass
class AuthResult:
    """Outcome of an auth operation; exactly one of ``data`` / ``error`` is usually set."""

    data: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _apply_filters(query, filters: Sequence[Filter]):
    for predicate in filters:
        query = predicate.apply(query)
    return query


class RemoteDataClient:
    """Thin async wrapper over the platform client library."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def create(cls, url: Optional[str] = None, key: Optional[str] = None) -> "RemoteDataClient":
        """Build a client from explicit credentials or the configured ones.

        Missing configuration is logged loudly but does not raise; the first
        remote call will fail instead.
        """
        url = url or settings.SUPABASE_URL
        key = key or settings.SUPABASE_ANON_KEY
        if not url or not key:
            warn_missing_settings()
        client = await acreate_client(url, key)
        return cls(client)

    # ------------------------------------------------------------------
    # Row storage
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        count: bool = False,
    ) -> QueryResult:
        try:
            query = self.client.table(table).select(columns, count="exact" if count else None)
            query = _apply_filters(query, filters)
            if order:
                query = query.order(order, desc=desc)
            if limit is not None:
                query = query.limit(limit)
            response = await query.execute()
        except Exception as e:
            raise RemoteDataError("select", table, e) from e
        return QueryResult(data=list(response.data or []), count=response.count)

    async def select_one(self, table: str, columns: str = "*", filters: Sequence[Filter] = ()) -> Optional[Row]:
        """First matching row, or None."""
        result = await self.select(table, columns, filters, limit=1)
        return result.data[0] if result.data else None

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        result = await self.select(table, "id", filters, count=True)
        return result.count if result.count is not None else len(result.data)

    async def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        try:
            response = await self.client.table(table).insert(rows).execute()
        except Exception as e:
            raise RemoteDataError("insert", table, e) from e
        return list(response.data or [])

    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise ValueError("update requires at least one filter")
        try:
            query = _apply_filters(self.client.table(table).update(values), filters)
            response = await query.execute()
        except Exception as e:
            raise RemoteDataError("update", table, e) from e
        return list(response.data or [])

    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        try:
            query = _apply_filters(self.client.table(table).delete(), filters)
            response = await query.execute()
        except Exception as e:
            raise RemoteDataError("delete", table, e) from e
        return list(response.data or [])

    async def upsert(self, table: str, rows: Union[Row, List[Row]], on_conflict: str) -> List[Row]:
        try:
            response = await self.client.table(table).upsert(rows, on_conflict=on_conflict).execute()
        except Exception as e:
            raise RemoteDataError("upsert", table, e) from e
        return list(response.data or [])

    async def rpc(self, function: str, params: Optional[Row] = None) -> Any:
        """Call a database procedure (runs with the procedure owner's privileges)."""
        try:
            response = await self.client.rpc(function, params or {}).execute()
        except Exception as e:
            raise RemoteDataError("rpc", function, e) from e
        return response.data

    # ------------------------------------------------------------------
    # Serverless functions
    # ------------------------------------------------------------------

    async def invoke(self, function: str, body: Optional[Row] = None, method: str = "POST") -> Any:
        """Invoke a serverless function and decode its JSON response."""
        options: Dict[str, Any] = {"method": method, "responseType": "json"}
        if body is not None:
            options["body"] = body
        try:
            response = await self.client.functions.invoke(function, invoke_options=options)
        except Exception as e:
            raise RemoteDataError("invoke", function, e) from e

        if isinstance(response, (bytes, bytearray)):
            response = response.decode("utf-8")
        if isinstance(response, str):
            try:
                return json.loads(response) if response else None
            except ValueError as e:
                raise RemoteDataError("invoke", function, e) from e
        return response

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> AuthResult:
        credentials: Row = {"email": email, "password": password}
        if full_name:
            credentials["options"] = {"data": {"full_name": full_name}}
        try:
            return AuthResult(data=await self.client.auth.sign_up(credentials))
        except Exception as e:
            logger.warning(f"Sign-up failed for {email}: {e}")
            return AuthResult(error=e)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            return AuthResult(data=await self.client.auth.sign_in_with_password({"email": email, "password": password}))
        except Exception as e:
            logger.info(f"Sign-in failed for {email}: {e}")
            return AuthResult(error=e)

    async def sign_out(self) -> AuthResult:
        try:
            await self.client.auth.sign_out()
            return AuthResult()
        except Exception as e:
            logger.warning(f"Sign-out failed: {e}")
            return AuthResult(error=e)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> AuthResult:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            return AuthResult(data=await self.client.auth.reset_password_for_email(email, options))
        except Exception as e:
            logger.warning(f"Password reset failed for {email}: {e}")
            return AuthResult(error=e)

    async def get_session(self) -> Any:
        try:
            return await self.client.auth.get_session()
        except Exception as e:
            raise RemoteDataError("get_session", "auth", e) from e

    def on_auth_state_change(self, callback: Callable[[str, Any], None]):
        """Subscribe to auth events; returns an object with ``unsubscribe()``."""
        return self.client.auth.on_auth_state_change(callback)
