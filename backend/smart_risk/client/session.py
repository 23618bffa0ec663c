"""Auth Session Manager: the client's view of who is signed in."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from smart_risk.client.remote import AuthResult, RemoteDataClient, RemoteDataError
from smart_risk.client.repositories import ProfileRepository
from smart_risk.schemas.profiles import ProfileRecord

logger = logging.getLogger(__name__)

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def user_from_session(session: Any) -> Optional[AuthUser]:
    """Identity carried by a platform session (object or dict form)."""
    user = _field(session, "user")
    user_id = _field(user, "id")
    if not user_id:
        return None
    return AuthUser(id=str(user_id), email=_field(user, "email"))


class AuthSessionManager:
    """
    Tracks the current session, user and profile.

    Auth events are queued and applied one at a time by a single consumer
    task, so a slow profile fetch can never be overtaken by a later event.
    Nothing here raises on remote failures: the profile is simply ``None``.
    """

    def __init__(self, remote: RemoteDataClient, profiles: Optional[ProfileRepository] = None):
        self.remote = remote
        self.profiles = profiles or ProfileRepository(remote)

        self.session: Any = None
        self.user: Optional[AuthUser] = None
        self.profile: Optional[ProfileRecord] = None
        self.loading = True
        self.last_email: Optional[str] = None

        self.ready = asyncio.Event()
        self._user_present = asyncio.Event()
        self._events: "asyncio.Queue[tuple[str, Any]]" = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._subscription = None

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to auth changes and process the current session."""
        if self._consumer is not None:
            return
        self._consumer = asyncio.create_task(self._consume(), name="auth-session-events")
        self._subscription = self.remote.on_auth_state_change(self._on_auth_event)

        try:
            session = await self.remote.get_session()
        except RemoteDataError as e:
            logger.error(f"Could not read the current session: {e}")
            session = None
        self._events.put_nowait((INITIAL_SESSION, session))

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

    def _on_auth_event(self, event: str, session: Any) -> None:
        self._events.put_nowait((str(event), session))

    async def _consume(self) -> None:
        while True:
            event, session = await self._events.get()
            try:
                await self._apply(event, session)
            except Exception as e:
                # One bad event must not stop the stream
                logger.exception(f"Failed to apply auth event {event}: {e}")
            finally:
                self._events.task_done()
                if not self.ready.is_set():
                    self.loading = False
                    self.ready.set()

    async def _apply(self, event: str, session: Any) -> None:
        logger.debug(f"Auth event: {event}")
        self.session = None if event == SIGNED_OUT else session
        self.user = user_from_session(self.session)

        if self.user is None:
            self.profile = None
            self._user_present.clear()
            return

        if self.user.email:
            self.last_email = self.user.email
        self._user_present.set()
        await self._load_profile()

    async def _load_profile(self) -> None:
        if self.user is None:
            self.profile = None
            return
        try:
            self.profile = await self.profiles.get(self.user.id)
        except RemoteDataError as e:
            logger.error(f"Failed to load profile for {self.user.id}: {e}")
            self.profile = None

    # -- derived state -----------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.profile is not None and self.profile.is_admin

    @property
    def needs_profile_setup(self) -> bool:
        return self.user is not None and self.profile is None

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self.ready.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def settle(self) -> None:
        """Wait until every auth event queued so far has been applied."""
        await self._events.join()

    async def wait_for_user(self, timeout: float) -> Optional[AuthUser]:
        """The signed-in user, waiting up to ``timeout`` seconds for one to appear."""
        try:
            await asyncio.wait_for(self._user_present.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self.user

    # -- operations --------------------------------------------------------

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> AuthResult:
        return await self.remote.sign_up(email, password, full_name)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        return await self.remote.sign_in(email, password)

    async def sign_out(self) -> AuthResult:
        return await self.remote.sign_out()

    async def reset_password(self, email: str) -> AuthResult:
        return await self.remote.reset_password(email)

    async def refresh_profile(self) -> Optional[ProfileRecord]:
        """Re-read the profile of the current user."""
        self.loading = True
        try:
            await self._load_profile()
        finally:
            self.loading = False
        return self.profile
