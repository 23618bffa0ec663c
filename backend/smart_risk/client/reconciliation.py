"""
Subscription reconciliation after the checkout redirect.

The webhook is the source of truth for billing state, but it can lag behind
the browser coming back from checkout. This workflow marks the returning
user as subscribed straight away so they are not bounced off paid pages.

Strategies are tried in order until one succeeds:

``DirectProfileActivation``
    reads the profile under the user's own credentials, inserting it when
    missing and flipping ``is_subscribed`` otherwise;
``PrivilegedActivation``
    calls the ``activate_user_subscription`` procedure, which runs with
    elevated privileges and is not subject to row level security.

Both are idempotent, and neither ever writes a payment row.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from smart_risk.client.remote import RemoteDataClient, RemoteDataError
from smart_risk.client.repositories import ProfileRepository
from smart_risk.client.session import AuthSessionManager, AuthUser
from smart_risk.config import settings

logger = logging.getLogger(__name__)

SUCCESS = "success"
SUCCESS_WITH_FALLBACK = "success_with_fallback"
FAILED = "failed"

APP_PATH = "/app"


class ActivationStrategy:
    """One way of marking a user as subscribed; raises on failure."""

    name = "strategy"

    async def activate(self, user: AuthUser) -> None:
        raise NotImplementedError


class DirectProfileActivation(ActivationStrategy):
    name = "direct"

    def __init__(self, profiles: ProfileRepository, fetch_timeout: Optional[float] = None):
        self.profiles = profiles
        self.fetch_timeout = (
            settings.RECONCILIATION_FETCH_TIMEOUT_SECONDS if fetch_timeout is None else fetch_timeout
        )

    async def activate(self, user: AuthUser) -> None:
        try:
            profile = await asyncio.wait_for(self.profiles.get(user.id), self.fetch_timeout)
        except asyncio.TimeoutError:
            raise RemoteDataError("select", self.profiles.table, TimeoutError(f"no answer after {self.fetch_timeout}s"))

        if profile is None:
            logger.info(f"No profile for {user.id}; creating it as subscribed")
            await self.profiles.create(user.id, user.email, is_subscribed=True)
        elif not profile.is_subscribed:
            await self.profiles.set_subscribed(user.id, True)


class PrivilegedActivation(ActivationStrategy):
    name = "privileged"
    procedure = "activate_user_subscription"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def activate(self, user: AuthUser) -> None:
        await self.remote.rpc(self.procedure, {"user_id": user.id})


@dataclass
class ActivationResult:
    outcome: str
    strategy: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    email: Optional[str] = None
    redirect_to: Optional[str] = None
    redirect_after: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (SUCCESS, SUCCESS_WITH_FALLBACK)


class SubscriptionReconciler:
    """Runs the activation strategies for the signed-in user."""

    def __init__(
        self,
        session: AuthSessionManager,
        strategies: Optional[Sequence[ActivationStrategy]] = None,
        user_wait: Optional[float] = None,
        redirect_delay: Optional[float] = None,
    ):
        self.session = session
        self.strategies = list(strategies) if strategies is not None else [
            DirectProfileActivation(session.profiles),
            PrivilegedActivation(session.remote),
        ]
        self.user_wait = settings.RECONCILIATION_USER_WAIT_SECONDS if user_wait is None else user_wait
        self.redirect_delay = (
            settings.RECONCILIATION_REDIRECT_DELAY_SECONDS if redirect_delay is None else redirect_delay
        )

    async def run(self) -> ActivationResult:
        user = await self.session.wait_for_user(self.user_wait)
        if user is None:
            logger.error("Checkout returned without a signed-in user; manual activation needed")
            return ActivationResult(
                outcome=FAILED,
                errors=["No signed-in user after checkout"],
                email=self.session.last_email,
            )

        errors: List[str] = []
        for position, strategy in enumerate(self.strategies):
            try:
                await strategy.activate(user)
            except RemoteDataError as e:
                logger.warning(f"Activation strategy {strategy.name} failed for {user.id}: {e}")
                errors.append(f"{strategy.name}: {e}")
                continue

            logger.info(f"Subscription activated for {user.id} via {strategy.name}")
            await self.session.refresh_profile()
            return ActivationResult(
                outcome=SUCCESS if position == 0 else SUCCESS_WITH_FALLBACK,
                strategy=strategy.name,
                errors=errors,
                email=user.email,
                redirect_to=APP_PATH,
                redirect_after=self.redirect_delay,
            )

        logger.error(f"All activation strategies failed for {user.id}: {errors}")
        return ActivationResult(outcome=FAILED, errors=errors, email=user.email or self.session.last_email)
