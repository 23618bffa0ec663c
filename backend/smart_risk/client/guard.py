"""Route guards: decide whether a protected page may render."""
import enum

from smart_risk.client.session import AuthSessionManager


class GuardDecision(enum.Enum):
    WAIT = "wait"
    REDIRECT = "redirect"
    ALLOW = "allow"
    DENY = "deny"


class RouteGuard:
    """Lets any signed-in user through; the profile is never consulted."""

    redirect_path = "/auth"

    def __init__(self, session: AuthSessionManager):
        self.session = session

    def check(self) -> GuardDecision:
        if self.session.loading:
            return GuardDecision.WAIT
        if self.session.user is None:
            return GuardDecision.REDIRECT
        return GuardDecision.ALLOW


class AdminGuard(RouteGuard):
    """Additionally requires the admin role on the profile."""

    def check(self) -> GuardDecision:
        decision = super().check()
        if decision is not GuardDecision.ALLOW:
            return decision
        return GuardDecision.ALLOW if self.session.is_admin else GuardDecision.DENY
