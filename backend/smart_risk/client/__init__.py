"""Client SDK for the Smart Risk Management backend platform."""
from smart_risk.client.remote import AuthResult, Filter, QueryResult, RemoteDataClient, RemoteDataError
from smart_risk.client.repositories import (
    JournalRepository,
    PaymentRepository,
    PlanRepository,
    PositionCalculationRepository,
    ProfileRepository,
    TradingSettingsRepository,
)
from smart_risk.client.session import AuthSessionManager, AuthUser
from smart_risk.client.reconciliation import (
    ActivationResult,
    DirectProfileActivation,
    PrivilegedActivation,
    SubscriptionReconciler,
)
from smart_risk.client.guard import AdminGuard, GuardDecision, RouteGuard
from smart_risk.client.settings_store import ContentSettingsStore
from smart_risk.client.polling import PeriodicTask
from smart_risk.client.quick_stats import QuickStatsPoller

__all__ = [
    "ActivationResult",
    "AdminGuard",
    "AuthResult",
    "AuthSessionManager",
    "AuthUser",
    "ContentSettingsStore",
    "DirectProfileActivation",
    "Filter",
    "GuardDecision",
    "JournalRepository",
    "PaymentRepository",
    "PeriodicTask",
    "PlanRepository",
    "PositionCalculationRepository",
    "PrivilegedActivation",
    "ProfileRepository",
    "QueryResult",
    "QuickStatsPoller",
    "RemoteDataClient",
    "RemoteDataError",
    "RouteGuard",
    "SubscriptionReconciler",
    "TradingSettingsRepository",
]
