"""Database models for the Smart Risk Management service."""
from smart_risk.models.profile import Profile
from smart_risk.models.subscription_plan import SubscriptionPlan
from smart_risk.models.payment import Payment
from smart_risk.models.site_setting import SiteSetting
from smart_risk.models.trading_journal import TradingJournalEntry
from smart_risk.models.trading_settings import UserTradingSettings
from smart_risk.models.position_calculation import PositionCalculation

__all__ = [
    "Profile",
    "SubscriptionPlan",
    "Payment",
    "SiteSetting",
    "TradingJournalEntry",
    "UserTradingSettings",
    "PositionCalculation",
]
