"""Built-in site content and settings.

Stored ``site_settings`` rows always win over these values; the defaults only
fill keys nobody has edited yet.
"""
import json
from typing import Any, Dict

DEFAULT_CATEGORY = "general"

# Categories readable without authentication
PUBLIC_CATEGORIES = ("landing_page", "general", "appearance")

SETTING_CATEGORIES: Dict[str, str] = {
    "site_name": "general",
    "site_title": "general",
    "site_url": "general",
    "site_favicon": "general",
    "contact_email": "email",
    "support_email": "email",
    "maintenance_mode": "general",
    "allow_registrations": "security",
    "require_email_verification": "security",
    "auto_backup": "database",
    "backup_frequency": "database",
    "email_notifications": "notifications",
    "payment_notifications": "notifications",
    "error_notifications": "notifications",
    "primary_color": "appearance",
    "secondary_color": "appearance",
    "dark_mode": "appearance",
    "stripe_webhook_secret": "payment",
    "smtp_host": "email",
    "smtp_port": "email",
    "smtp_user": "email",
    "smtp_password": "email",
    "email_from_name": "email",
    "email_from_address": "email",
}

LANDING_KEY_PREFIXES = ("hero_", "features_", "benefits_", "pricing_")


def category_for_key(key: str) -> str:
    """Category a setting key is stored under."""
    if key in SETTING_CATEGORIES:
        return SETTING_CATEGORIES[key]
    if key.startswith(LANDING_KEY_PREFIXES):
        return "landing_page"
    return DEFAULT_CATEGORY


DEFAULT_SETTINGS: Dict[str, Any] = {
    "site_name": "Smart Risk Management",
    "site_title": "Smart Risk Management - Gestion intelligente des risques",
    "site_url": "https://smartrisk.com",
    "site_favicon": "/favicon.ico",
    "contact_email": "contact@smartrisk.com",
    "support_email": "support@smartrisk.com",
    "maintenance_mode": False,
    "allow_registrations": True,
    "require_email_verification": True,
    "auto_backup": True,
    "backup_frequency": "daily",
    "email_notifications": True,
    "payment_notifications": True,
    "error_notifications": True,
    "primary_color": "#3B82F6",
    "secondary_color": "#8B5CF6",
    "dark_mode": True,
    "stripe_webhook_secret": "",
    "smtp_host": "",
    "smtp_port": 587,
    "smtp_user": "",
    "smtp_password": "",
    "email_from_name": "Smart Risk Management",
    "email_from_address": "noreply@smartrisk.com",
}

DEFAULT_LANDING_CONTENT: Dict[str, Dict[str, str]] = {
    # Hero
    "hero_badge": {
        "fr": "Approuvé par 5,420+ Traders Professionnels",
        "en": "Trusted by 5,420+ Professional Traders",
    },
    "hero_title": {"fr": "Transformez Votre Trading avec", "en": "Transform Your Trading with"},
    "hero_title_highlight": {
        "fr": "une Gestion de Risque Intelligente",
        "en": "Intelligent Risk Management",
    },
    "hero_subtitle": {
        "fr": (
            "Arrêtez de perdre de l'argent à cause d'une mauvaise gestion de risque. "
            "Notre plateforme IA vous aide à faire des trades plus intelligents, à protéger "
            "votre capital et à atteindre une rentabilité constante."
        ),
        "en": (
            "Stop losing money to poor risk management. Our AI-powered platform helps you "
            "make smarter trades, protect your capital, and achieve consistent profitability."
        ),
    },
    "hero_cta_main": {"fr": "Commencer l'essai de 14 jours", "en": "Start 14-Day Free Trial"},
    "hero_cta_secondary": {"fr": "Voir la Démo", "en": "Watch Demo"},
    "hero_trust_1": {"fr": "Aucune carte de crédit requise", "en": "No credit card required"},
    "hero_trust_2": {"fr": "Sécurité de niveau bancaire", "en": "Bank-level security"},
    "hero_trust_3": {"fr": "Installation en 2 minutes", "en": "Setup in 2 minutes"},
    # Features
    "features_title": {"fr": "Tout ce dont vous avez besoin pour", "en": "Everything You Need to"},
    "features_title_highlight": {"fr": "Trader Plus Intelligemment", "en": "Trade Smarter"},
    "features_subtitle": {
        "fr": (
            "Notre suite d'outils complète vous donne l'avantage dont vous avez besoin "
            "sur les marchés volatiles d'aujourd'hui."
        ),
        "en": "Our comprehensive suite of tools gives you the edge you need in today's volatile markets",
    },
    # Benefits
    "benefits_title": {"fr": "Pourquoi les Traders Choisissent", "en": "Why Traders Choose"},
    "benefits_title_highlight": {"fr": "Smart Risk Manager", "en": "Smart Risk Manager"},
    "benefits_subtitle": {
        "fr": "Rejoignez des milliers de traders rentables qui ont transformé leurs résultats.",
        "en": "Join thousands of profitable traders who transformed their results",
    },
    # Pricing
    "pricing_title": {"fr": "Choisissez Votre Voie vers", "en": "Choose Your Path to"},
    "pricing_title_highlight": {"fr": "un Trading Rentable", "en": "Profitable Trading"},
    "pricing_subtitle": {
        "fr": "Commencez avec notre essai gratuit de 14 jours. Aucune carte de crédit requise.",
        "en": "Start with our 14-day free trial. No credit card required.",
    },
    "pricing_popular_badge": {"fr": "LE PLUS POPULAIRE", "en": "MOST POPULAR"},
    "pricing_cta_button": {"fr": "Commencer l'essai gratuit", "en": "Start Free Trial"},
    "pricing_guarantee": {"fr": "Garantie Satisfait ou Remboursé de 30 jours", "en": "30-Day Money-Back Guarantee"},
}

DEFAULT_PLAN = {
    "name": "Premium",
    "price": 29.99,
    "features": [
        "Calculateur de position",
        "Journal de trading",
        "Checklist pré-trade",
        "Analyses avancées",
    ],
    "is_active": True,
}


def all_defaults() -> Dict[str, Any]:
    """Settings defaults and landing content in one fresh dict."""
    merged: Dict[str, Any] = dict(DEFAULT_SETTINGS)
    merged.update({key: dict(value) for key, value in DEFAULT_LANDING_CONTENT.items()})
    return merged


def localized(value: Any, language: str = "fr") -> Any:
    """Pick one language out of a ``{"fr": ..., "en": ...}`` value.

    Non-bilingual values are returned unchanged; a missing language falls
    back to French, the site's primary language.
    """
    if isinstance(value, dict) and ("fr" in value or "en" in value):
        return value.get(language) or value.get("fr") or value.get("en")
    return value


def parse_value(value: Any) -> Any:
    """Decode values that were stored JSON-encoded as strings; leave the rest alone."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value
