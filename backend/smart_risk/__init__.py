"""
Smart Risk Management - backend service and client SDK.

The server side exposes the platform functions, the Stripe webhook and the
admin back-office API. ``smart_risk.client`` holds the session manager and
subscription reconciliation used by the front-end.
"""

__version__ = "1.0.0"
