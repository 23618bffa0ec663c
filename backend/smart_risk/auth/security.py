"""Verification of access tokens issued by the backend platform's auth service."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from smart_risk.config import settings

logger = logging.getLogger(__name__)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and verify a platform access token.

    Returns the claims, or None when the signature, expiry or audience does
    not check out (or no secret is configured).
    """
    if not settings.SUPABASE_JWT_SECRET:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting bearer token")
        return None
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


def create_access_token(user_id: str, email: Optional[str] = None, expires_minutes: int = 60) -> str:
    """
    Sign a token shaped like the platform's own access tokens.

    The service never issues tokens to end users; this is used by scripts
    and tests that need to call authenticated endpoints.
    """
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
