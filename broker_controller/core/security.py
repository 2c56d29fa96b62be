"""Operator tokens for the admin API.

Only the endpoints that trigger a reconcile or finalize are guarded. A token
is an HS256 JWT (python-jose) naming the operator in ``sub`` and carrying the
``brokers:reconcile`` scope. No FastAPI imports here.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt  # python-jose

from broker_controller.core.config import Settings, get_settings

RECONCILE_SCOPE = "brokers:reconcile"


class TokenValidationError(Exception):
    """Raised when a JWT is missing, invalid or lacks the reconcile scope."""


def create_access_token(
    subject: str,
    *,
    scopes: tuple[str, ...] = (RECONCILE_SCOPE,),
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Sign a token for *subject*; lifetime defaults to ``access_token_expire_minutes``."""
    settings = settings or get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": subject,
        "scope": " ".join(scopes),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str, settings: Settings | None = None) -> Dict[str, Any]:
    """Validate *token* and return its claims.

    Raises
    ------
    TokenValidationError
        Malformed, expired or badly signed token, or no reconcile scope.
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise TokenValidationError("Invalid or expired JWT") from exc
    if RECONCILE_SCOPE not in str(claims.get("scope", "")).split():
        raise TokenValidationError(f"token for {claims.get('sub')!r} lacks scope {RECONCILE_SCOPE}")
    return claims
