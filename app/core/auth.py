# app/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired or auth is not configured.
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication is not configured",
        )
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any] | None:
    """
    Resolve the current auth session from a Supabase JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => require a 'sub' claim.

    Returns:
        JWT claims if authenticated, else None for guests.

    Raises:
        HTTPException(401): if token is malformed or missing 'sub'.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )
    return payload


def is_admin(session: dict[str, Any] | None = Depends(get_current_session)) -> bool:
    """
    Admin capability gate.

    Any authenticated session counts as admin: there is no role system.
    Admins see unpublished products and may mutate the catalog.
    """
    return session is not None


def require_admin(
    session: dict[str, Any] | None = Depends(get_current_session),
) -> dict[str, Any]:
    """
    Enforce an authenticated (admin) session.

    Returns:
        The JWT claims.

    Raises:
        HTTPException(401): for guests.
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return session
