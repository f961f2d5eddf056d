"""
JWT Authentication middleware.

Validates Supabase JWT tokens and extracts user information. Token
issuance happens upstream; this layer only verifies signatures and claims.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from shared.config import get_settings
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    email: Optional[str] = None
    email_confirmed_at: Optional[str] = None
    role: Optional[str] = None
    aud: str  # Audience
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp


class AuthError(AuthenticationError):
    """Authentication failure rendered as a 401 error envelope."""

    def __init__(self, detail: str, code: str = "UNAUTHORIZED"):
        super().__init__(detail, code=code)


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a Supabase JWT token.

    Raises:
        AuthError: If token is invalid or expired
    """
    settings = get_settings()

    if not settings.supabase_jwt_secret:
        raise AuthError("Server authentication not configured", code="AUTH_ERROR")

    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired", code="TOKEN_EXPIRED")
    except JWTError as e:
        raise AuthError(f"Invalid token: {str(e)}", code="INVALID_TOKEN")


def get_user_from_payload(payload: TokenPayload) -> AuthenticatedUser:
    """Convert JWT payload to AuthenticatedUser model."""
    return AuthenticatedUser(
        id=payload.sub,
        email=payload.email,
        email_verified=payload.email_confirmed_at is not None,
        last_sign_in=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise AuthError("Missing authorization header")

    payload = decode_token(credentials.credentials)
    return get_user_from_payload(payload)


# Type alias for cleaner route definitions
RequireAuth = Depends(get_current_user)
