"""
Access token validation.

Sessions are issued by the hosted auth provider (Supabase). Its access tokens
are HS256 JWTs signed with the project's JWT secret; the `sub` claim is the
user id that every canvas, block and connection row is scoped to.
"""

from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from typing import Optional, Dict, Any
from datetime import datetime, timedelta, timezone

from canvasnotes.core.config import settings


class AuthError(Exception):
    """Base exception for auth errors."""
    pass


class TokenError(AuthError):
    """Token validation failed."""
    pass


class AuthConfigError(AuthError):
    """Token verification is not configured."""
    pass


class TokenValidator:
    """Validates provider-issued JWT access tokens."""

    def __init__(
        self,
        secret: Optional[str] = None,
        audience: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        self.secret = secret if secret is not None else settings.SUPABASE_JWT_SECRET
        self.audience = audience if audience is not None else settings.JWT_AUDIENCE
        self.algorithms = [algorithm or settings.JWT_ALGORITHM]

    def _check_configured(self) -> None:
        if not self.secret:
            raise AuthConfigError("Token verification is not configured. Set SUPABASE_JWT_SECRET.")

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate an access token.

        Args:
            token: The JWT access token from the Authorization header

        Returns:
            Decoded token payload containing user claims

        Raises:
            TokenError: If token validation fails
            AuthConfigError: If no secret is configured
        """
        self._check_configured()

        options = {"verify_aud": bool(self.audience)}
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience or None,
                options=options,
            )
        except ExpiredSignatureError:
            raise TokenError("Token has expired")
        except JWTError as e:
            raise TokenError(f"Invalid token: {str(e)}")

    def get_user_id(self, payload: Dict[str, Any]) -> str:
        """Extract the user id from the token payload."""
        return payload.get("sub", "")


def create_access_token(user_id: str, secret: str, audience: str = "authenticated", expires_in: int = 3600, **claims: Any) -> str:
    """Sign a token shaped like the provider's. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        "role": "authenticated",
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")
