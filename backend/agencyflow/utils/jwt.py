"""JWT Token Validation for agency actors"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError, ActorNotFoundError
from ..domain.models import ActorContext
from ..repositories.user_repo import UserRepository
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """
    HS256 token validator.

    Tokens carry the actor ID in `sub`. The role is always read from the
    user record, never trusted from the token.
    """

    def __init__(self, user_repo: Optional[UserRepository] = None):
        self._user_repo = user_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository()
        return self._user_repo

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a signed token

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        options = {"verify_exp": True, "verify_aud": bool(settings.jwt_audience)}
        try:
            return jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                audience=settings.jwt_audience or None,
                options=options
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Resolve a token to a live actor

        Raises:
            AuthenticationError: If the token is invalid or the actor is gone
        """
        claims = self.validate_token(token)

        user_id = claims.get("sub") or claims.get("user_id")
        if not user_id:
            raise AuthenticationError("Token has no subject")

        try:
            user = self.user_repo.get_active_user_or_raise(str(user_id))
        except ActorNotFoundError:
            logger.warning("Token subject is not a live actor", extra={"user_id": user_id})
            raise AuthenticationError("Actor is not active")

        return ActorContext(
            user_id=user.user_id,
            role=user.role,
            display_name=user.name
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header

    Args:
        authorization: Authorization header value

    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    return get_jwt_validator().get_actor_context(authorization)
