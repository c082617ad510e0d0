from datetime import UTC, datetime, timedelta
import logging
from typing import Any

import jwt

from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.core.settings import Settings

logger = logging.getLogger(__name__)


class JwtTokenValidator:
    """HS256-style shared-secret JWTs whose ``sub`` claim is the owner id."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def encode(self, principal: UnifiedPrincipal, ttl_seconds: int) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": principal.user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        if principal.email:
            payload["email"] = principal.email
        if principal.display_name:
            payload["name"] = principal.display_name
        if self._settings.auth_jwt_audience:
            payload["aud"] = self._settings.auth_jwt_audience
        return jwt.encode(payload, self._settings.auth_jwt_secret, algorithm=self._settings.auth_jwt_algorithm)

    def decode(self, token: str) -> UnifiedPrincipal:
        payload = jwt.decode(
            token,
            self._settings.auth_jwt_secret,
            algorithms=[self._settings.auth_jwt_algorithm],
            audience=self._settings.auth_jwt_audience,
            options={"require": ["sub", "exp"]},
        )
        return UnifiedPrincipal(
            user_id=str(payload["sub"]),
            email=payload.get("email"),
            display_name=payload.get("name"),
        )


class AuthService:
    """Resolves the caller identity from access tokens issued by the auth provider."""

    def __init__(self, settings: Settings) -> None:
        self._token_validator = JwtTokenValidator(settings)

    def principal_from_bearer(self, bearer_token: str | None) -> UnifiedPrincipal | None:
        if not bearer_token:
            return None
        try:
            return self._token_validator.decode(bearer_token)
        except (jwt.PyJWTError, ValueError):
            logger.info("access token validation failed")
            return None

    def issue_access_token(self, principal: UnifiedPrincipal, ttl_seconds: int = 900) -> str:
        logger.debug("issuing access token", extra={"user_id": principal.user_id})
        return self._token_validator.encode(principal, ttl_seconds)
