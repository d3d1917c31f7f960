"""Admin authentication gate.

Two modes, fixed when the gate is constructed:
  1. ENFORCING: validates Cognito access tokens against the user pool's JWKS.
  2. DISABLED: no Cognito configuration; every request passes with a fixed
     dev admin identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import jwt
from fastapi import HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from . import settings
from .schemas import TokenPayload

logger = logging.getLogger(__name__)

DEV_IDENTITY = TokenPayload(sub="dev-admin-000", email="admin@localhost", groups=["admin"])


class AuthMode(str, Enum):
    DISABLED = "disabled"
    ENFORCING = "enforcing"


@dataclass(frozen=True)
class CognitoConfig:
    user_pool_id: str
    client_id: str
    region: str | None = None

    @property
    def region_name(self) -> str:
        # Pool ids look like "eu-central-1_AbCdEf123"
        return self.region or self.user_pool_id.split("_", 1)[0]

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region_name}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


class TokenVerificationError(Exception):
    """Token is malformed, expired, or not issued for this app client."""


class IdentityProviderUnavailable(Exception):
    """The provider's signing keys could not be fetched."""


class CognitoVerifier:
    """Verifies Cognito access tokens (RS256) with keys from the pool's JWKS endpoint."""

    def __init__(self, config: CognitoConfig, jwk_client: Any = None) -> None:
        self.config = config
        self._jwk_client = jwk_client or jwt.PyJWKClient(config.jwks_url, cache_keys=True)

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        except jwt.PyJWKClientConnectionError as e:
            raise IdentityProviderUnavailable(str(e)) from e
        except jwt.PyJWTError as e:
            raise TokenVerificationError(str(e)) from e

        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.config.issuer,
                # Access tokens carry the app client in "client_id", not "aud"
                options={"require": ["exp", "iss", "sub"], "verify_aud": False},
            )
        except jwt.PyJWTError as e:
            raise TokenVerificationError(str(e)) from e

        if claims.get("token_use") != "access":
            raise TokenVerificationError("Token is not an access token")
        if claims.get("client_id") != self.config.client_id:
            raise TokenVerificationError("Token was not issued for this client")
        return claims


class AuthGate:
    """
    Request gate for admin routes.

    The mode never changes after construction. In DISABLED mode the dev-mode
    warning is logged the first time a request passes through this gate.
    """

    def __init__(self, config: CognitoConfig | None = None, verifier: CognitoVerifier | None = None) -> None:
        self.config = config
        self.mode = AuthMode.ENFORCING if config is not None else AuthMode.DISABLED
        if self.mode is AuthMode.ENFORCING and verifier is None:
            verifier = CognitoVerifier(config)
        self._verifier = verifier
        self._dev_warning_logged = False

    @classmethod
    def from_settings(cls) -> "AuthGate":
        if settings.COGNITO_USER_POOL_ID and settings.COGNITO_CLIENT_ID:
            return cls(
                CognitoConfig(
                    user_pool_id=settings.COGNITO_USER_POOL_ID,
                    client_id=settings.COGNITO_CLIENT_ID,
                    region=settings.COGNITO_REGION,
                )
            )
        return cls()

    async def authenticate(self, authorization: str | None) -> TokenPayload:
        if self.mode is AuthMode.DISABLED:
            if not self._dev_warning_logged:
                logger.warning("Auth disabled -- dev mode (COGNITO_USER_POOL_ID not set)")
                self._dev_warning_logged = True
            return DEV_IDENTITY.model_copy(deep=True)

        if not authorization:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authorization header is required",
            )

        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authorization header must be: Bearer <token>",
            )

        # JWKS fetch is blocking I/O
        try:
            claims = await run_in_threadpool(self._verifier.verify, parts[1])
        except IdentityProviderUnavailable as e:
            logger.error(f"Identity provider unavailable: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Authentication service unavailable",
            )
        except TokenVerificationError as e:
            logger.error(f"JWT verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid or expired token",
            )

        return TokenPayload(
            sub=claims["sub"],
            email=claims.get("email"),
            groups=claims.get("cognito:groups") or [],
        )


async def require_admin(request: Request) -> TokenPayload:
    """FastAPI dependency: run the app's auth gate and attach the identity to the request."""
    gate: AuthGate = request.app.state.auth_gate
    user = await gate.authenticate(request.headers.get("Authorization"))
    request.state.user = user
    return user
