"""Bearer-token authentication."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class InvalidTokenError(Exception):
    """The identity token could not be verified."""


@dataclass
class AuthenticatedUser:
    uid: str
    claims: Dict[str, Any] = field(default_factory=dict)


class TokenVerifier:
    """Verify identity-provider JWTs.

    Uses the provider's published signing keys when AUTH_JWKS_URL is set,
    otherwise a shared HS256 secret. Audience and issuer are checked only
    when configured.
    """

    def __init__(
        self,
        jwks_url: Optional[str] = None,
        secret: Optional[str] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None
    ):
        self.secret = secret
        self.audience = audience
        self.issuer = issuer
        self.jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def verify(self, token: str) -> AuthenticatedUser:
        options = {"verify_aud": self.audience is not None}
        try:
            if self.jwks_client is not None:
                signing_key = self.jwks_client.get_signing_key_from_jwt(token).key
                algorithms = ["RS256"]
            elif self.secret:
                signing_key = self.secret
                algorithms = ["HS256"]
            else:
                raise InvalidTokenError("no token verification key configured")

            claims = jwt.decode(
                token,
                signing_key,
                algorithms=algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e

        uid = claims.get("uid") or claims.get("sub")
        if not uid:
            raise InvalidTokenError("token has no subject")
        return AuthenticatedUser(uid=str(uid), claims=claims)


_verifier: Optional[TokenVerifier] = None


def get_token_verifier() -> TokenVerifier:
    global _verifier
    if _verifier is None:
        _verifier = TokenVerifier(
            jwks_url=settings.auth_jwks_url,
            secret=settings.auth_jwt_secret,
            audience=settings.auth_audience,
            issuer=settings.auth_issuer
        )
    return _verifier


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier)
) -> AuthenticatedUser:
    """Resolve the caller from the Authorization header."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized: Missing token")

    try:
        # JWKS lookups may hit the network
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, verifier.verify, credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise HTTPException(status_code=403, detail="Forbidden: Invalid token")
