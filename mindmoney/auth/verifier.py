"""
Bearer Token Verification

Tokens are issued by a Cognito user pool; this module only verifies them.

Verification steps:
1. Pull the token out of the Authorization header (any casing)
2. Pick the issuer's signing key by the token's `kid`
3. Check signature, expiry, issuer and audience/client id
4. Check the token_use claim

CRITICAL: The reason a token was rejected is logged, never returned.
Callers only ever see "No token provided" or "Invalid token".
"""

import re
import time
from typing import Callable, Mapping, Optional
from uuid import UUID

import requests
from jose import jwt
from jose.exceptions import JOSEError
from pydantic import BaseModel

from mindmoney.audit import AuditLogger
from mindmoney.config import CognitoSettings, get_settings
from mindmoney.errors import AuthenticationError


_BEARER_PREFIX = re.compile(r"^\s*bearer\s+", re.IGNORECASE)

JwksFetcher = Callable[[], dict]
Clock = Callable[[], float]


class TokenClaims(BaseModel):
    """The identity a verified token vouches for."""

    subject: str
    email: Optional[str] = None
    name: Optional[str] = None


def extract_bearer_token(headers: Optional[Mapping[str, str]]) -> str:
    """
    Get the raw token from an Authorization header.

    Header names are matched case-insensitively.

    Raises:
        AuthenticationError: If the header or the token is missing
    """
    auth_header = None
    for key, value in (headers or {}).items():
        if key and key.lower() == "authorization":
            auth_header = value
            break

    if not auth_header:
        raise AuthenticationError("No token provided")

    token = _BEARER_PREFIX.sub("", auth_header).strip()
    if not token:
        raise AuthenticationError("No token provided")
    return token


class TokenVerifier:
    """
    Verifies Cognito-issued JWTs against the pool's public keys.

    Signing keys are downloaded on first use and kept for the
    lifetime of the verifier. A token signed with an unknown key
    triggers a refresh (key rotation), at most once per
    jwks_refresh_seconds.

    Without a configured user pool every token is rejected.
    """

    def __init__(
        self,
        settings: Optional[CognitoSettings] = None,
        jwks_fetcher: Optional[JwksFetcher] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = time.monotonic,
    ):
        self._settings = settings or get_settings().cognito
        self._fetch_jwks = jwks_fetcher or self._download_jwks
        self._audit_logger = audit_logger or AuditLogger()
        self._keys: Optional[dict[str, dict]] = None
        self._clock = clock
        self._fetched_at: Optional[float] = None

    def _download_jwks(self) -> dict:
        response = requests.get(
            self._settings.jwks_url,
            timeout=self._settings.jwks_timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    def _load_keys(self) -> dict[str, dict]:
        self._fetched_at = self._clock()
        jwks = self._fetch_jwks()
        return {key["kid"]: key for key in jwks.get("keys", []) if "kid" in key}

    def _may_refresh(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at >= self._settings.jwks_refresh_seconds

    def _signing_key(self, kid: str) -> dict:
        if self._keys is None or (kid not in self._keys and self._may_refresh()):
            self._keys = self._load_keys()
        try:
            return self._keys[kid]
        except KeyError:
            raise JOSEError(f"No signing key with kid {kid!r}")

    def _decode(self, token: str) -> dict:
        if not self._settings.is_configured:
            raise JOSEError("Token verification not configured")

        header = jwt.get_unverified_header(token)
        kid = header.get("kid")
        if not kid:
            raise JOSEError("Token header has no kid")

        key = self._signing_key(kid)
        is_id_token = self._settings.token_use == "id"

        claims = jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            # ID tokens carry the client id in aud, access tokens in client_id
            audience=self._settings.client_id if is_id_token else None,
            issuer=self._settings.issuer,
            options={
                "verify_aud": is_id_token,
                "verify_at_hash": False,
            },
        )

        if not is_id_token and claims.get("client_id") != self._settings.client_id:
            raise JOSEError("Token was issued for another client")
        if claims.get("token_use") != self._settings.token_use:
            raise JOSEError(f"Unexpected token_use {claims.get('token_use')!r}")
        if not claims.get("sub"):
            raise JOSEError("Token has no subject")
        return claims

    def verify(
        self,
        token: str,
        correlation_id: Optional[UUID] = None,
    ) -> TokenClaims:
        """
        Verify a raw token.

        Returns:
            The subject, email and name claims

        Raises:
            AuthenticationError: For any verification failure
        """
        try:
            claims = self._decode(token)
        except (JOSEError, requests.RequestException, ValueError, KeyError) as e:
            self._audit_logger.log_authentication_failed(
                reason=f"{type(e).__name__}: {e}",
                correlation_id=correlation_id,
            )
            raise AuthenticationError("Invalid token") from e

        return TokenClaims(
            subject=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name") or claims.get("cognito:username"),
        )

    def verify_request(
        self,
        headers: Optional[Mapping[str, str]],
        correlation_id: Optional[UUID] = None,
    ) -> TokenClaims:
        """Extract the bearer token from request headers and verify it."""
        try:
            token = extract_bearer_token(headers)
        except AuthenticationError as e:
            self._audit_logger.log_authentication_failed(
                reason=str(e),
                correlation_id=correlation_id,
            )
            raise
        return self.verify(token, correlation_id=correlation_id)
