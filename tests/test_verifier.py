"""
Tests for bearer token verification.

Tokens are signed with RSA keys generated per test session; the key
set is served by an in-process fetcher instead of the issuer URL.
"""

import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from mindmoney.auth import TokenVerifier, extract_bearer_token
from mindmoney.config import CognitoSettings
from mindmoney.errors import AuthenticationError


CLIENT_ID = "client-abc"


def _generate_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture(scope="module")
def signing_key():
    return _generate_key()


@pytest.fixture(scope="module")
def other_key():
    return _generate_key()


@pytest.fixture
def settings():
    return CognitoSettings(
        region="us-east-1",
        user_pool_id="us-east-1_TEST",
        client_id=CLIENT_ID,
        token_use="id",
    )


@pytest.fixture
def jwks(signing_key):
    public_jwk = jwk.construct(signing_key[1], "RS256").to_dict()
    public_jwk.update({"kid": "key-1", "use": "sig"})
    return {"keys": [public_jwk]}


@pytest.fixture
def fetch_count():
    return {"n": 0}


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier(settings, jwks, fetch_count, clock):
    def fetch():
        fetch_count["n"] += 1
        return jwks

    return TokenVerifier(settings=settings, jwks_fetcher=fetch, clock=clock)


def _token(settings, private_pem, kid="key-1", **overrides):
    now = int(time.time())
    claims = {
        "sub": "user-123",
        "email": "user@example.com",
        "name": "Test User",
        "aud": CLIENT_ID,
        "iss": settings.issuer,
        "token_use": "id",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


class TestExtractBearerToken:

    def test_standard_header(self):
        assert extract_bearer_token({"Authorization": "Bearer abc.def"}) == "abc.def"

    def test_header_name_and_scheme_are_case_insensitive(self):
        assert extract_bearer_token({"authorization": "bearer abc.def"}) == "abc.def"
        assert extract_bearer_token({"AUTHORIZATION": "BEARER abc.def"}) == "abc.def"

    def test_missing_header(self):
        with pytest.raises(AuthenticationError, match="No token provided"):
            extract_bearer_token({"Content-Type": "application/json"})
        with pytest.raises(AuthenticationError, match="No token provided"):
            extract_bearer_token(None)

    def test_empty_token(self):
        with pytest.raises(AuthenticationError, match="No token provided"):
            extract_bearer_token({"Authorization": "Bearer   "})


class TestTokenVerifier:

    def test_valid_token(self, verifier, settings, signing_key):
        claims = verifier.verify(_token(settings, signing_key[0]))

        assert claims.subject == "user-123"
        assert claims.email == "user@example.com"
        assert claims.name == "Test User"

    def test_verify_request(self, verifier, settings, signing_key):
        token = _token(settings, signing_key[0])
        claims = verifier.verify_request({"authorization": f"Bearer {token}"})
        assert claims.subject == "user-123"

    def test_keys_are_fetched_once(self, verifier, settings, signing_key, fetch_count):
        verifier.verify(_token(settings, signing_key[0]))
        verifier.verify(_token(settings, signing_key[0]))
        assert fetch_count["n"] == 1

    def test_unknown_kid_refetches_then_fails(self, verifier, settings, signing_key, fetch_count, clock):
        verifier.verify(_token(settings, signing_key[0]))
        clock.now += settings.jwks_refresh_seconds

        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify(_token(settings, signing_key[0], kid="rotated"))
        assert fetch_count["n"] == 2

    def test_unknown_kids_refetch_at_most_once_per_interval(
        self, verifier, settings, signing_key, fetch_count, clock
    ):
        verifier.verify(_token(settings, signing_key[0]))

        for i in range(20):
            with pytest.raises(AuthenticationError):
                verifier.verify(_token(settings, signing_key[0], kid=f"forged-{i}"))
        assert fetch_count["n"] == 1

        clock.now += settings.jwks_refresh_seconds
        with pytest.raises(AuthenticationError):
            verifier.verify(_token(settings, signing_key[0], kid="forged-again"))
        with pytest.raises(AuthenticationError):
            verifier.verify(_token(settings, signing_key[0], kid="forged-once-more"))
        assert fetch_count["n"] == 2

        # known keys keep working without downloads
        assert verifier.verify(_token(settings, signing_key[0])).subject == "user-123"
        assert fetch_count["n"] == 2

    def test_unconfigured_pool_rejects_tokens(self, jwks, settings, signing_key, fetch_count):
        def fetch():
            fetch_count["n"] += 1
            return jwks

        verifier = TokenVerifier(settings=CognitoSettings(region="us-east-1"), jwks_fetcher=fetch)

        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify(_token(settings, signing_key[0]))
        assert fetch_count["n"] == 0

    def test_settings_load_without_pool(self, monkeypatch):
        for name in ("COGNITO_USER_POOL_ID", "COGNITO_CLIENT_ID"):
            monkeypatch.delenv(name, raising=False)

        settings = CognitoSettings()

        assert settings.is_configured is False
        assert TokenVerifier(settings=settings) is not None

    def test_expired(self, verifier, settings, signing_key):
        now = int(time.time())
        token = _token(settings, signing_key[0], iat=now - 7200, exp=now - 3600)
        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify(token)

    def test_wrong_audience(self, verifier, settings, signing_key):
        with pytest.raises(AuthenticationError):
            verifier.verify(_token(settings, signing_key[0], aud="someone-else"))

    def test_wrong_issuer(self, verifier, settings, signing_key):
        with pytest.raises(AuthenticationError):
            verifier.verify(_token(settings, signing_key[0], iss="https://evil.example.com"))

    def test_bad_signature(self, verifier, settings, other_key):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify(_token(settings, other_key[0]))

    def test_wrong_token_use(self, verifier, settings, signing_key):
        with pytest.raises(AuthenticationError):
            verifier.verify(_token(settings, signing_key[0], token_use="access"))

    def test_garbage(self, verifier):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify("not-a-jwt")

    def test_key_download_failure(self, settings, signing_key):
        import requests

        def fetch():
            raise requests.ConnectionError("unreachable")

        verifier = TokenVerifier(settings=settings, jwks_fetcher=fetch)
        with pytest.raises(AuthenticationError, match="Invalid token"):
            verifier.verify(_token(settings, signing_key[0]))

    def test_access_tokens_check_client_id(self, jwks, signing_key):
        settings = CognitoSettings(
            region="us-east-1",
            user_pool_id="us-east-1_TEST",
            client_id=CLIENT_ID,
            token_use="access",
        )
        verifier = TokenVerifier(settings=settings, jwks_fetcher=lambda: jwks)

        good = _token(settings, signing_key[0], aud=None, token_use="access", client_id=CLIENT_ID)
        assert verifier.verify(good).subject == "user-123"

        bad = _token(settings, signing_key[0], aud=None, token_use="access", client_id="other")
        with pytest.raises(AuthenticationError):
            verifier.verify(bad)

    def test_token_use_setting_is_validated(self):
        with pytest.raises(ValueError):
            CognitoSettings(user_pool_id="p", client_id="c", token_use="refresh")
