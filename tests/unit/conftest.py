# Assumptions:
# - Using pytest for testing framework
# - RSA keys generated per session; tokens minted with PyJWT
# - Keys endpoint is either mocked with respx or replaced by StaticFetcher

import base64
import json
import time

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

ISSUER = "https://dev-123456.okta.com/oauth2/default"
KEYS_URL = f"{ISSUER}/v1/keys"
AUDIENCE = "api://default"
KID = "test-key-id"
NOW = 1_700_000_000


def _b64(value: int) -> str:
    data = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def make_jwk(private_key, kid: str = KID, alg: str | None = "RS256") -> dict:
    numbers = private_key.public_key().public_numbers()
    jwk = {"kty": "RSA", "kid": kid, "use": "sig", "n": _b64(numbers.n), "e": _b64(numbers.e)}
    if alg:
        jwk["alg"] = alg
    return jwk


def make_claims(**overrides) -> dict:
    claims = {
        "ver": 1,
        "jti": "AT.abc123",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": "user@example.com",
        "scp": ["openid", "profile"],
        "cid": "0oa1client",
        "uid": "00u1user",
        "iat": NOW - 60,
        "exp": NOW + 3600,
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


def mint(private_key, claims: dict, kid: str | None = KID, alg: str = "RS256") -> str:
    headers = {"kid": kid} if kid is not None else {}
    return jwt.encode(claims, private_key, algorithm=alg, headers=headers)


def b64url(data: dict | bytes) -> str:
    raw = data if isinstance(data, bytes) else json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class StaticFetcher:
    """Fetcher double returning a fixed JWKS document and counting calls"""

    def __init__(self, document: dict | None = None, status_code: int = 200, headers: dict | None = None):
        self.document = document if document is not None else {"keys": []}
        self.status_code = status_code
        self.headers = headers or {}
        self.calls: list[str] = []

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        self.calls.append(url)
        return httpx.Response(
            self.status_code,
            json=self.document,
            headers=self.headers,
            request=httpx.Request("GET", url),
        )


class FrozenClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(scope="session")
def private_key():
    """Generate test RSA private key"""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks(private_key):
    return {"keys": [make_jwk(private_key)]}


@pytest.fixture
def fetcher(jwks):
    return StaticFetcher(jwks)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def wall_clock_claims():
    """Claims valid against the real clock, for tests that use time.time()"""
    now = int(time.time())
    return make_claims(iat=now - 60, exp=now + 3600)
