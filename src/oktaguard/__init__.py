"""
Verification of Okta-issued JWTs.

This library provides:
- Key-set retrieval from the issuer's keys endpoint, with optional HTTP caching
- Signature verification via PyJWT
- A configurable claims validation policy
- A FastAPI bearer-token dependency
"""

from .auth import (
    ClaimsDeserializationError,
    ClaimsPolicy,
    ConfigurationError,
    DefaultClaims,
    InfrastructureError,
    InvalidAudienceError,
    InvalidClientIdError,
    InvalidIssuerError,
    InvalidSignatureError,
    Key,
    KeyNotFoundError,
    KeySet,
    KeySetFetcher,
    KeySetFetchError,
    KeySetParseError,
    MalformedTokenError,
    TokenError,
    TokenExpiredError,
    TokenNotYetValidError,
    UnsupportedAlgorithmError,
    Verifier,
    VerifierError,
    verify,
)

__version__ = "0.7.0"

__all__ = [
    "Verifier",
    "verify",
    "ClaimsPolicy",
    "DefaultClaims",
    "Key",
    "KeySet",
    "KeySetFetcher",
    "VerifierError",
    "ConfigurationError",
    "TokenError",
    "InfrastructureError",
    "MalformedTokenError",
    "KeySetFetchError",
    "KeySetParseError",
    "KeyNotFoundError",
    "UnsupportedAlgorithmError",
    "InvalidSignatureError",
    "TokenExpiredError",
    "TokenNotYetValidError",
    "InvalidIssuerError",
    "InvalidAudienceError",
    "InvalidClientIdError",
    "ClaimsDeserializationError",
]
