"""Token decoding, key-set retrieval, claims policy and verification."""

from .claims import DefaultClaims, coerce_claims
from .errors import (
    ClaimsDeserializationError,
    ConfigurationError,
    ErrorCode,
    InfrastructureError,
    InvalidAudienceError,
    InvalidClientIdError,
    InvalidIssuerError,
    InvalidSignatureError,
    KeyNotFoundError,
    KeySetFetchError,
    KeySetParseError,
    MalformedTokenError,
    TokenError,
    TokenExpiredError,
    TokenNotYetValidError,
    UnsupportedAlgorithmError,
    VerifierError,
)
from .keys import Key, KeySet, KeySetFetcher, keys_url_for
from .policy import ClaimsPolicy
from .token import DecodedHeader, decode_header, decode_payload
from .verifier import Verifier, verify

__all__ = [
    "Verifier",
    "verify",
    "ClaimsPolicy",
    "DefaultClaims",
    "coerce_claims",
    "DecodedHeader",
    "decode_header",
    "decode_payload",
    "Key",
    "KeySet",
    "KeySetFetcher",
    "keys_url_for",
    "ErrorCode",
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
