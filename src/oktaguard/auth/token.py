# Assumptions:
# - Tokens use the JWS compact serialization (header.payload.signature)
# - Header carries a kid and alg; everything else in it is ignored
# - Signature checking and payload decoding are delegated to PyJWT

from dataclasses import dataclass
from typing import Any, TypeVar

import jwt

from .claims import coerce_claims
from .errors import InvalidSignatureError, MalformedTokenError

ClaimsT = TypeVar("ClaimsT")

# Time and audience claims are checked by ClaimsPolicy, not by PyJWT
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


@dataclass(frozen=True)
class DecodedHeader:
    """Key selection fields from an unverified token header"""

    kid: str
    alg: str
    typ: str | None = None


def _check_segments(token: str) -> None:
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")

    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedTokenError(
            "Token must have three dot-separated segments",
            details={"segments": len(segments)},
        )


def decode_header(token: str) -> DecodedHeader:
    """
    Extract the key id and algorithm from a token without verifying it

    Raises:
        MalformedTokenError: wrong segment count, bad base64url, header not
            a JSON object, or header without kid/alg
    """
    _check_segments(token)

    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Invalid token header: {e}") from e

    kid = header.get("kid")
    if not kid or not isinstance(kid, str):
        raise MalformedTokenError("No key id found in token header")

    alg = header.get("alg")
    if not alg or not isinstance(alg, str):
        raise MalformedTokenError("No algorithm found in token header")

    return DecodedHeader(kid=kid, alg=alg, typ=header.get("typ"))


def decode_payload(token: str, claims_type: type[ClaimsT] = dict) -> ClaimsT:
    """
    Decode the payload WITHOUT checking the signature

    Only for inspecting tokens that were already verified (or for
    diagnostics); never authorize on the result.
    """
    _check_segments(token)

    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Invalid token payload: {e}") from e

    return coerce_claims(payload, claims_type)


def decode_verified(token: str, key: Any, algorithm: str) -> dict[str, Any]:
    """Verify the signature with ``key`` and return the payload in one step"""
    try:
        return jwt.decode(token, key, algorithms=[algorithm], options=_SIGNATURE_ONLY)
    except jwt.InvalidSignatureError as e:
        raise InvalidSignatureError(details={"alg": algorithm}) from e
    except jwt.InvalidAlgorithmError as e:
        raise InvalidSignatureError(
            f"Token algorithm does not match key algorithm {algorithm}", details={"alg": algorithm}
        ) from e
    except jwt.DecodeError as e:
        raise MalformedTokenError(f"Invalid token: {e}") from e
    except jwt.InvalidTokenError as e:
        raise InvalidSignatureError(str(e), details={"alg": algorithm}) from e
