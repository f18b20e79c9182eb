from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import (
    InvalidAudienceError,
    InvalidClientIdError,
    InvalidIssuerError,
    MalformedTokenError,
    TokenExpiredError,
    TokenNotYetValidError,
)

DEFAULT_LEEWAY = 120


def _timestamp(claims: Mapping[str, Any], name: str) -> int | float | None:
    value = claims.get(name)
    if value is None:
        return None
    # bool is an int subclass but never a valid NumericDate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedTokenError(f"Claim '{name}' must be a number", details={"claim": name})
    return value


def _audiences(claims: Mapping[str, Any]) -> set[str]:
    aud = claims.get("aud")
    if isinstance(aud, str):
        return {aud}
    if isinstance(aud, list) and all(isinstance(a, str) for a in aud):
        return set(aud)
    if aud is None:
        return set()
    raise InvalidAudienceError("Claim 'aud' must be a string or an array of strings")


@dataclass(frozen=True)
class ClaimsPolicy:
    """
    Which registered claims to check after the signature verifies

    Checks run in a fixed order (issuer, audience, expiration, not-before,
    client id) and the first failure is raised.
    """

    issuer: str
    leeway: int = DEFAULT_LEEWAY
    audiences: frozenset[str] = field(default_factory=frozenset)
    client_id: str | None = None
    validate_aud: bool = True
    validate_exp: bool = True
    validate_nbf: bool = False

    def evaluate(self, claims: Mapping[str, Any], now: float) -> None:
        self.check_issuer(claims)
        self.check_audience(claims)
        self.check_expiration(claims, now)
        self.check_not_before(claims, now)
        self.check_client_id(claims)

    def check_issuer(self, claims: Mapping[str, Any]) -> None:
        if "iss" not in claims:
            return
        iss = claims["iss"]
        if not isinstance(iss, str) or iss.rstrip("/") != self.issuer:
            raise InvalidIssuerError(details={"expected": self.issuer, "actual": iss})

    def check_audience(self, claims: Mapping[str, Any]) -> None:
        if not self.validate_aud:
            return
        if not self.audiences:
            raise InvalidAudienceError("No acceptable audience configured")
        token_audiences = _audiences(claims)
        if not token_audiences & self.audiences:
            raise InvalidAudienceError(
                details={"expected": sorted(self.audiences), "actual": sorted(token_audiences)}
            )

    def check_expiration(self, claims: Mapping[str, Any], now: float) -> None:
        if not self.validate_exp:
            return
        exp = _timestamp(claims, "exp")
        if exp is None:
            raise TokenExpiredError("Token has no exp claim")
        if now > exp + self.leeway:
            raise TokenExpiredError(details={"exp": exp, "now": now, "leeway": self.leeway})

    def check_not_before(self, claims: Mapping[str, Any], now: float) -> None:
        if not self.validate_nbf:
            return
        nbf = _timestamp(claims, "nbf")
        if nbf is not None and now < nbf - self.leeway:
            raise TokenNotYetValidError(details={"nbf": nbf, "now": now, "leeway": self.leeway})

    def check_client_id(self, claims: Mapping[str, Any]) -> None:
        if self.client_id is None or "cid" not in claims:
            return
        if claims["cid"] != self.client_id:
            raise InvalidClientIdError(details={"expected": self.client_id, "actual": claims["cid"]})
