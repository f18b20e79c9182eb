from functools import lru_cache
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .errors import ClaimsDeserializationError

ClaimsT = TypeVar("ClaimsT")

REGISTERED_CLAIMS = ("iss", "aud", "exp", "iat", "nbf", "cid")


class DefaultClaims(BaseModel):
    """Claims carried by an Okta access token"""

    model_config = ConfigDict(extra="allow", frozen=True)

    # The Issuer Identifier of the authorization server instance
    iss: str
    # The subject of the token
    sub: str | None = None
    aud: str | list[str] | None = None
    # Scopes granted to this access token
    scp: list[str] = []
    # Client ID of the client that requested the access token
    cid: str | None = None
    # Okta user id; absent when no user is bound to the token
    uid: str | None = None
    exp: int
    iat: int
    nbf: int | None = None

    def has_scope(self, scope: str) -> bool:
        """Check if the token grants a specific scope"""
        return scope in self.scp


@lru_cache(maxsize=64)
def _adapter(claims_type: Any) -> TypeAdapter:
    return TypeAdapter(claims_type)


def coerce_claims(payload: dict[str, Any], claims_type: type[ClaimsT]) -> ClaimsT:
    """
    Map a decoded payload onto the caller's claims type

    Any type pydantic can validate into works: BaseModel subclasses,
    dataclasses, TypedDicts, or plain dict.
    """
    try:
        return _adapter(claims_type).validate_python(payload)
    except ValidationError as e:
        raise ClaimsDeserializationError(
            f"Claims do not match {getattr(claims_type, '__name__', claims_type)}",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
