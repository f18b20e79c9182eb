# Assumptions:
# - Keys are published as a JWKS document: {"keys": [{kid, kty, ...}, ...]}
# - Okta serves them from {issuer}/v1/keys unless overridden
# - Freshness is left to the fetcher (see http.cache); every get() fetches

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx
import jwt
import structlog

from ..http.cache import parse_cache_control
from ..http.client import Fetcher, HttpClient
from .errors import KeySetFetchError, KeySetParseError, UnsupportedAlgorithmError

logger = structlog.get_logger(__name__)

# Algorithms PyJWT can verify with the installed backends; "none" is never accepted
SUPPORTED_ALGORITHMS = frozenset(jwt.algorithms.get_default_algorithms()) - {"none"}


@dataclass(frozen=True)
class Key:
    """One published signing key"""

    kid: str
    kty: str
    alg: str | None = None
    use: str | None = None
    # Full JWK members, including the public key material (n/e, x/y, k, ...)
    material: Mapping[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_jwk(cls, jwk: Mapping[str, Any]) -> "Key":
        if not isinstance(jwk, Mapping):
            raise KeySetParseError("Key entry must be a JSON object")

        kid = jwk.get("kid")
        kty = jwk.get("kty")
        if not isinstance(kid, str) or not kid:
            raise KeySetParseError("Key entry is missing kid")
        if not isinstance(kty, str) or not kty:
            raise KeySetParseError("Key entry is missing kty", details={"kid": kid})
        for member in ("alg", "use"):
            if member in jwk and not isinstance(jwk[member], str):
                raise KeySetParseError(f"Key entry member '{member}' must be a string", details={"kid": kid})

        return cls(
            kid=kid,
            kty=kty,
            alg=jwk.get("alg"),
            use=jwk.get("use"),
            material=MappingProxyType(dict(jwk)),
        )

    def to_jwk(self) -> dict[str, Any]:
        return dict(self.material)

    def signing_key(self, header_alg: str) -> tuple[Any, str]:
        """
        Build the verification key for PyJWT

        The key's own alg wins over the token header; the header only fills
        in when the JWK does not pin an algorithm.

        Returns:
            (key object, algorithm name)
        """
        algorithm = self.alg or header_alg
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise UnsupportedAlgorithmError(
                f"Algorithm {algorithm} is not supported", details={"kid": self.kid, "alg": algorithm}
            )

        try:
            jwk = jwt.PyJWK(self.to_jwk(), algorithm=algorithm)
        except (jwt.PyJWKError, jwt.InvalidKeyError, ValueError) as e:
            raise UnsupportedAlgorithmError(
                f"Key {self.kid} cannot be used with {algorithm}: {e}",
                details={"kid": self.kid, "alg": algorithm, "kty": self.kty},
            ) from e

        return jwk.key, algorithm


@dataclass(frozen=True)
class KeySet:
    """Immutable snapshot of an issuer's published keys"""

    keys: Mapping[str, Key]
    fetched_at: float = field(default_factory=time.time)
    cache_control: str | None = None

    def where_id(self, kid: str) -> Key | None:
        """Attempts to retrieve a key by given id"""
        return self.keys.get(kid)

    def __contains__(self, kid: object) -> bool:
        return kid in self.keys

    def __iter__(self) -> Iterator[Key]:
        return iter(self.keys.values())

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def max_age(self) -> int | None:
        """max-age from the response that produced this snapshot, in seconds"""
        value = parse_cache_control(self.cache_control).get("max-age")
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    def to_document(self) -> dict[str, Any]:
        return {"keys": [key.to_jwk() for key in self]}

    @classmethod
    def from_document(
        cls,
        document: Any,
        fetched_at: float | None = None,
        cache_control: str | None = None,
    ) -> "KeySet":
        if not isinstance(document, Mapping) or not isinstance(document.get("keys"), list):
            raise KeySetParseError("Key set document must be an object with a 'keys' array")

        keys: dict[str, Key] = {}
        for entry in document["keys"]:
            key = Key.from_jwk(entry)
            if key.kid in keys:
                logger.warning("Duplicate kid in key set, keeping last", kid=key.kid)
            keys[key.kid] = key

        return cls(
            keys=MappingProxyType(keys),
            fetched_at=time.time() if fetched_at is None else fetched_at,
            cache_control=cache_control,
        )


def keys_url_for(issuer: str) -> str:
    """Okta's JWKS endpoint for an authorization server"""
    return f"{issuer.rstrip('/')}/v1/keys"


class KeySetFetcher:
    """Retrieves the current KeySet from the issuer's keys endpoint"""

    def __init__(self, http: Fetcher | None = None, keys_url: str | None = None):
        self.http = http if http is not None else HttpClient()
        self.keys_url = keys_url

    def url_for(self, issuer: str) -> str:
        return self.keys_url or keys_url_for(issuer)

    async def get(self, issuer: str) -> KeySet:
        url = self.url_for(issuer)

        try:
            response = await self.http.fetch(url)
        except httpx.HTTPStatusError as e:
            raise KeySetFetchError(
                f"Keys endpoint returned {e.response.status_code}",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, OSError) as e:
            raise KeySetFetchError(f"Failed to fetch key set: {e}", details={"url": url}) from e

        if not response.is_success:
            raise KeySetFetchError(
                f"Keys endpoint returned {response.status_code}",
                details={"url": url, "status_code": response.status_code},
            )

        try:
            document = response.json()
        except ValueError as e:
            raise KeySetParseError("Keys endpoint did not return JSON", details={"url": url}) from e

        key_set = KeySet.from_document(document, cache_control=response.headers.get("cache-control"))
        logger.info("Key set fetched", url=url, keys_count=len(key_set), max_age=key_set.max_age)
        return key_set
