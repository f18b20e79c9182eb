# Assumptions:
# - Issuer is an Okta authorization server URL (https://{org}/oauth2/{id})
# - The key set is fetched on every verify(); caching belongs to the fetcher
# - Policy is configured through the builder methods before verify() is used

import time
from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, TypeVar
from urllib.parse import urlsplit

import structlog

from ..http.cache import CachingFetcher, FileCacheStore, MemoryCacheStore
from ..http.client import Fetcher, HttpClient
from ..telemetry.tracing import get_tracer, record_failure
from .claims import DefaultClaims, coerce_claims
from .errors import ConfigurationError, KeyNotFoundError, VerifierError
from .keys import KeySetFetcher
from .policy import ClaimsPolicy
from .token import decode_header, decode_verified

if TYPE_CHECKING:
    from ..config.settings import VerifierSettings

ClaimsT = TypeVar("ClaimsT")

logger = structlog.get_logger(__name__)
tracer = get_tracer()

BUILDER_OPTIONS = (
    "leeway",
    "audience",
    "add_audience",
    "client_id",
    "validate_aud",
    "validate_exp",
    "validate_nbf",
    "keys_url",
)


def _validate_url(value: str, what: str) -> str:
    parts = urlsplit(value or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"{what} must be an absolute http(s) URL", details={what: value})
    return value.rstrip("/")


class Verifier:
    """
    Verifies Okta-issued JWTs against the issuer's published keys

    Example:
        verifier = Verifier("https://dev-123.okta.com/oauth2/default").audience({"api://default"})
        claims = await verifier.verify(token)

    Builder methods return the verifier itself so they can be chained. Each
    call swaps in a new immutable ClaimsPolicy, so a verify() already in
    flight keeps the policy it started with.
    """

    def __init__(
        self,
        issuer: str,
        http: Fetcher | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.issuer = _validate_url(issuer, "issuer")
        self.http = http if http is not None else HttpClient()
        self.clock = clock
        self._policy = ClaimsPolicy(issuer=self.issuer)
        self._keys_url: str | None = None

    @classmethod
    def from_settings(cls, settings: "VerifierSettings", http: Fetcher | None = None) -> "Verifier":
        """Build a verifier from environment-driven settings"""
        if http is None:
            http = HttpClient(timeout=settings.http_timeout, max_retries=settings.http_max_retries)
            if settings.cache_enabled:
                store = FileCacheStore(settings.cache_dir) if settings.cache_dir else MemoryCacheStore()
                http = CachingFetcher(http, store)

        verifier = (
            cls(settings.issuer, http=http)
            .leeway(settings.leeway)
            .audience(settings.audience)
            .validate_aud(settings.validate_aud)
            .validate_exp(settings.validate_exp)
            .validate_nbf(settings.validate_nbf)
        )
        if settings.client_id:
            verifier.client_id(settings.client_id)
        if settings.keys_url:
            verifier.keys_url(settings.keys_url)
        return verifier

    @property
    def policy(self) -> ClaimsPolicy:
        return self._policy

    @property
    def fetcher(self) -> KeySetFetcher:
        return KeySetFetcher(self.http, keys_url=self._keys_url)

    def leeway(self, seconds: int) -> "Verifier":
        """Clock-skew tolerance applied to exp and nbf"""
        if seconds < 0:
            raise ConfigurationError("leeway must not be negative", details={"leeway": seconds})
        self._policy = replace(self._policy, leeway=int(seconds))
        return self

    def audience(self, audiences: Iterable[str]) -> "Verifier":
        """Replace the set of acceptable audiences"""
        if isinstance(audiences, str):
            audiences = [audiences]
        self._policy = replace(self._policy, audiences=frozenset(audiences))
        return self

    def add_audience(self, audience: str) -> "Verifier":
        self._policy = replace(self._policy, audiences=self._policy.audiences | {audience})
        return self

    def client_id(self, client_id: str) -> "Verifier":
        """Require tokens carrying a cid claim to match this client id"""
        self._policy = replace(self._policy, client_id=client_id)
        return self

    def validate_aud(self, enabled: bool) -> "Verifier":
        self._policy = replace(self._policy, validate_aud=enabled)
        return self

    def validate_exp(self, enabled: bool) -> "Verifier":
        self._policy = replace(self._policy, validate_exp=enabled)
        return self

    def validate_nbf(self, enabled: bool) -> "Verifier":
        self._policy = replace(self._policy, validate_nbf=enabled)
        return self

    def keys_url(self, url: str) -> "Verifier":
        """Fetch keys from ``url`` instead of {issuer}/v1/keys"""
        self._keys_url = _validate_url(url, "keys_url")
        return self

    async def verify(self, token: str, claims_type: type[ClaimsT] = DefaultClaims) -> ClaimsT:
        """
        Verify ``token`` and return its claims as ``claims_type``

        Raises:
            TokenError: the token itself is unacceptable (401 class)
            InfrastructureError: the key set could not be fetched or read (503 class)
        """
        policy = self._policy

        with tracer.start_as_current_span("oktaguard.verify", record_exception=False) as span:
            try:
                header = decode_header(token)
                span.set_attribute("jwt.kid", header.kid)
                span.set_attribute("jwt.alg", header.alg)

                key_set = await self.fetcher.get(self.issuer)
                key = key_set.where_id(header.kid)
                if key is None:
                    logger.warning("No matching key found", kid=header.kid, keys_count=len(key_set))
                    raise KeyNotFoundError(header.kid)

                signing_key, algorithm = key.signing_key(header.alg)
                payload = decode_verified(token, signing_key, algorithm)

                policy.evaluate(payload, now=self.clock())
                claims = coerce_claims(payload, claims_type)

            except VerifierError as e:
                record_failure(span, e)
                logger.warning(
                    "Token verification failed",
                    error_code=e.error_code.value if e.error_code else None,
                    error=e.message,
                )
                raise

        logger.debug("Token verified successfully", kid=header.kid, sub=payload.get("sub"))
        return claims


async def verify(issuer: str, token: str, claims_type: type[ClaimsT] = DefaultClaims, **options: Any) -> ClaimsT:
    """
    One-shot verification with a fresh Verifier

    ``options`` map onto the builder methods, e.g. ``audience={"api://default"}``.
    """
    verifier = Verifier(issuer)
    for name, value in options.items():
        if name not in BUILDER_OPTIONS:
            raise TypeError(f"Unknown verifier option: {name}")
        getattr(verifier, name)(value)
    return await verifier.verify(token, claims_type)
