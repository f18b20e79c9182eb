"""
Private HTTP cache for fetched documents.

CachingFetcher wraps any Fetcher and keeps successful responses keyed by
URL. Reuse is governed by the response's own caching directives:

- Cache-Control: no-store   -> never stored
- Cache-Control: no-cache   -> stored, but revalidated before every reuse
- Cache-Control: max-age=N  -> fresh for N seconds minus the Age header
- Expires (minus Date)      -> fallback lifetime when max-age is absent

Stale entries carrying an ETag or Last-Modified are revalidated with a
conditional GET; a 304 answer refreshes the stored entry and reuses its body.
"""

import asyncio
import base64
import hashlib
import json
import os
import tempfile
import time
from dataclasses import dataclass, field, replace
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Callable, Protocol

import httpx
import structlog

from .client import Fetcher

logger = structlog.get_logger(__name__)

# Body is stored decoded, so its transfer framing must not be replayed
_UNSTORED_HEADERS = ("content-encoding", "content-length", "transfer-encoding")

# Headers a 304 is allowed to update on the stored entry
_REVALIDATION_HEADERS = ("cache-control", "expires", "date", "etag", "last-modified", "age")


def parse_cache_control(value: str | None) -> dict[str, str | None]:
    """Parse a Cache-Control header into {directive: argument-or-None}"""
    directives: dict[str, str | None] = {}
    if not value:
        return directives

    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, arg = part.partition("=")
        directives[name.strip().lower()] = arg.strip().strip('"') if sep else None
    return directives


def _delta_seconds(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return max(int(value), 0)
    except ValueError:
        return None


def _http_date(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class CachedResponse:
    """A stored 200 response and the moment it was stored"""

    url: str
    status_code: int
    headers: dict[str, str]
    content: bytes
    stored_at: float = field(default_factory=time.time)

    @property
    def directives(self) -> dict[str, str | None]:
        return parse_cache_control(self.headers.get("cache-control"))

    def freshness_lifetime(self) -> float:
        directives = self.directives
        if "no-cache" in directives:
            return 0

        max_age = _delta_seconds(directives.get("max-age"))
        if max_age is not None:
            return max_age

        expires = _http_date(self.headers.get("expires"))
        if expires is None:
            return 0
        date = _http_date(self.headers.get("date")) or self.stored_at
        return max(expires - date, 0)

    def current_age(self, now: float) -> float:
        age_header = _delta_seconds(self.headers.get("age")) or 0
        return age_header + max(now - self.stored_at, 0)

    def is_fresh(self, now: float) -> bool:
        return self.freshness_lifetime() > self.current_age(now)

    def validators(self) -> dict[str, str]:
        headers = {}
        if "etag" in self.headers:
            headers["If-None-Match"] = self.headers["etag"]
        if "last-modified" in self.headers:
            headers["If-Modified-Since"] = self.headers["last-modified"]
        return headers

    def revalidated(self, response: httpx.Response, now: float) -> "CachedResponse":
        headers = dict(self.headers)
        for name in _REVALIDATION_HEADERS:
            if name in response.headers:
                headers[name] = response.headers[name]
        # Age from the origin no longer applies once we hold a fresh 304
        if "age" not in response.headers:
            headers.pop("age", None)
        return replace(self, headers=headers, stored_at=now)

    def to_response(self) -> httpx.Response:
        return httpx.Response(
            self.status_code,
            headers=self.headers,
            content=self.content,
            request=httpx.Request("GET", self.url),
        )

    @classmethod
    def from_response(cls, url: str, response: httpx.Response, now: float) -> "CachedResponse":
        return cls(
            url=url,
            status_code=response.status_code,
            headers={
                k.lower(): v for k, v in response.headers.items() if k.lower() not in _UNSTORED_HEADERS
            },
            content=response.content,
            stored_at=now,
        )


class CacheStore(Protocol):
    async def get(self, key: str) -> CachedResponse | None: ...

    async def set(self, key: str, entry: CachedResponse) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCacheStore:
    """Process-local store; entries vanish with the process"""

    def __init__(self):
        self._entries: dict[str, CachedResponse] = {}

    async def get(self, key: str) -> CachedResponse | None:
        return self._entries.get(key)

    async def set(self, key: str, entry: CachedResponse) -> None:
        self._entries[key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class FileCacheStore:
    """On-disk store, one JSON file per URL under ``directory``"""

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def _read(self, key: str) -> CachedResponse | None:
        path = self._path(key)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CachedResponse(
                url=data["url"],
                status_code=data["status_code"],
                headers=data["headers"],
                content=base64.b64decode(data["content"]),
                stored_at=data["stored_at"],
            )
        except FileNotFoundError:
            return None
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry", path=str(path), error=str(e))
            path.unlink(missing_ok=True)
            return None

    def _write(self, key: str, entry: CachedResponse) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Each writer gets its own temp file; the rename is the only shared step
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.directory, prefix=f"{path.stem}.", suffix=".tmp", delete=False
        ) as tmp:
            json.dump(
                {
                    "url": entry.url,
                    "status_code": entry.status_code,
                    "headers": entry.headers,
                    "content": base64.b64encode(entry.content).decode("ascii"),
                    "stored_at": entry.stored_at,
                },
                tmp,
            )
        try:
            os.replace(tmp.name, path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> CachedResponse | None:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, entry: CachedResponse) -> None:
        await asyncio.to_thread(self._write, key, entry)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)


class CachingFetcher:
    """Fetcher decorator adding private HTTP cache semantics"""

    def __init__(
        self,
        inner: Fetcher,
        store: CacheStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.inner = inner
        self.store = store if store is not None else MemoryCacheStore()
        self.clock = clock

    # A failing store (unwritable directory, I/O error) only costs the cache;
    # the fetch itself goes ahead as if the entry were missing.
    async def _load(self, url: str) -> CachedResponse | None:
        try:
            return await self.store.get(url)
        except OSError as e:
            logger.warning("Cache store read failed", url=url, error=str(e))
            return None

    async def _save(self, url: str, entry: CachedResponse) -> None:
        try:
            await self.store.set(url, entry)
        except OSError as e:
            logger.warning("Cache store write failed", url=url, error=str(e))

    async def _discard(self, url: str) -> None:
        try:
            await self.store.delete(url)
        except OSError as e:
            logger.warning("Cache store delete failed", url=url, error=str(e))

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        entry = await self._load(url)
        now = self.clock()

        if entry is not None and entry.is_fresh(now):
            logger.debug("Cache hit", url=url, age=entry.current_age(now))
            return entry.to_response()

        request_headers = dict(headers or {})
        if entry is not None:
            request_headers.update(entry.validators())
            logger.debug("Cache entry stale, revalidating", url=url)

        response = await self.inner.fetch(url, headers=request_headers or None)
        now = self.clock()

        if response.status_code == 304 and entry is not None:
            entry = entry.revalidated(response, now)
            await self._save(url, entry)
            logger.debug("Cache entry revalidated", url=url)
            return entry.to_response()

        directives = parse_cache_control(response.headers.get("cache-control"))
        if response.status_code == 200 and "no-store" not in directives:
            await self._save(url, CachedResponse.from_response(url, response, now))
        elif entry is not None:
            await self._discard(url)

        return response
