# tokenshield/providers/base.py
"""
Shared adapter plumbing: the uniform ProviderResult, the resilience context every
adapter receives, and guarded_call(), the cache -> breaker -> fetch template.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests

from tokenshield.config import Settings, load_settings, provider_config
from tokenshield.utils.cache import TTLCache, cache_key, ttl_for
from tokenshield.utils.circuit import CircuitBreaker
from tokenshield.utils.fetch_guard import FetchResult, Validator, guarded_fetch
from tokenshield.utils.log import dbg

CACHE_HIT = "CACHE_HIT"
DEGRADED = "DEGRADED"
TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class ProviderResult:
    ok: bool
    latency_ms: int = 0
    data: Any = None
    error: Optional[str] = None
    quality: Tuple[str, ...] = ()

    @classmethod
    def degraded(cls, error: str, latency_ms: int = 0) -> "ProviderResult":
        return cls(ok=False, latency_ms=latency_ms, error=error, quality=(DEGRADED,))

    def with_data(self, data: Any) -> "ProviderResult":
        return ProviderResult(
            ok=self.ok, latency_ms=self.latency_ms, data=data, error=self.error, quality=self.quality
        )


@dataclass(frozen=True)
class SourceMeta:
    name: str
    ok: bool
    latency_ms: int
    fetched_at: float
    quality: Tuple[str, ...] = ()
    error: Optional[str] = None

    @classmethod
    def from_result(cls, name: str, result: ProviderResult, fetched_at: Optional[float] = None) -> "SourceMeta":
        return cls(
            name=name,
            ok=result.ok,
            latency_ms=result.latency_ms,
            fetched_at=time.time() if fetched_at is None else fetched_at,
            quality=tuple(result.quality),
            error=result.error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ok": self.ok,
            "latency_ms": self.latency_ms,
            "fetched_at": self.fetched_at,
            "quality": list(self.quality),
            "error": self.error,
        }


class ResilienceContext:
    """
    Everything an adapter needs besides its arguments: settings, the shared cache,
    the breaker registry and the HTTP session. One per process in the shells,
    a fresh one per test.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
        breaker: Optional[CircuitBreaker] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings if settings is not None else Settings()
        self.cache = cache if cache is not None else TTLCache(self.settings.cache_max_entries)
        self.breaker = breaker if breaker is not None else CircuitBreaker(
            failure_threshold=self.settings.breaker_failure_threshold,
            cooldown=self.settings.breaker_cooldown,
        )
        self.session = session
        self.sleep = sleep

    @classmethod
    def from_env(cls) -> "ResilienceContext":
        return cls(settings=load_settings(), session=requests.Session())

    def fetch(self, url: str, *, timeout: Optional[float] = None, max_bytes: Optional[int] = None, **kw) -> FetchResult:
        s = self.settings
        return guarded_fetch(
            url,
            timeout=s.fetch_timeout if timeout is None else timeout,
            retries=s.fetch_retries,
            retry_delay=s.retry_delay,
            max_bytes=s.max_response_bytes if max_bytes is None else max_bytes,
            session=self.session,
            sleep=self.sleep,
            **kw,
        )


def guarded_call(
    ctx: ResilienceContext,
    *,
    provider: str,
    method: str,
    params: Mapping[str, Any],
    breaker_key: str,
    url: str,
    normalize: Callable[[Any], Any],
    http_method: str = "GET",
    query: Optional[Mapping[str, Any]] = None,
    json_body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    validate: Optional[Validator] = None,
    max_bytes: Optional[int] = None,
) -> ProviderResult:
    """
    Cache hit      -> ok, [CACHE_HIT], latency 0
    Breaker open   -> not ok, [DEGRADED], no I/O
    Fetch ok       -> normalize, breaker success, write-through with the provider's TTL
    Fetch failed   -> breaker failure, [TIMEOUT] or [DEGRADED]
    Raised/bad DTO -> breaker failure, [DEGRADED]
    """
    cfg = provider_config(provider)
    key = cache_key(provider, method, params)

    cached = ctx.cache.get(key)
    if cached is not None:
        return ProviderResult(ok=True, latency_ms=0, data=cached, quality=(CACHE_HIT,))

    if not ctx.breaker.allow(breaker_key):
        dbg(provider.upper(), f"{breaker_key} circuit open, skipping call")
        return ProviderResult.degraded("Circuit open")

    # every path past allow() records an outcome so a half-open trial always resolves
    try:
        res = ctx.fetch(
            url,
            method=http_method,
            params=query,
            json_body=json_body,
            headers=headers,
            timeout=cfg["timeout"],
            validate=validate,
            max_bytes=max_bytes,
        )
    except Exception as e:
        ctx.breaker.record_failure(breaker_key)
        dbg(provider.upper(), f"{method} raised: {e!r}")
        return ProviderResult.degraded(f"{method} error: {e}")

    if not res.ok:
        ctx.breaker.record_failure(breaker_key)
        dbg(provider.upper(), f"{method} failed: {res.error} (status={res.status}, {res.latency_ms}ms)")
        return ProviderResult(
            ok=False,
            latency_ms=res.latency_ms,
            error=res.error or "Request failed",
            quality=(TIMEOUT,) if res.timed_out else (DEGRADED,),
        )

    try:
        data = normalize(res.data)
    except Exception as e:
        ctx.breaker.record_failure(breaker_key)
        dbg(provider.upper(), f"{method} payload could not be normalized: {e!r}")
        return ProviderResult.degraded(f"Malformed payload: {e}", latency_ms=res.latency_ms)

    ctx.breaker.record_success(breaker_key)
    ctx.cache.set(key, data, ttl_for(cfg["ttl"]))
    dbg(provider.upper(), f"{method} OK ({res.latency_ms}ms)")
    return ProviderResult(ok=True, latency_ms=res.latency_ms, data=data)


def rpc_error_message(payload: Any) -> Optional[str]:
    """JSON-RPC error object -> message, or None if the payload carries no error."""
    if isinstance(payload, list):
        for item in payload:
            msg = rpc_error_message(item)
            if msg:
                return msg
        return None
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if not err:
        return None
    if isinstance(err, dict):
        return str(err.get("message") or err.get("code") or "RPC error")
    return str(err)


__all__: List[str] = [
    "CACHE_HIT",
    "DEGRADED",
    "TIMEOUT",
    "ProviderResult",
    "SourceMeta",
    "ResilienceContext",
    "guarded_call",
    "rpc_error_message",
]
