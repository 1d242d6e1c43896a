# tokenshield/utils/fetch_guard.py
"""
One guarded HTTP call: timeout, bounded retry on 429/5xx/timeouts, response size cap,
optional payload validation. Every failure comes back as a FetchResult; network and
timeout errors are never raised to the caller.
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import requests

from tokenshield.utils.log import dbg

DEFAULT_TIMEOUT = 8.0
MAX_RESPONSE_BYTES = 2 * 1024 * 1024  # 2MB
RETRY_MAX = 2
RETRY_DELAY = 0.5
CHUNK_SIZE = 64 * 1024

# validate(data) returns None to accept, or an error message to reject.
Validator = Callable[[Any], Optional[str]]


@dataclass(frozen=True)
class FetchResult:
    ok: bool
    status: int
    data: Any = None
    error: Optional[str] = None
    latency_ms: int = 0
    timed_out: bool = False


class _TooLarge(Exception):
    pass


class _Deadline(Exception):
    pass


def _is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def _read_capped(resp, max_bytes: int, deadline: float) -> bytes:
    declared = resp.headers.get("content-length")
    if declared is not None:
        try:
            if int(declared) > max_bytes:
                raise _TooLarge()
        except ValueError:
            pass
    buf = bytearray()
    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
        if not chunk:
            continue
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise _TooLarge()
        if time.monotonic() > deadline:
            raise _Deadline()
    return bytes(buf)


def _decode(body: bytes, content_type: str, encoding: Optional[str]) -> Any:
    try:
        text = body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # unknown charset in content-type
        text = body.decode("utf-8", errors="replace")
    if "json" in content_type.lower():
        return json.loads(text)
    return text


def guarded_fetch(
    url: str,
    *,
    method: str = "GET",
    params: Optional[Mapping[str, Any]] = None,
    json_body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = RETRY_MAX,
    retry_delay: float = RETRY_DELAY,
    max_bytes: int = MAX_RESPONSE_BYTES,
    validate: Optional[Validator] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FetchResult:
    http = session if session is not None else requests
    start = time.monotonic()
    last_status = 0
    last_error: Optional[str] = None
    last_timed_out = False

    def elapsed_ms() -> int:
        return int((time.monotonic() - start) * 1000)

    for attempt in range(retries + 1):
        if attempt:
            sleep(retry_delay * attempt)
        deadline = time.monotonic() + timeout
        resp = None
        try:
            resp = http.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=dict(headers or {}),
                timeout=timeout,
                stream=True,
            )
            last_status = resp.status_code
            content_type = resp.headers.get("content-type") or ""

            if not 200 <= resp.status_code < 300:
                try:
                    snippet = _read_capped(resp, 500, deadline)[:100].decode("utf-8", errors="replace")
                except (_TooLarge, _Deadline):
                    snippet = ""
                last_error = f"HTTP {resp.status_code}: {snippet}".rstrip(": ").rstrip()
                last_timed_out = False
                if _is_retryable_status(resp.status_code) and attempt < retries:
                    dbg("FETCH", f"{method} {url} -> {resp.status_code}, retry {attempt + 1}/{retries}")
                    continue
                return FetchResult(ok=False, status=resp.status_code, error=last_error, latency_ms=elapsed_ms())

            try:
                body = _read_capped(resp, max_bytes, deadline)
            except _TooLarge:
                dbg("FETCH", f"{method} {url} -> body over {max_bytes} bytes, rejected")
                return FetchResult(ok=False, status=413, error="Response too large", latency_ms=elapsed_ms())

            try:
                data = _decode(body, content_type, resp.encoding)
            except (ValueError, RecursionError):
                # RecursionError: nesting too deep for json.loads
                return FetchResult(ok=False, status=502, error="Invalid JSON", latency_ms=elapsed_ms())

            if validate is not None:
                problem = validate(data)
                if problem:
                    dbg("FETCH", f"{method} {url} -> payload rejected: {problem}")
                    return FetchResult(ok=False, status=502, error=problem, latency_ms=elapsed_ms())

            return FetchResult(ok=True, status=resp.status_code, data=data, latency_ms=elapsed_ms())

        except (requests.Timeout, _Deadline):
            last_timed_out = True
            last_error = "Timeout"
        except requests.RequestException as e:
            # read timeouts while streaming surface as ConnectionError
            last_timed_out = "timed out" in str(e).lower()
            last_error = "Timeout" if last_timed_out else (str(e)[:200] or e.__class__.__name__)
        finally:
            if resp is not None:
                resp.close()

        if attempt < retries:
            dbg("FETCH", f"{method} {url} -> {last_error}, retry {attempt + 1}/{retries}")

    return FetchResult(
        ok=False,
        status=last_status if not last_timed_out else 0,
        error=last_error or "Unknown error",
        latency_ms=elapsed_ms(),
        timed_out=last_timed_out,
    )
