import json
import socket

import pytest

from tokenshield.config import Settings
from tokenshield.providers.base import ResilienceContext
from tokenshield.utils.cache import TTLCache
from tokenshield.utils.circuit import CircuitBreaker

HELIUS_KEY = "h" * 36
BIRDEYE_KEY = "b" * 32
MINT = "So11111111111111111111111111111111111111112"


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    allowed_hosts = {"localhost", "127.0.0.1", "::1"}
    real_connect = socket.socket.connect

    def guarded_connect(self, address):
        host = address[0] if isinstance(address, tuple) else address
        if host in allowed_hosts:
            return real_connect(self, address)
        raise RuntimeError("Network access is blocked during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeResponse:
    def __init__(self, status=200, json_data=None, body=b"", headers=None, chunks=None, raise_on_iter=None):
        if json_data is not None:
            body = json.dumps(json_data).encode()
            headers = {"content-type": "application/json", **(headers or {})}
        self.status_code = status
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.encoding = "utf-8"
        self._chunks = chunks if chunks is not None else [body]
        self._raise_on_iter = raise_on_iter
        self.iterated = False
        self.closed = False

    def iter_content(self, chunk_size=1):
        self.iterated = True
        for c in self._chunks:
            yield c
        if self._raise_on_iter is not None:
            raise self._raise_on_iter

    def close(self):
        self.closed = True


class FakeSession:
    """
    requests.Session stand-in. `handler(method, url, kwargs)` returns a FakeResponse
    or an exception instance to raise; a list is consumed one item per call.
    """

    def __init__(self, handler):
        if isinstance(handler, list):
            items = list(handler)
            handler = lambda method, url, kw: items.pop(0)
        self.handler = handler
        self.calls = []

    def request(self, method, url, **kw):
        self.calls.append((method, url, kw))
        out = self.handler(method, url, kw)
        if isinstance(out, BaseException):
            raise out
        return out


def make_settings(**overrides) -> Settings:
    base = dict(
        helius_api_key=HELIUS_KEY,
        birdeye_api_key=BIRDEYE_KEY,
        retry_delay=0.0,
    )
    base.update(overrides)
    return Settings(**base)


def make_ctx(session, clock=None, **overrides) -> ResilienceContext:
    settings = make_settings(**overrides)
    clock = clock or FakeClock()
    return ResilienceContext(
        settings=settings,
        cache=TTLCache(settings.cache_max_entries, clock=clock),
        breaker=CircuitBreaker(settings.breaker_failure_threshold, settings.breaker_cooldown, clock=clock),
        session=session,
        sleep=lambda s: None,
    )


@pytest.fixture
def clock():
    return FakeClock()
