from conftest import FakeClock
from tokenshield.utils.circuit import CLOSED, HALF_OPEN, OPEN, CircuitBreaker


def _open(cb, key, n):
    for _ in range(n):
        assert cb.allow(key)
        cb.record_failure(key)


def test_opens_after_threshold_and_half_opens_once_after_cooldown():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=5, cooldown=60, clock=clock)
    _open(cb, "helius:getAsset", 5)

    assert cb.state("helius:getAsset") == OPEN
    assert cb.allow("helius:getAsset") is False
    clock.advance(59.9)
    assert cb.allow("helius:getAsset") is False

    clock.advance(0.1)
    assert cb.allow("helius:getAsset") is True
    assert cb.state("helius:getAsset") == HALF_OPEN
    # the single trial is out; nobody else gets through
    assert cb.allow("helius:getAsset") is False

    cb.record_success("helius:getAsset")
    assert cb.state("helius:getAsset") == CLOSED
    assert cb.allow("helius:getAsset") is True


def test_failed_trial_reopens_with_fresh_cooldown():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=2, cooldown=30, clock=clock)
    _open(cb, "k", 2)
    clock.advance(30)
    assert cb.allow("k")
    cb.record_failure("k")

    assert cb.state("k") == OPEN
    clock.advance(29)
    assert cb.allow("k") is False
    clock.advance(1)
    assert cb.allow("k") is True


def test_success_resets_consecutive_failures():
    cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
    _open(cb, "k", 2)
    cb.record_success("k")
    _open(cb, "k", 2)
    assert cb.state("k") == CLOSED


def test_keys_are_independent():
    cb = CircuitBreaker(failure_threshold=1, clock=FakeClock())
    _open(cb, "birdeye:token_overview", 1)
    assert cb.allow("birdeye:token_overview") is False
    assert cb.allow("dexscreener:token_pairs") is True
    assert cb.state("meteora:pair_all") is None


def test_reset():
    cb = CircuitBreaker(failure_threshold=1, clock=FakeClock())
    _open(cb, "a", 1)
    _open(cb, "b", 1)
    cb.reset("a")
    assert cb.allow("a") is True
    assert cb.allow("b") is False
    cb.reset()
    assert cb.allow("b") is True
