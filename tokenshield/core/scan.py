# tokenshield/core/scan.py
from __future__ import annotations

import threading
from typing import Optional

from tokenshield.core.collect import gather_signals
from tokenshield.core.engine import run_engine
from tokenshield.core.rules import DEFAULT_RULES, RuleConfig
from tokenshield.core.signals import EngineResult
from tokenshield.providers.base import ResilienceContext
from tokenshield.utils.log import dbg

_DEFAULT_CTX: Optional[ResilienceContext] = None
_DEFAULT_LOCK = threading.Lock()


def default_context() -> ResilienceContext:
    """Process-wide context for the shells, built from env on first use."""
    global _DEFAULT_CTX
    with _DEFAULT_LOCK:
        if _DEFAULT_CTX is None:
            _DEFAULT_CTX = ResilienceContext.from_env()
        return _DEFAULT_CTX


class Scanner:
    def __init__(self, ctx: ResilienceContext, rules: RuleConfig = DEFAULT_RULES):
        self.ctx = ctx
        self.rules = rules

    def scan(self, mint: str) -> EngineResult:
        dbg("SCAN", f"start {mint}")
        signals = gather_signals(self.ctx, mint)
        result = run_engine(signals, self.rules)
        dbg(
            "SCAN",
            f"{mint} score={result.score} badge={result.badge} confidence={result.confidence} "
            f"reasons={[r.code for r in result.reasons]}",
        )
        return result


def scan(mint: str, ctx: Optional[ResilienceContext] = None) -> EngineResult:
    return Scanner(ctx if ctx is not None else default_context()).scan(mint)
