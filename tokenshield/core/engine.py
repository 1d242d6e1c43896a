# tokenshield/core/engine.py
from __future__ import annotations

from tokenshield.core.explain import explain_reasons
from tokenshield.core.rules import DEFAULT_RULES, RuleConfig, compute_score
from tokenshield.core.signals import EngineResult, ScoreSignals


def compute_confidence(signals: ScoreSignals) -> float:
    """
    0..1, two decimals. Source coverage times penalties for a price/volume
    conflict (x0.7) and for unknown mint status while other sources answered (x0.9).
    """
    c = 1.0
    if signals.sources_total > 0:
        c *= max(0, min(signals.sources_ok, signals.sources_total)) / signals.sources_total
    if signals.data_conflict:
        c *= 0.7
    if signals.mint_active is None and signals.sources_ok > 0:
        c *= 0.9
    return round(c, 2)


def run_engine(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> EngineResult:
    score, badge = compute_score(signals, cfg)
    return EngineResult(
        score=score,
        badge=badge,
        confidence=compute_confidence(signals),
        reasons=tuple(explain_reasons(signals, score, cfg)),
        signals=signals,
    )
