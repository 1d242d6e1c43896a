# tokenshield/core/rules.py
"""
Pure scoring rules. Each rule maps ScoreSignals to one integer delta
(positive = bonus, negative = penalty). No I/O, no clock.

Thresholds live in RuleConfig so they can be tuned without touching the rules;
DEFAULT_RULES is the shipped table.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from tokenshield.core.signals import Badge, ScoreSignals

SCORE_MIN = 0
SCORE_MAX = 100
DAY = 24 * 3600


@dataclass(frozen=True)
class RuleConfig:
    # base score by sources_ok / sources_total
    base_full: int = 70
    base_half: int = 60
    base_low: int = 50
    base_no_sources: int = 50

    mint_inactive: int = -25
    # 0 drops the bonus: a fully healthy token then scores base_full (70, CAUTION)
    mint_verified: int = 10

    # (min seconds, bonus), checked top-down; any positive lock below the last tier gets lp_lock_any
    lp_lock_tiers: Tuple[Tuple[float, int], ...] = ((365 * DAY, 15), (90 * DAY, 10), (30 * DAY, 5))
    lp_lock_any: int = 2

    # (min percent, penalty)
    concentration_tiers: Tuple[Tuple[float, int], ...] = ((90.0, -30), (70.0, -20), (50.0, -10))
    # (min bps, penalty)
    sell_tax_tiers: Tuple[Tuple[float, int], ...] = ((1000.0, -20), (500.0, -10), (100.0, -5))
    data_conflict: int = -15
    # (below usd, penalty), checked lowest first
    liquidity_tiers: Tuple[Tuple[float, int], ...] = ((1_000.0, -20), (10_000.0, -10), (50_000.0, -5))

    bot_likely: int = -10
    wash_likely: int = -15

    safe_min: int = 80
    caution_min: int = 50


DEFAULT_RULES = RuleConfig()


def clamp_score(x: float) -> int:
    """Round half up first, then bound to 0..100 (100.4 -> 100, 50.5 -> 51)."""
    return max(SCORE_MIN, min(SCORE_MAX, int(math.floor(x + 0.5))))


def score_to_badge(score: float, cfg: RuleConfig = DEFAULT_RULES) -> Badge:
    if score >= cfg.safe_min:
        return "SAFE"
    if score >= cfg.caution_min:
        return "CAUTION"
    return "HIGH_RISK"


def base_score_from_sources(sources_ok: int, sources_total: int, cfg: RuleConfig = DEFAULT_RULES) -> int:
    if sources_total <= 0:
        return cfg.base_no_sources
    ratio = sources_ok / sources_total
    if ratio >= 1:
        return cfg.base_full
    if ratio >= 0.5:
        return cfg.base_half
    return cfg.base_low


def penalty_mint_inactive(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    return cfg.mint_inactive if signals.mint_active is False else 0


def bonus_mint_verified(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    return cfg.mint_verified if signals.mint_active is True else 0


def bonus_lp_lock(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    sec = signals.lp_lock_seconds
    if sec is None or sec <= 0:
        return 0
    for min_sec, bonus in cfg.lp_lock_tiers:
        if sec >= min_sec:
            return bonus
    return cfg.lp_lock_any


def _tiered_at_least(value, tiers) -> int:
    if value is None:
        return 0
    for threshold, delta in tiers:
        if value >= threshold:
            return delta
    return 0


def penalty_top10_concentration(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    return _tiered_at_least(signals.top10_concentration_percent, cfg.concentration_tiers)


def penalty_sell_tax(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    bps = signals.sell_tax_bps
    if bps is None or bps <= 0:
        return 0
    return _tiered_at_least(bps, cfg.sell_tax_tiers)


def penalty_data_conflict(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    return cfg.data_conflict if signals.data_conflict else 0


def penalty_low_liquidity(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    liq = signals.market.liquidity_usd
    if liq is None:
        return 0
    for below, penalty in cfg.liquidity_tiers:
        if liq < below:
            return penalty
    return 0


def penalty_actors(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> int:
    p = 0
    if signals.actors.bot_likely:
        p += cfg.bot_likely
    if signals.actors.wash_likely:
        p += cfg.wash_likely
    return p


# evaluation order is fixed; explain.py follows the same order
RULES = (
    penalty_mint_inactive,
    bonus_mint_verified,
    bonus_lp_lock,
    penalty_top10_concentration,
    penalty_sell_tax,
    penalty_data_conflict,
    penalty_low_liquidity,
    penalty_actors,
)


def compute_score(signals: ScoreSignals, cfg: RuleConfig = DEFAULT_RULES) -> Tuple[int, Badge]:
    """Return (score 0..100, badge): base from source coverage plus every rule delta."""
    total = base_score_from_sources(signals.sources_ok, signals.sources_total, cfg)
    for rule in RULES:
        total += rule(signals, cfg)
    score = clamp_score(total)
    return score, score_to_badge(score, cfg)
