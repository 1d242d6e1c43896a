# tokenshield/core/explain.py
# Human-readable reasons, emitted in rule order; DEGRADED_SOURCES always last.
from __future__ import annotations

from typing import List

from tokenshield.core.rules import (
    DAY,
    DEFAULT_RULES,
    RuleConfig,
    bonus_lp_lock,
    penalty_low_liquidity,
    penalty_sell_tax,
    penalty_top10_concentration,
)
from tokenshield.core.signals import Reason, ScoreSignals


def _fmt_num(x: float) -> str:
    return f"{x:,.0f}" if float(x).is_integer() else f"{x:,.2f}"


def explain_reasons(signals: ScoreSignals, score: int, cfg: RuleConfig = DEFAULT_RULES) -> List[Reason]:
    reasons: List[Reason] = []

    if signals.mint_active is False:
        reasons.append(Reason(
            code="MINT_NOT_ACTIVE",
            title="Mint not active",
            detail="Token mint is frozen or not active on-chain.",
            severity="HIGH",
            evidence={"mint_active": False},
        ))

    if bonus_lp_lock(signals, cfg) > 0 and signals.lp_lock_seconds is not None:
        days = round(signals.lp_lock_seconds / DAY)
        reasons.append(Reason(
            code="LP_LOCKED",
            title=f"Liquidity locked ({days} days)",
            detail=f"Liquidity is locked for about {days} days.",
            severity="LOW" if signals.lp_lock_seconds >= 90 * DAY else "MEDIUM",
            evidence={"lp_lock_seconds": signals.lp_lock_seconds},
        ))

    pct = signals.top10_concentration_percent
    if penalty_top10_concentration(signals, cfg) < 0 and pct is not None:
        reasons.append(Reason(
            code="HIGH_CONCENTRATION",
            title="High holder concentration",
            detail=f"Top 10 holders control {pct:.1f}% of supply.",
            severity="HIGH" if pct >= 80 else "MEDIUM",
            evidence={"top10_concentration_percent": pct},
        ))

    bps = signals.sell_tax_bps
    if penalty_sell_tax(signals, cfg) < 0 and bps is not None:
        reasons.append(Reason(
            code="SELL_TAX",
            title=f"Sell tax ({bps / 100:.2f}%)",
            detail=f"Token charges a transfer/sell fee of {_fmt_num(bps)} bps.",
            severity="HIGH" if bps >= 500 else "MEDIUM",
            evidence={"sell_tax_bps": bps},
        ))

    if signals.data_conflict:
        conflict = signals.evidence.get("conflict") or {}
        reasons.append(Reason(
            code="DATA_CONFLICT",
            title="Data conflict",
            detail="Price or volume differs significantly between sources.",
            severity="MEDIUM",
            evidence=dict(conflict),
        ))

    liq = signals.market.liquidity_usd
    if penalty_low_liquidity(signals, cfg) < 0 and liq is not None:
        reasons.append(Reason(
            code="LOW_LIQUIDITY",
            title="Low liquidity",
            detail=f"Liquidity is ${_fmt_num(liq)}.",
            severity="HIGH" if liq < 1_000 else "MEDIUM",
            evidence={"liquidity_usd": liq},
        ))

    if signals.actors.bot_likely:
        reasons.append(Reason(
            code="BOT_LIKELY",
            title="Bot activity",
            detail="Trading patterns suggest bot activity.",
            severity="MEDIUM",
            evidence={"notes": list(signals.actors.notes)},
        ))
    if signals.actors.wash_likely:
        reasons.append(Reason(
            code="WASH_LIKELY",
            title="Wash trading",
            detail="Trading patterns suggest wash trading.",
            severity="HIGH",
            evidence={"notes": list(signals.actors.notes)},
        ))

    ok, total = signals.sources_ok, signals.sources_total
    if total > 0 and ok < total:
        reasons.append(Reason(
            code="DEGRADED_SOURCES",
            title="Incomplete data",
            detail=f"{ok}/{total} data sources available.",
            severity="MEDIUM" if ok / total < 0.5 else "LOW",
            evidence={"sources_ok": ok, "sources_total": total, "score": score},
        ))

    return reasons
