# tokenshield/core/signals.py
# Per-scan value types: what the collector produces and what the engine returns.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from tokenshield.providers.base import SourceMeta

Badge = Literal["SAFE", "CAUTION", "HIGH_RISK"]
Severity = Literal["LOW", "MEDIUM", "HIGH"]
PoolType = Literal["meteora", "raydium", "orca", "pumpswap", "unknown"]


@dataclass
class MarketSignals:
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    volume24h_usd: Optional[float] = None
    sources_used: List[str] = field(default_factory=list)


@dataclass
class PoolSignal:
    type: PoolType
    address: str
    liquidity: float = 0.0
    lp_locked: Optional[bool] = None
    evidence: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActorsSignals:
    bot_likely: bool = False
    wash_likely: bool = False
    notes: List[str] = field(default_factory=list)


@dataclass
class ScoreSignals:
    """
    Everything the rules look at. Numbers are finite floats or None, never NaN/inf.
    sources_ok <= sources_total always.
    """
    mint_active: Optional[bool] = None
    lp_lock_seconds: Optional[float] = None
    top10_concentration_percent: Optional[float] = None  # 0..100
    sell_tax_bps: Optional[float] = None
    sources_ok: int = 0
    sources_total: int = 0
    data_conflict: bool = False
    market: MarketSignals = field(default_factory=MarketSignals)
    pools: List[PoolSignal] = field(default_factory=list)
    actors: ActorsSignals = field(default_factory=ActorsSignals)
    evidence: Dict[str, Any] = field(default_factory=dict)
    sources_meta: List[SourceMeta] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint_active": self.mint_active,
            "lp_lock_seconds": self.lp_lock_seconds,
            "top10_concentration_percent": self.top10_concentration_percent,
            "sell_tax_bps": self.sell_tax_bps,
            "sources_ok": self.sources_ok,
            "sources_total": self.sources_total,
            "data_conflict": self.data_conflict,
            "market": {
                "price_usd": self.market.price_usd,
                "liquidity_usd": self.market.liquidity_usd,
                "volume24h_usd": self.market.volume24h_usd,
                "sources_used": list(self.market.sources_used),
            },
            "pools": [
                {
                    "type": p.type,
                    "address": p.address,
                    "liquidity": p.liquidity,
                    "lp_locked": p.lp_locked,
                    "evidence": dict(p.evidence),
                }
                for p in self.pools
            ],
            "actors": {
                "bot_likely": self.actors.bot_likely,
                "wash_likely": self.actors.wash_likely,
                "notes": list(self.actors.notes),
            },
            "evidence": dict(self.evidence),
            "sources_meta": [m.to_dict() for m in self.sources_meta],
        }


@dataclass(frozen=True)
class Reason:
    code: str
    title: str
    detail: str
    severity: Severity
    evidence: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "title": self.title,
            "detail": self.detail,
            "severity": self.severity,
            "evidence": dict(self.evidence),
        }


@dataclass(frozen=True)
class EngineResult:
    score: int
    badge: Badge
    confidence: float
    reasons: Tuple[Reason, ...]
    signals: ScoreSignals

    def to_dict(self, include_evidence: bool = True) -> Dict[str, Any]:
        sig = self.signals.to_dict()
        if not include_evidence:
            sig.pop("evidence", None)
        return {
            "score": self.score,
            "badge": self.badge,
            "confidence": self.confidence,
            "reasons": [r.to_dict() for r in self.reasons],
            "signals": sig,
        }
