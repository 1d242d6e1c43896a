# tokenshield/providers/dexscreener.py
# DexScreener token-pairs listing (secondary market source + pool list + 24h activity).
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from tokenshield.config import provider_config
from tokenshield.providers.base import ProviderResult, ResilienceContext, guarded_call
from tokenshield.utils.num import dig, first_present, safe_number

PROVIDER = "dexscreener"
CB_KEY = "dexscreener:token_pairs"


@dataclass(frozen=True)
class DexPair:
    pair_address: str
    dex_id: str = ""
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    volume24h_usd: Optional[float] = None
    buys24h: Optional[float] = None
    sells24h: Optional[float] = None
    base_mint: Optional[str] = None
    quote_mint: Optional[str] = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def txns24h(self) -> Optional[float]:
        if self.buys24h is None and self.sells24h is None:
            return None
        return (self.buys24h or 0) + (self.sells24h or 0)


def _liquidity(p: dict) -> Optional[float]:
    liq = p.get("liquidity")
    if isinstance(liq, dict):
        return safe_number(liq.get("usd"))
    return safe_number(liq)


def _volume(p: dict) -> Optional[float]:
    vol = p.get("volume")
    if isinstance(vol, dict):
        return safe_number(vol.get("h24"))
    if vol is not None:
        return safe_number(vol)
    return safe_number(p.get("volume24h"))


def _validate(data: Any) -> Optional[str]:
    if isinstance(data, list):
        return None
    if isinstance(data, dict) and (data.get("pairs") is None or isinstance(data.get("pairs"), list)):
        return None
    return "Unexpected payload"


def parse_pairs(payload: Any) -> List[DexPair]:
    pairs = payload.get("pairs") if isinstance(payload, dict) else payload
    if not isinstance(pairs, list):
        return []
    out: List[DexPair] = []
    for i, p in enumerate(pairs):
        if not isinstance(p, dict):
            continue
        out.append(DexPair(
            pair_address=str(p.get("pairAddress") or f"pair-{i}"),
            dex_id=str(p.get("dexId") or ""),
            price_usd=safe_number(first_present(p, "priceUsd", "price")),
            liquidity_usd=_liquidity(p),
            volume24h_usd=_volume(p),
            buys24h=safe_number(dig(p, "txns", "h24", "buys")),
            sells24h=safe_number(dig(p, "txns", "h24", "sells")),
            base_mint=dig(p, "baseToken", "address"),
            quote_mint=dig(p, "quoteToken", "address"),
            raw=p,
        ))
    return out


def fetch_dexscreener_pairs(ctx: ResilienceContext, mint: str) -> ProviderResult:
    base = provider_config(PROVIDER)["base"]
    return guarded_call(
        ctx,
        provider=PROVIDER,
        method="token_pairs",
        params={"mint": mint},
        breaker_key=CB_KEY,
        url=f"{base}/token-pairs/v1/solana/{mint}",
        headers={"Accept": "application/json"},
        validate=_validate,
        normalize=parse_pairs,
    )
