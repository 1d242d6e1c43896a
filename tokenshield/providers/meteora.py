# tokenshield/providers/meteora.py
# Meteora DLMM pool registry. The API only offers the full registry, so it is
# cached once under mint=all and filtered per mint on every call.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from tokenshield.config import provider_config
from tokenshield.providers.base import ProviderResult, ResilienceContext, guarded_call
from tokenshield.utils.num import first_present, safe_number

PROVIDER = "meteora"
CB_KEY = "meteora:pair_all"


@dataclass(frozen=True)
class MeteoraPool:
    address: str
    name: str = ""
    mint_x: Optional[str] = None
    mint_y: Optional[str] = None
    liquidity_usd: Optional[float] = None
    volume24h_usd: Optional[float] = None
    raw: Any = field(default=None, repr=False, compare=False)

    def has_mint(self, mint: str) -> bool:
        return mint in (self.mint_x, self.mint_y)


def _validate(data: Any) -> Optional[str]:
    return None if isinstance(data, list) else "Not array"


def parse_pools(payload: Any) -> List[MeteoraPool]:
    out: List[MeteoraPool] = []
    for p in payload if isinstance(payload, list) else []:
        if not isinstance(p, dict):
            continue
        address = first_present(p, "address", "pair_address")
        if not address:
            continue
        out.append(MeteoraPool(
            address=str(address),
            name=str(p.get("name") or ""),
            mint_x=first_present(p, "mint_x", "baseMint"),
            mint_y=first_present(p, "mint_y", "quoteMint"),
            liquidity_usd=safe_number(first_present(p, "liquidity", "liquidity_usd")),
            volume24h_usd=safe_number(first_present(p, "trade_volume_24h", "volume_24h")),
            raw=p,
        ))
    return out


def fetch_meteora_pools(ctx: ResilienceContext, mint: str) -> ProviderResult:
    base = provider_config(PROVIDER)["base"]
    res = guarded_call(
        ctx,
        provider=PROVIDER,
        method="pair_all",
        params={"mint": "all"},
        breaker_key=CB_KEY,
        url=f"{base}/pair/all",
        headers={"Accept": "application/json"},
        validate=_validate,
        normalize=parse_pools,
        max_bytes=ctx.settings.meteora_max_bytes,
    )
    if not res.ok:
        return res
    return res.with_data([p for p in res.data if p.has_mint(mint)])
