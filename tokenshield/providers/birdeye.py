# tokenshield/providers/birdeye.py
# Birdeye token overview: price / liquidity / 24h volume (primary market source).
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from tokenshield.config import provider_config
from tokenshield.providers.base import ProviderResult, ResilienceContext, guarded_call
from tokenshield.utils.log import dbg
from tokenshield.utils.num import first_present, safe_number

PROVIDER = "birdeye"
CB_KEY = "birdeye:token_overview"


@dataclass(frozen=True)
class BirdeyeOverview:
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    volume24h_usd: Optional[float] = None
    trades24h: Optional[float] = None
    holders: Optional[float] = None
    symbol: Optional[str] = None
    raw: Any = field(default=None, repr=False, compare=False)


def _validate(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return "Unexpected payload"
    if data.get("success") is False:
        return str(data.get("message") or "Birdeye returned success=false")
    return None


def parse_overview(payload: Any) -> BirdeyeOverview:
    # payload is either {"success":..., "data": {...}} or the bare overview
    d = payload.get("data") if isinstance(payload, dict) and isinstance(payload.get("data"), dict) else payload
    if not isinstance(d, dict):
        return BirdeyeOverview(raw=payload)
    return BirdeyeOverview(
        price_usd=safe_number(first_present(d, "price", "value")),
        liquidity_usd=safe_number(first_present(d, "liquidity", "liquidity_usd")),
        volume24h_usd=safe_number(first_present(d, "v24hUSD", "v24h", "volume24h", "volume_24h")),
        trades24h=safe_number(first_present(d, "trade24h", "trades24h")),
        holders=safe_number(d.get("holder")),
        symbol=d.get("symbol") if isinstance(d.get("symbol"), str) else None,
        raw=d,
    )


def fetch_birdeye_overview(ctx: ResilienceContext, mint: str) -> ProviderResult:
    api_key = ctx.settings.birdeye_key()
    if not api_key:
        dbg("BIRDEYE", "token_overview skipped: BIRDEYE_API_KEY missing or too short")
        return ProviderResult.degraded("Birdeye not configured")
    base = provider_config(PROVIDER)["base"]
    return guarded_call(
        ctx,
        provider=PROVIDER,
        method="token_overview",
        params={"mint": mint},
        breaker_key=CB_KEY,
        url=f"{base}/defi/token_overview",
        query={"address": mint},
        headers={"Accept": "application/json", "x-chain": "solana", "X-API-KEY": api_key},
        validate=_validate,
        normalize=parse_overview,
    )
