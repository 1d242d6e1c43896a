# tokenshield/providers/jupiter.py
# Jupiter swap quote (read-only). Used by the collector as a sell-route probe.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from tokenshield.config import provider_config
from tokenshield.providers.base import ProviderResult, ResilienceContext, guarded_call
from tokenshield.utils.num import dig, safe_int, safe_number

PROVIDER = "jupiter"
CB_KEY = "jupiter:quote"
DEFAULT_SLIPPAGE_BPS = 50


@dataclass(frozen=True)
class JupiterQuote:
    input_mint: Optional[str] = None
    output_mint: Optional[str] = None
    in_amount: Optional[int] = None
    out_amount: Optional[int] = None
    price_impact_pct: Optional[float] = None
    route_labels: List[str] = field(default_factory=list)
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def has_route(self) -> bool:
        return bool(self.out_amount) and self.out_amount > 0


def _validate(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return "Unexpected payload"
    if data.get("error"):
        return str(data.get("error"))
    return None


def parse_quote(payload: Any) -> JupiterQuote:
    if not isinstance(payload, dict):
        return JupiterQuote(raw=payload)
    labels = []
    plan = payload.get("routePlan")
    for step in plan if isinstance(plan, list) else []:
        label = dig(step, "swapInfo", "label")
        if label:
            labels.append(str(label))
    impact = safe_number(payload.get("priceImpactPct"))
    return JupiterQuote(
        input_mint=payload.get("inputMint"),
        output_mint=payload.get("outputMint"),
        in_amount=safe_int(payload.get("inAmount")),
        out_amount=safe_int(payload.get("outAmount")),
        # Jupiter reports impact as a fraction ("0.0123" == 1.23%)
        price_impact_pct=impact * 100.0 if impact is not None else None,
        route_labels=labels,
        raw=payload,
    )


def fetch_jupiter_quote(
    ctx: ResilienceContext,
    input_mint: str,
    output_mint: str,
    amount: str,
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
) -> ProviderResult:
    amount = str(amount)
    base = provider_config(PROVIDER)["base"]
    return guarded_call(
        ctx,
        provider=PROVIDER,
        method="quote",
        params={
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": amount[:20],
            "slippage": str(slippage_bps),
        },
        breaker_key=CB_KEY,
        url=f"{base}/quote",
        query={
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": amount,
            "slippageBps": str(slippage_bps),
        },
        headers={"Accept": "application/json"},
        validate=_validate,
        normalize=parse_quote,
    )
