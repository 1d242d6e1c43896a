# tokenshield/providers/helius.py
# Helius RPC: DAS getAsset (mint metadata/flags) + largest-holder snapshot.
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tokenshield.providers.base import ProviderResult, ResilienceContext, guarded_call, rpc_error_message
from tokenshield.utils.log import dbg
from tokenshield.utils.num import dig, safe_int, safe_number

PROVIDER = "helius"
CB_ASSET = "helius:getAsset"
CB_HOLDERS = "helius:largestAccounts"

_AUTH_ERR = re.compile(r"invalid api key|unauthori[sz]ed", re.IGNORECASE)
_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


@dataclass(frozen=True)
class HeliusAsset:
    found: bool
    id: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    interface: Optional[str] = None
    frozen: bool = False
    burnt: bool = False
    mutable: Optional[bool] = None
    mint_authority: Optional[str] = None
    freeze_authority: Optional[str] = None
    supply: Optional[float] = None
    decimals: Optional[int] = None
    token_program: Optional[str] = None
    transfer_fee_bps: Optional[float] = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def mint_active(self) -> Optional[bool]:
        if not self.found:
            return None
        return not (self.frozen or self.burnt)


@dataclass(frozen=True)
class HolderSnapshot:
    supply: Optional[int]
    top_amounts: List[int]
    top10_percent: Optional[float]
    raw: Any = field(default=None, repr=False, compare=False)


def _validate_auth(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and (err.get("code") == -32401 or _AUTH_ERR.search(str(err.get("message") or ""))):
            return "Invalid API key"
    return None


def _validate_batch(data: Any) -> Optional[str]:
    if not isinstance(data, list):
        return "Expected JSON-RPC batch response"
    for item in data:
        problem = _validate_auth(item)
        if problem:
            return problem
    return None


def _transfer_fee_bps(result: Dict[str, Any]) -> Optional[float]:
    # Token-2022 transfer-fee extension; the "newer" fee is the one in force after the epoch flips
    cfg = dig(result, "mint_extensions", "transfer_fee_config")
    if not isinstance(cfg, dict):
        return None
    for which in ("newer_transfer_fee", "older_transfer_fee"):
        bps = safe_number(dig(cfg, which, "transfer_fee_basis_points"))
        if bps is not None:
            return bps
    return None


def parse_asset(payload: Any) -> HeliusAsset:
    result = payload.get("result") if isinstance(payload, dict) else None
    if not isinstance(result, dict):
        return HeliusAsset(found=False, raw=payload)
    token_info = result.get("token_info") if isinstance(result.get("token_info"), dict) else {}
    frozen = result.get("frozen")
    if frozen is None:
        frozen = dig(result, "ownership", "frozen")
    return HeliusAsset(
        found=True,
        id=result.get("id"),
        name=dig(result, "content", "metadata", "name"),
        symbol=dig(result, "content", "metadata", "symbol") or token_info.get("symbol"),
        interface=result.get("interface"),
        frozen=frozen is True,
        burnt=result.get("burnt") is True,
        mutable=result.get("mutable") if isinstance(result.get("mutable"), bool) else None,
        mint_authority=token_info.get("mint_authority"),
        freeze_authority=token_info.get("freeze_authority"),
        supply=safe_number(token_info.get("supply")),
        decimals=safe_int(token_info.get("decimals")),
        token_program=token_info.get("token_program"),
        transfer_fee_bps=_transfer_fee_bps(result),
        raw=result,
    )


def parse_holders(payload: Any) -> HolderSnapshot:
    by_id: Dict[str, Any] = {}
    for item in payload if isinstance(payload, list) else []:
        if isinstance(item, dict) and item.get("id") is not None:
            by_id[str(item["id"])] = item.get("result")

    accounts = dig(by_id.get("largest"), "value")
    amounts: List[int] = []
    for acc in accounts if isinstance(accounts, list) else []:
        amt = safe_int(acc.get("amount")) if isinstance(acc, dict) else None
        if amt is not None and amt >= 0:
            amounts.append(amt)
    amounts.sort(reverse=True)
    supply = safe_int(dig(by_id.get("supply"), "value", "amount"))

    top10 = None
    if supply and supply > 0 and amounts:
        top10 = min(100.0, sum(amounts[:10]) * 100.0 / supply)
    return HolderSnapshot(supply=supply, top_amounts=amounts[:10], top10_percent=top10, raw=payload)


def fetch_helius_asset(ctx: ResilienceContext, mint: str) -> ProviderResult:
    rpc = ctx.settings.helius_rpc()
    if not rpc:
        dbg("HELIUS", "getAsset skipped: Helius not configured")
        return ProviderResult.degraded("Helius not configured")
    body = {"jsonrpc": "2.0", "id": "scan", "method": "getAsset", "params": {"id": mint}}
    res = guarded_call(
        ctx,
        provider=PROVIDER,
        method="getAsset",
        params={"mint": mint},
        breaker_key=CB_ASSET,
        url=rpc,
        http_method="POST",
        json_body=body,
        headers=_HEADERS,
        validate=_validate_auth,
        normalize=parse_asset,
    )
    if res.ok and isinstance(res.data, HeliusAsset) and not res.data.found:
        dbg("HELIUS", f"getAsset returned no asset: {rpc_error_message(res.data.raw) or 'empty result'}")
    return res


def fetch_helius_holders(ctx: ResilienceContext, mint: str) -> ProviderResult:
    rpc = ctx.settings.helius_rpc()
    if not rpc:
        dbg("HELIUS", "largest accounts skipped: Helius not configured")
        return ProviderResult.degraded("Helius not configured")
    body = [
        {"jsonrpc": "2.0", "id": "largest", "method": "getTokenLargestAccounts", "params": [mint]},
        {"jsonrpc": "2.0", "id": "supply", "method": "getTokenSupply", "params": [mint]},
    ]
    return guarded_call(
        ctx,
        provider=PROVIDER,
        method="largestAccounts",
        params={"mint": mint},
        breaker_key=CB_HOLDERS,
        url=rpc,
        http_method="POST",
        json_body=body,
        headers=_HEADERS,
        validate=_validate_batch,
        normalize=parse_holders,
    )
