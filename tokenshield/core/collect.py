# tokenshield/core/collect.py
"""
Signal collector: fan out to every provider adapter for one mint, then fold the
ProviderResults into a single ScoreSignals.

fetch_sources()   - concurrent I/O, one task per source, never raises
collect_signals() - pure fold over the results
gather_signals()  - both
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from tokenshield.config import USDC_MINT, Settings
from tokenshield.core.signals import PoolSignal, ScoreSignals
from tokenshield.providers.base import ProviderResult, ResilienceContext, SourceMeta
from tokenshield.providers.birdeye import BirdeyeOverview, fetch_birdeye_overview
from tokenshield.providers.dexscreener import DexPair, fetch_dexscreener_pairs
from tokenshield.providers.helius import HeliusAsset, HolderSnapshot, fetch_helius_asset, fetch_helius_holders
from tokenshield.providers.jupiter import JupiterQuote, fetch_jupiter_quote
from tokenshield.providers.meteora import MeteoraPool, fetch_meteora_pools
from tokenshield.utils.log import dbg

KNOWN_DEXES = {"raydium", "orca", "meteora", "pumpswap"}


def _sell_probe(ctx: ResilienceContext, mint: str) -> ProviderResult:
    return fetch_jupiter_quote(ctx, mint, USDC_MINT, ctx.settings.sell_probe_amount)


def source_tasks(ctx: ResilienceContext) -> List[Tuple[str, Callable[[ResilienceContext, str], ProviderResult]]]:
    tasks = [
        ("helius", fetch_helius_asset),
        ("helius_holders", fetch_helius_holders),
        ("birdeye", fetch_birdeye_overview),
        ("dexscreener", fetch_dexscreener_pairs),
        ("meteora", fetch_meteora_pools),
    ]
    if ctx.settings.sell_probe:
        tasks.append(("jupiter", _sell_probe))
    return tasks


def fetch_sources(ctx: ResilienceContext, mint: str) -> Dict[str, ProviderResult]:
    tasks = source_tasks(ctx)
    results: Dict[str, ProviderResult] = {}
    dbg("COLLECT", f"fan-out {len(tasks)} sources for {mint}")

    with ThreadPoolExecutor(max_workers=max(1, min(ctx.settings.max_workers, len(tasks)))) as ex:
        futs = {ex.submit(fn, ctx, mint): name for name, fn in tasks}
        for fut in as_completed(futs):
            name = futs[fut]
            try:
                results[name] = fut.result()
            except Exception as e:
                # a crashing adapter only costs its own source
                dbg("COLLECT", f"{name} task raised: {e!r}")
                results[name] = ProviderResult.degraded(f"{name} task error: {e}")
            r = results[name]
            dbg("COLLECT", f"{name} -> ok={r.ok} quality={list(r.quality)} {r.latency_ms}ms")

    # stable order regardless of completion order
    return {name: results[name] for name, _ in tasks}


def _max_present(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _rel_gap(a: float, b: float, floor: float) -> float:
    return abs(a - b) / max(a, b, floor)


def _data(results: Mapping[str, ProviderResult], name: str, kind):
    r = results.get(name)
    if r is None or not r.ok or not isinstance(r.data, kind):
        return None
    return r.data


def _pool_type(dex_id: str) -> str:
    d = (dex_id or "").lower()
    for known in KNOWN_DEXES:
        if d.startswith(known):
            return known
    return "unknown"


def _merge_pools(meteora: List[MeteoraPool], pairs: List[DexPair], settings: Settings) -> List[PoolSignal]:
    merged: Dict[str, PoolSignal] = {}
    for p in meteora[: settings.max_pools_per_source]:
        merged.setdefault(p.address, PoolSignal(
            type="meteora",
            address=p.address,
            liquidity=p.liquidity_usd or 0.0,
            evidence={"source": "meteora", "name": p.name, "volume24h_usd": p.volume24h_usd},
        ))
    for p in pairs[: settings.max_pools_per_source]:
        merged.setdefault(p.pair_address, PoolSignal(
            type=_pool_type(p.dex_id),
            address=p.pair_address,
            liquidity=p.liquidity_usd or 0.0,
            evidence={"source": "dexscreener", "dex_id": p.dex_id, "volume24h_usd": p.volume24h_usd},
        ))
    return list(merged.values())[: settings.max_pools]


def _actor_flags(signals: ScoreSignals, pairs: List[DexPair], liq: Optional[float], vol: Optional[float], settings: Settings) -> None:
    if liq and vol and liq > 0:
        turnover = vol / liq
        if turnover > settings.wash_turnover_ratio:
            signals.actors.wash_likely = True
            signals.actors.notes.append(f"24h volume is {turnover:.1f}x liquidity")

    counts = [p.txns24h for p in pairs if p.txns24h is not None]
    if counts and vol:
        txns = sum(counts)
        if txns >= settings.bot_min_txns:
            avg = vol / txns
            if avg < settings.bot_max_avg_trade_usd:
                signals.actors.bot_likely = True
                signals.actors.notes.append(f"{int(txns)} trades in 24h averaging ${avg:.2f}")


def _sell_probe_notes(signals: ScoreSignals, result: ProviderResult, settings: Settings) -> None:
    if not result.ok:
        signals.actors.notes.append(f"sell route probe failed: {result.error or 'unknown error'}")
        return
    quote = result.data
    if not isinstance(quote, JupiterQuote) or not quote.has_route:
        signals.actors.notes.append("no sell route to USDC")
        return
    if quote.price_impact_pct is not None and quote.price_impact_pct >= settings.sell_probe_impact_pct:
        signals.actors.notes.append(f"sell price impact {quote.price_impact_pct:.1f}%")


def collect_signals(
    mint: str,
    results: Mapping[str, ProviderResult],
    settings: Optional[Settings] = None,
    now: Optional[float] = None,
) -> ScoreSignals:
    settings = settings or Settings()
    now = time.time() if now is None else now
    signals = ScoreSignals()

    signals.sources_total = len(results)
    signals.sources_ok = sum(1 for r in results.values() if r.ok)
    signals.market.sources_used = [name for name, r in results.items() if r.ok]
    signals.sources_meta = [SourceMeta.from_result(name, r, now) for name, r in results.items()]

    asset = _data(results, "helius", HeliusAsset)
    if asset is not None:
        signals.mint_active = asset.mint_active
        signals.sell_tax_bps = asset.transfer_fee_bps
        if asset.found:
            signals.evidence["helius"] = asset.raw

    holders = _data(results, "helius_holders", HolderSnapshot)
    if holders is not None:
        signals.top10_concentration_percent = holders.top10_percent
        signals.evidence["helius_holders"] = {
            "supply": holders.supply,
            "top_amounts": list(holders.top_amounts),
            "top10_percent": holders.top10_percent,
        }

    be = _data(results, "birdeye", BirdeyeOverview)
    pairs: List[DexPair] = _data(results, "dexscreener", list) or []
    pools: List[MeteoraPool] = _data(results, "meteora", list) or []
    if be is not None:
        signals.evidence["birdeye"] = be.raw
    if pairs:
        signals.evidence["dexscreener"] = [p.raw for p in pairs[: settings.max_pools_per_source]]
    if pools:
        signals.evidence["meteora"] = [p.raw for p in pools[: settings.max_pools_per_source]]

    be_price = be.price_usd if be else None
    be_liq = be.liquidity_usd if be else None
    be_vol = be.volume24h_usd if be else None
    # a zero sum means "nothing reported"
    ds_liq = sum(p.liquidity_usd or 0.0 for p in pairs) or None
    ds_vol = sum(p.volume24h_usd or 0.0 for p in pairs) or None
    ds_price = pairs[0].price_usd if pairs else None

    signals.market.price_usd = be_price if be_price is not None else ds_price
    signals.market.liquidity_usd = _max_present(be_liq, ds_liq)
    signals.market.volume24h_usd = _max_present(be_vol, ds_vol)

    conflict = {}
    if be_price is not None and ds_price is not None:
        gap = _rel_gap(be_price, ds_price, 1e-9)
        if gap > settings.price_conflict_ratio:
            conflict["price"] = {"birdeye": be_price, "dexscreener": ds_price, "gap": round(gap, 4)}
    if be_vol is not None and ds_vol is not None:
        gap = _rel_gap(be_vol, ds_vol, 1.0)
        if gap > settings.volume_conflict_ratio:
            conflict["volume24h"] = {"birdeye": be_vol, "dexscreener": ds_vol, "gap": round(gap, 4)}
    if conflict:
        signals.data_conflict = True
        signals.evidence["conflict"] = conflict
        dbg("COLLECT", f"{mint} conflict on {', '.join(conflict)}")

    signals.pools = _merge_pools(pools, pairs, settings)
    _actor_flags(signals, pairs, ds_liq, ds_vol, settings)

    if "jupiter" in results:
        _sell_probe_notes(signals, results["jupiter"], settings)
        quote = _data(results, "jupiter", JupiterQuote)
        if quote is not None:
            signals.evidence["jupiter"] = quote.raw

    return signals


def gather_signals(ctx: ResilienceContext, mint: str) -> ScoreSignals:
    results = fetch_sources(ctx, mint)
    signals = collect_signals(mint, results, ctx.settings)
    dbg("COLLECT", f"{mint} sources {signals.sources_ok}/{signals.sources_total} conflict={signals.data_conflict}")
    return signals
