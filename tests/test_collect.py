import threading
import time

from conftest import MINT, FakeSession, make_ctx, make_settings
from tokenshield.core import collect
from tokenshield.core.collect import collect_signals, fetch_sources
from tokenshield.providers.base import DEGRADED, ProviderResult
from tokenshield.providers.birdeye import BirdeyeOverview
from tokenshield.providers.dexscreener import DexPair
from tokenshield.providers.helius import HeliusAsset, HolderSnapshot
from tokenshield.providers.jupiter import JupiterQuote
from tokenshield.providers.meteora import MeteoraPool
from test_scan import healthy


def ok(data):
    return ProviderResult(ok=True, latency_ms=12, data=data)


def failed(error="HTTP 500"):
    return ProviderResult.degraded(error)


def results(**overrides):
    base = {
        "helius": ok(HeliusAsset(found=True, raw={"id": MINT})),
        "helius_holders": ok(HolderSnapshot(supply=1000, top_amounts=[400, 200], top10_percent=60.0)),
        "birdeye": ok(BirdeyeOverview(price_usd=1.0, liquidity_usd=100_000.0, volume24h_usd=50_000.0)),
        "dexscreener": ok([
            DexPair(pair_address="P1", dex_id="raydium", price_usd=1.1, liquidity_usd=80_000.0, volume24h_usd=40_000.0),
            DexPair(pair_address="P2", dex_id="orca", price_usd=1.05, liquidity_usd=30_000.0, volume24h_usd=20_000.0),
        ]),
        "meteora": ok([MeteoraPool(address="M1", liquidity_usd=5_000.0)]),
    }
    base.update(overrides)
    return base


def test_counts_and_basic_fields():
    s = collect_signals(MINT, results(), make_settings(), now=1.0)
    assert (s.sources_ok, s.sources_total) == (5, 5)
    assert s.mint_active is True
    assert s.top10_concentration_percent == 60.0
    assert s.market.sources_used == ["helius", "helius_holders", "birdeye", "dexscreener", "meteora"]
    assert [m.name for m in s.sources_meta] == s.market.sources_used
    assert s.sources_meta[0].fetched_at == 1.0
    assert s.evidence["helius"] == {"id": MINT}


def test_market_prefers_birdeye_price_and_takes_larger_liquidity_and_volume():
    s = collect_signals(MINT, results(), make_settings())
    assert s.market.price_usd == 1.0
    # dexscreener sums: 110k liquidity, 60k volume
    assert s.market.liquidity_usd == 110_000.0
    assert s.market.volume24h_usd == 60_000.0
    assert s.data_conflict is False


def test_price_falls_back_to_first_dexscreener_pair():
    s = collect_signals(MINT, results(birdeye=failed()), make_settings())
    assert s.market.price_usd == 1.1
    assert s.market.liquidity_usd == 110_000.0
    assert s.sources_ok == 4


def test_price_conflict_is_flagged_with_evidence():
    r = results(birdeye=ok(BirdeyeOverview(price_usd=2.0, volume24h_usd=60_000.0)))
    s = collect_signals(MINT, r, make_settings())
    assert s.data_conflict is True
    conflict = s.evidence["conflict"]
    assert set(conflict) == {"price"}
    assert conflict["price"]["birdeye"] == 2.0
    assert conflict["price"]["dexscreener"] == 1.1


def test_volume_conflict_uses_its_own_threshold():
    # 60k vs 100k: 40% gap, under the 50% volume threshold
    r = results(birdeye=ok(BirdeyeOverview(price_usd=1.1, volume24h_usd=100_000.0)))
    assert collect_signals(MINT, r, make_settings()).data_conflict is False
    # 60k vs 200k: 70% gap
    r = results(birdeye=ok(BirdeyeOverview(price_usd=1.1, volume24h_usd=200_000.0)))
    s = collect_signals(MINT, r, make_settings())
    assert s.data_conflict is True
    assert set(s.evidence["conflict"]) == {"volume24h"}


def test_conflict_ratio_is_configurable():
    r = results(birdeye=ok(BirdeyeOverview(price_usd=2.0)))
    assert collect_signals(MINT, r, make_settings(price_conflict_ratio=0.9)).data_conflict is False


def test_missing_helius_leaves_mint_unknown():
    s = collect_signals(MINT, results(helius=failed("Helius not configured")), make_settings())
    assert s.mint_active is None
    assert s.sources_ok == 4 and s.sources_total == 5
    meta = {m.name: m for m in s.sources_meta}
    assert meta["helius"].quality == (DEGRADED,)
    assert meta["helius"].error == "Helius not configured"


def test_frozen_asset_and_transfer_fee():
    asset = HeliusAsset(found=True, frozen=True, transfer_fee_bps=300.0)
    s = collect_signals(MINT, results(helius=ok(asset)), make_settings())
    assert s.mint_active is False
    assert s.sell_tax_bps == 300.0


def test_all_sources_failed_gives_empty_signals():
    r = {name: failed() for name in ("helius", "helius_holders", "birdeye", "dexscreener", "meteora")}
    s = collect_signals(MINT, r, make_settings())
    assert (s.sources_ok, s.sources_total) == (0, 5)
    assert s.market.price_usd is None
    assert s.market.liquidity_usd is None
    assert s.pools == []
    assert s.evidence == {}


def test_pools_are_merged_deduplicated_and_capped():
    meteora = [MeteoraPool(address=f"M{i}", liquidity_usd=float(i)) for i in range(25)]
    pairs = [DexPair(pair_address=f"D{i}", dex_id="raydium") for i in range(25)]
    pairs[0] = DexPair(pair_address="M0", dex_id="meteora")
    s = collect_signals(MINT, results(meteora=ok(meteora), dexscreener=ok(pairs)), make_settings())
    addresses = [p.address for p in s.pools]
    assert len(addresses) == 30
    assert len(set(addresses)) == 30
    assert addresses[:20] == [f"M{i}" for i in range(20)]
    assert s.pools[0].type == "meteora"
    assert s.pools[20].type == "raydium"


def test_wash_and_bot_heuristics():
    pairs = [DexPair(
        pair_address="P1", liquidity_usd=10_000.0, volume24h_usd=60_000.0, buys24h=2_000, sells24h=1_000,
    )]
    s = collect_signals(MINT, results(dexscreener=ok(pairs), birdeye=failed()), make_settings())
    assert s.actors.wash_likely is True
    assert s.actors.bot_likely is True
    assert len(s.actors.notes) == 2


def test_healthy_activity_raises_no_actor_flags():
    s = collect_signals(MINT, results(), make_settings())
    assert s.actors.wash_likely is False
    assert s.actors.bot_likely is False
    assert s.actors.notes == []


def test_sell_probe_notes():
    bad_impact = ok(JupiterQuote(out_amount=10, price_impact_pct=75.0))
    s = collect_signals(MINT, results(jupiter=bad_impact), make_settings())
    assert s.sources_total == 6
    assert s.actors.notes == ["sell price impact 75.0%"]

    s = collect_signals(MINT, results(jupiter=failed("HTTP 400: no route")), make_settings())
    assert s.actors.notes == ["sell route probe failed: HTTP 400: no route"]

    s = collect_signals(MINT, results(jupiter=ok(JupiterQuote(out_amount=10, price_impact_pct=0.4))), make_settings())
    assert s.actors.notes == []


def test_fetch_sources_tolerates_a_crashing_adapter(monkeypatch):
    def boom(ctx, mint):
        raise RuntimeError("adapter bug")

    def fine(ctx, mint):
        return ok({"mint": mint})

    monkeypatch.setattr(collect, "source_tasks", lambda ctx: [("a", fine), ("b", boom), ("c", fine)])
    out = fetch_sources(make_ctx(FakeSession([])), MINT)
    assert list(out) == ["a", "b", "c"]
    assert out["a"].ok and out["c"].ok
    assert out["b"].ok is False
    assert out["b"].quality == (DEGRADED,)
    assert "adapter bug" in out["b"].error


def test_sell_probe_is_opt_in():
    names = [n for n, _ in collect.source_tasks(make_ctx(FakeSession([])))]
    assert "jupiter" not in names
    names = [n for n, _ in collect.source_tasks(make_ctx(FakeSession([]), sell_probe=True))]
    assert names[-1] == "jupiter"


def test_fetch_sources_runs_every_adapter_at_once():
    # each request blocks until all five are in flight; a sequential fan-out breaks the barrier
    barrier = threading.Barrier(5, timeout=5)

    def handler(method, url, kw):
        barrier.wait()
        time.sleep(0.2)
        return healthy(method, url, kw)

    start = time.monotonic()
    out = fetch_sources(make_ctx(FakeSession(handler)), MINT)
    elapsed = time.monotonic() - start

    assert all(r.ok for r in out.values()), {n: r.error for n, r in out.items()}
    # bounded by one slow call, not the sum of five
    assert elapsed < 5 * 0.2
