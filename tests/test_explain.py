from tokenshield.core.explain import explain_reasons
from tokenshield.core.rules import DAY
from tokenshield.core.signals import ActorsSignals, MarketSignals, ScoreSignals


def by_code(reasons):
    return {r.code: r for r in reasons}


def test_no_reasons_for_clean_signals():
    assert explain_reasons(ScoreSignals(sources_ok=5, sources_total=5, mint_active=True), 80) == []


def test_every_reason_in_rule_order_with_degraded_last():
    s = ScoreSignals(
        mint_active=False,
        lp_lock_seconds=10 * DAY,
        top10_concentration_percent=85.0,
        sell_tax_bps=250,
        data_conflict=True,
        market=MarketSignals(liquidity_usd=5_000.0),
        actors=ActorsSignals(bot_likely=True, wash_likely=True, notes=["24h volume is 9.0x liquidity"]),
        sources_ok=3,
        sources_total=5,
        evidence={"conflict": {"price": {"birdeye": 1.0, "dexscreener": 2.0, "gap": 0.5}}},
    )
    reasons = explain_reasons(s, 10)
    assert [r.code for r in reasons] == [
        "MINT_NOT_ACTIVE",
        "LP_LOCKED",
        "HIGH_CONCENTRATION",
        "SELL_TAX",
        "DATA_CONFLICT",
        "LOW_LIQUIDITY",
        "BOT_LIKELY",
        "WASH_LIKELY",
        "DEGRADED_SOURCES",
    ]
    r = by_code(reasons)
    assert r["MINT_NOT_ACTIVE"].severity == "HIGH"
    assert r["LP_LOCKED"].severity == "MEDIUM"
    assert "10 days" in r["LP_LOCKED"].title
    assert r["HIGH_CONCENTRATION"].severity == "HIGH"
    assert "85.0%" in r["HIGH_CONCENTRATION"].detail
    assert r["SELL_TAX"].severity == "MEDIUM"
    assert r["SELL_TAX"].evidence == {"sell_tax_bps": 250}
    assert r["DATA_CONFLICT"].evidence["price"]["gap"] == 0.5
    assert r["LOW_LIQUIDITY"].severity == "MEDIUM"
    assert r["LOW_LIQUIDITY"].detail == "Liquidity is $5,000."
    assert r["WASH_LIKELY"].severity == "HIGH"
    assert r["DEGRADED_SOURCES"].detail == "3/5 data sources available."
    assert r["DEGRADED_SOURCES"].severity == "LOW"


def test_severity_scales_with_value():
    mild = by_code(explain_reasons(ScoreSignals(
        top10_concentration_percent=55.0, sell_tax_bps=1200, market=MarketSignals(liquidity_usd=400.0),
        lp_lock_seconds=400 * DAY,
    ), 50))
    assert mild["HIGH_CONCENTRATION"].severity == "MEDIUM"
    assert mild["SELL_TAX"].severity == "HIGH"
    assert mild["LOW_LIQUIDITY"].severity == "HIGH"
    assert mild["LP_LOCKED"].severity == "LOW"


def test_degraded_sources_more_severe_when_most_sources_missing():
    reasons = explain_reasons(ScoreSignals(sources_ok=1, sources_total=5), 50)
    assert reasons[-1].code == "DEGRADED_SOURCES"
    assert reasons[-1].severity == "MEDIUM"


def test_below_threshold_values_emit_nothing():
    s = ScoreSignals(
        sources_ok=2, sources_total=2, lp_lock_seconds=0, top10_concentration_percent=20.0,
        sell_tax_bps=50, market=MarketSignals(liquidity_usd=80_000.0),
    )
    assert explain_reasons(s, 70) == []
