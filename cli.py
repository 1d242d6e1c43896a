# cli.py
import argparse
import json
import sys
from dataclasses import replace

import requests

from tokenshield.utils.log import dbg

dbg("CLI", "Booting...")

try:
    from tokenshield.config import load_settings
    from tokenshield.core.scan import Scanner
    from tokenshield.providers.base import ResilienceContext
    from tokenshield.utils.addr import normalize_mint
    dbg("CLI", "Import scanner: OK")
except Exception as e:
    dbg("CLI", f"Import scanner: FAIL -> {e}")
    sys.exit(1)

SEVERITY_ICON = {"HIGH": "🚨", "MEDIUM": "⚠️ ", "LOW": "ℹ️ "}
BADGE_LINE = {
    "SAFE": "✅ SAFE",
    "CAUTION": "⚠️  CAUTION",
    "HIGH_RISK": "❗ HIGH RISK",
}


def _usd(x) -> str:
    return f"${x:,.0f}" if isinstance(x, (int, float)) else "n/a"


def print_pretty(mint: str, result) -> None:
    sig = result.signals
    print(f"🔎 Mint: {mint}")
    print(f"🧮 Risk Score: {result.score}/100  {BADGE_LINE.get(result.badge, result.badge)}")
    print(f"📊 Confidence: {result.confidence:.2f}  (sources {sig.sources_ok}/{sig.sources_total})")

    m = sig.market
    price = f"${m.price_usd:.8g}" if m.price_usd is not None else "n/a"
    print(f"🔹 Price: {price}   Liquidity: {_usd(m.liquidity_usd)}   24h volume: {_usd(m.volume24h_usd)}")
    if sig.top10_concentration_percent is not None:
        print(f"🔹 Top-10 holders: {sig.top10_concentration_percent:.1f}%")
    if sig.pools:
        deepest = max(sig.pools, key=lambda p: p.liquidity)
        print(f"🔹 Pools: {len(sig.pools)} (deepest {deepest.type} {deepest.address} ≈ {_usd(deepest.liquidity)})")
    else:
        print("🔹 Pools: none found")

    if result.reasons:
        print("Reasons:")
        for r in result.reasons:
            print(f"  {SEVERITY_ICON.get(r.severity, '-')} [{r.code}] {r.title}: {r.detail}")
    else:
        print("✅ No risk flags raised.")

    for meta in sig.sources_meta:
        status = "ok" if meta.ok else (meta.error or "failed")
        tags = f" {','.join(meta.quality)}" if meta.quality else ""
        print(f"   · {meta.name}: {status}{tags} ({meta.latency_ms}ms)")


def main():
    p = argparse.ArgumentParser(description="Token Shield CLI - Solana token risk score")
    p.add_argument("--mint", required=True, help="SPL token mint address (base58)")
    p.add_argument("--json", action="store_true", help="Print JSON only")
    p.add_argument("--no-evidence", action="store_true", help="Drop raw provider payloads from JSON output")
    p.add_argument("--sell-probe", action="store_true", help="Also probe a Jupiter sell route (overrides SHIELD_SELL_PROBE)")
    args = p.parse_args()
    dbg("CLI", f"Args -> mint={args.mint} json={args.json} sell_probe={args.sell_probe}")

    try:
        mint = normalize_mint(args.mint)
        settings = load_settings()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)

    if args.sell_probe and not settings.sell_probe:
        settings = replace(settings, sell_probe=True)

    ctx = ResilienceContext(settings=settings, session=requests.Session())
    result = Scanner(ctx).scan(mint)

    if args.json:
        print(json.dumps(result.to_dict(include_evidence=not args.no_evidence), indent=2, default=str))
        return

    print_pretty(mint, result)
    dbg("CLI", "Done.")


if __name__ == "__main__":
    main()
