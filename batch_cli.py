# batch_cli.py
import argparse
import csv
import json
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import requests

from tokenshield.utils.log import dbg

dbg("BATCH", "Booting...")

try:
    from tokenshield.config import load_settings
    from tokenshield.core.scan import Scanner
    from tokenshield.providers.base import ResilienceContext
    from tokenshield.utils.addr import normalize_mint
    dbg("BATCH", "Import scanner: OK")
except Exception as e:
    dbg("BATCH", f"Import scanner: FAIL -> {e}")
    sys.exit(1)

FIELDNAMES = [
    "mint", "score", "badge", "confidence", "sources_ok", "sources_total",
    "price_usd", "liquidity_usd", "volume24h_usd", "top10_pct", "data_conflict",
    "reasons", "error",
]


def load_mints(path: str) -> list[str]:
    dbg("BATCH", f"Loading mints from: {path}")
    p = Path(path)
    if not p.exists():
        print(f"❌ Input file not found: {path}", file=sys.stderr)
        sys.exit(1)
    mints = []
    with p.open() as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            mints.append(s)
    dbg("BATCH", f"Loaded {len(mints)} mints")
    return mints


def _fmt(x, pattern: str) -> str:
    return format(x, pattern) if isinstance(x, (int, float)) else ""


def flatten_result(mint: str, res) -> dict:
    sig = res.signals
    m = sig.market
    return {
        "mint": mint,
        "score": res.score,
        "badge": res.badge,
        "confidence": f"{res.confidence:.2f}",
        "sources_ok": sig.sources_ok,
        "sources_total": sig.sources_total,
        "price_usd": _fmt(m.price_usd, ".8g"),
        "liquidity_usd": _fmt(m.liquidity_usd, ".0f"),
        "volume24h_usd": _fmt(m.volume24h_usd, ".0f"),
        "top10_pct": _fmt(sig.top10_concentration_percent, ".1f"),
        "data_conflict": sig.data_conflict,
        "reasons": ";".join(r.code for r in res.reasons),
        "error": "",
    }


def error_row(mint: str, err: str) -> dict:
    row = {k: "" for k in FIELDNAMES}
    row.update(mint=mint, error=err)
    return row


def run_batch(scanner: Scanner, mints: list[str], concurrency: int = 2, include_evidence: bool = False):
    """Scan every mint; returns (csv rows, json results). Bad mints become error rows."""
    rows, json_out = [], []

    def work(raw: str):
        try:
            mint = normalize_mint(raw)
        except ValueError as e:
            return error_row(raw, str(e)), {"mint": raw, "error": str(e)}
        res = scanner.scan(mint)
        return flatten_result(mint, res), {"mint": mint, **res.to_dict(include_evidence=include_evidence)}

    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as ex:
        futs = {ex.submit(work, m): m for m in mints}
        for fut in as_completed(futs):
            try:
                row, out = fut.result()
            except Exception as e:
                mint = futs[fut]
                dbg("BATCH", f"scan FAIL {mint} -> {e}")
                row, out = error_row(mint, str(e)), {"mint": mint, "error": str(e)}
            rows.append(row)
            json_out.append(out)
            dbg("BATCH", f"Result {row['mint']} -> score={row['score']} badge={row['badge']} {row['error']}".rstrip())
    return rows, json_out


def main():
    ap = argparse.ArgumentParser(description="Token Shield - Batch Scanner")
    ap.add_argument("--infile", required=True, help="Path to text file with one mint per line")
    ap.add_argument("--out-csv", default="batch_scan.csv", help="CSV output path")
    ap.add_argument("--out-json", default="batch_scan.json", help="JSON output path")
    ap.add_argument("--concurrency", type=int, default=2, help="Parallel scans (each scan fans out to every provider)")
    ap.add_argument("--evidence", action="store_true", help="Keep raw provider payloads in the JSON output")
    args = ap.parse_args()
    dbg("BATCH", f"Args -> infile={args.infile} out_csv={args.out_csv} out_json={args.out_json} conc={args.concurrency}")

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)

    mints = load_mints(args.infile)
    scanner = Scanner(ResilienceContext(settings=settings, session=requests.Session()))
    rows, json_out = run_batch(scanner, mints, args.concurrency, include_evidence=args.evidence)

    with open(args.out_csv, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        w.writerows(rows)
    dbg("BATCH", f"Wrote CSV -> {args.out_csv}")

    with open(args.out_json, "w") as f:
        json.dump(json_out, f, indent=2, default=str)
    dbg("BATCH", f"Wrote JSON -> {args.out_json}")

    print("✅ Done. CSV →", args.out_csv, " JSON →", args.out_json)


if __name__ == "__main__":
    main()
