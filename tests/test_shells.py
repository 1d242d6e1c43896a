import json
import sys

import pytest

import batch_cli
import cli
from conftest import MINT, FakeSession, make_ctx, make_settings
from test_scan import healthy
from tokenshield.core.scan import Scanner
from tokenshield.utils.addr import normalize_mint


def test_normalize_mint():
    assert normalize_mint(f"  {MINT}\n") == MINT
    with pytest.raises(ValueError, match="Ellipses"):
        normalize_mint("So11...112")
    with pytest.raises(ValueError, match="32-44"):
        normalize_mint("abc")
    with pytest.raises(ValueError, match="base58"):
        normalize_mint("0" * 40)


def test_run_batch_rows_and_errors():
    scanner = Scanner(make_ctx(FakeSession(healthy)))
    rows, out = batch_cli.run_batch(scanner, [MINT, "bad-mint"], concurrency=2)
    by_mint = {r["mint"]: r for r in rows}
    assert set(by_mint) == {MINT, "bad-mint"}
    assert by_mint[MINT]["badge"] == "SAFE"
    assert by_mint[MINT]["score"] == 80
    assert by_mint[MINT]["error"] == ""
    assert by_mint["bad-mint"]["score"] == ""
    assert "32-44" in by_mint["bad-mint"]["error"]
    assert set(rows[0]) == set(batch_cli.FIELDNAMES)
    assert len(out) == 2


def test_batch_cli_writes_csv_and_json(tmp_path, monkeypatch):
    infile = tmp_path / "mints.txt"
    infile.write_text(f"# watchlist\n{MINT}\n\n")
    out_csv, out_json = tmp_path / "out.csv", tmp_path / "out.json"
    monkeypatch.setattr(batch_cli, "load_settings", lambda: make_settings())
    monkeypatch.setattr(batch_cli.requests, "Session", lambda: FakeSession(healthy))
    monkeypatch.setattr(sys, "argv", [
        "batch_cli.py", "--infile", str(infile), "--out-csv", str(out_csv), "--out-json", str(out_json),
    ])

    batch_cli.main()

    lines = out_csv.read_text().splitlines()
    assert lines[0].split(",")[:3] == ["mint", "score", "badge"]
    assert lines[1].startswith(f"{MINT},80,SAFE")
    data = json.loads(out_json.read_text())
    assert data[0]["mint"] == MINT
    assert "evidence" not in data[0]["signals"]


def test_cli_json_output(monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_settings", lambda: make_settings())
    monkeypatch.setattr(cli.requests, "Session", lambda: FakeSession(healthy))
    monkeypatch.setattr(sys, "argv", ["cli.py", "--mint", MINT, "--json", "--no-evidence"])

    cli.main()

    body = json.loads(capsys.readouterr().out)
    assert body["badge"] == "SAFE"
    assert body["signals"]["sources_ok"] == 5


def test_cli_pretty_output(monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_settings", lambda: make_settings())
    monkeypatch.setattr(cli.requests, "Session", lambda: FakeSession(healthy))
    monkeypatch.setattr(sys, "argv", ["cli.py", "--mint", MINT])

    cli.main()

    out = capsys.readouterr().out
    assert "Risk Score: 80/100" in out
    assert "SAFE" in out


def test_cli_rejects_bad_mint(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["cli.py", "--mint", "0xabc"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 2
