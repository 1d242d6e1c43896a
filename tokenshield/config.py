# tokenshield/config.py
# Purpose: provider table + runtime settings from env (.env via python-dotenv).
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import parse_qs, urlparse

from dotenv import load_dotenv

from tokenshield.utils.log import dbg, yes_no

# Base URLs, per-call timeouts (s) and cache TTL preset per provider.
PROVIDERS = {
    "helius": {
        "base": "https://mainnet.helius-rpc.com",
        "timeout": 8.0,
        # getAsset carries the frozen flag, so not "long"
        "ttl": "medium",
    },
    "birdeye": {
        "base": "https://public-api.birdeye.so",
        "timeout": 6.0,
        "ttl": "short",
    },
    "dexscreener": {
        "base": "https://api.dexscreener.com",
        "timeout": 6.0,
        "ttl": "short",
    },
    "meteora": {
        "base": "https://dlmm-api.meteora.ag",
        "timeout": 8.0,
        "ttl": "medium",
    },
    "jupiter": {
        "base": "https://lite-api.jup.ag/swap/v1",
        "timeout": 10.0,
        "ttl": "short",
    },
}

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

_PLACEHOLDERS = {"COLE_SUA_CHAVE_AQUI", "REDACTED", "CHANGEME", "YOUR_KEY_HERE"}


def provider_config(name: str) -> dict:
    if name not in PROVIDERS:
        raise ValueError(f"Unknown provider: {name}")
    return PROVIDERS[name]


def _looks_placeholder(val: str) -> bool:
    up = (val or "").upper()
    return not up or up in _PLACEHOLDERS or "COLE_SUA_CHAVE" in up


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def _num(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid number for {name}: {raw!r}")


@dataclass(frozen=True)
class Settings:
    helius_api_key: str = ""
    helius_rpc_url: str = ""
    birdeye_api_key: str = ""

    fetch_timeout: float = 8.0
    fetch_retries: int = 2
    retry_delay: float = 0.5
    max_response_bytes: int = 2 * 1024 * 1024
    # meteora only publishes the full pair registry, far above the default cap
    meteora_max_bytes: int = 64 * 1024 * 1024

    breaker_failure_threshold: int = 5
    breaker_cooldown: float = 60.0
    cache_max_entries: int = 1000

    price_conflict_ratio: float = 0.25
    volume_conflict_ratio: float = 0.5
    wash_turnover_ratio: float = 5.0
    bot_min_txns: int = 1000
    bot_max_avg_trade_usd: float = 25.0
    max_pools: int = 30
    max_pools_per_source: int = 20

    sell_probe: bool = False
    sell_probe_amount: str = "1000000"
    sell_probe_impact_pct: float = 50.0
    max_workers: int = 6

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            helius_api_key=(env.get("HELIUS_API_KEY") or "").strip(),
            helius_rpc_url=(env.get("HELIUS_RPC_URL") or "").strip(),
            birdeye_api_key=(env.get("BIRDEYE_API_KEY") or "").strip(),
            fetch_timeout=_num(env, "SHIELD_FETCH_TIMEOUT", 8.0),
            fetch_retries=int(_num(env, "SHIELD_FETCH_RETRIES", 2)),
            retry_delay=_num(env, "SHIELD_RETRY_DELAY", 0.5),
            max_response_bytes=int(_num(env, "SHIELD_MAX_RESPONSE_BYTES", 2 * 1024 * 1024)),
            meteora_max_bytes=int(_num(env, "SHIELD_METEORA_MAX_BYTES", 64 * 1024 * 1024)),
            breaker_failure_threshold=int(_num(env, "SHIELD_BREAKER_THRESHOLD", 5)),
            breaker_cooldown=_num(env, "SHIELD_BREAKER_COOLDOWN", 60.0),
            cache_max_entries=int(_num(env, "SHIELD_CACHE_MAX_ENTRIES", 1000)),
            price_conflict_ratio=_num(env, "SHIELD_PRICE_CONFLICT", 0.25),
            volume_conflict_ratio=_num(env, "SHIELD_VOLUME_CONFLICT", 0.5),
            sell_probe=_flag(env.get("SHIELD_SELL_PROBE"), False),
            max_workers=max(1, int(_num(env, "SHIELD_MAX_WORKERS", 6))),
        )

    def helius_rpc(self) -> str:
        """
        RPC URL for Helius, or "" when not configured.
        Priority: HELIUS_RPC_URL (a helius host, >=30 chars) > URL built from HELIUS_API_KEY.
        """
        url = self.helius_rpc_url
        if len(url) >= 30:
            parsed = urlparse(url)
            if parsed.scheme in ("http", "https") and "helius" in (parsed.hostname or "").lower():
                qs = parse_qs(parsed.query)
                key_in_url = (qs.get("api-key") or qs.get("api_key") or [""])[0]
                if not key_in_url or not _looks_placeholder(key_in_url):
                    return url
        key = self.helius_api_key
        if len(key) >= 30 and not _looks_placeholder(key):
            return f"{PROVIDERS['helius']['base']}/?api-key={key}"
        return ""

    def birdeye_key(self) -> str:
        key = self.birdeye_api_key
        if len(key) < 20 or _looks_placeholder(key):
            return ""
        return key


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    if env is None:
        _loaded = load_dotenv()
        dbg("CONFIG", f".env loaded: {_loaded}")
    settings = Settings.from_env(env)
    dbg(
        "CONFIG",
        f"ENV presence -> HELIUS: {yes_no(settings.helius_rpc())}, "
        f"BIRDEYE_API_KEY: {yes_no(settings.birdeye_key())}, "
        f"sell_probe={settings.sell_probe}",
    )
    return settings


__all__ = ["PROVIDERS", "USDC_MINT", "Settings", "load_settings", "provider_config"]
