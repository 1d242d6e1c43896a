# tokenshield/utils/addr.py
import re

_BASE58 = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def normalize_mint(raw: str) -> str:
    """Strictly validate a Solana mint address (base58, 32-44 chars)."""
    s = (raw or "").strip()
    if "..." in s:
        raise ValueError("Ellipses ('...') are not allowed. Provide the full base58 mint address.")
    if not 32 <= len(s) <= 44:
        raise ValueError("Invalid mint: must be 32-44 characters long.")
    if not _BASE58.match(s):
        raise ValueError("Invalid mint: not a base58 string (no 0, O, I or l).")
    return s
