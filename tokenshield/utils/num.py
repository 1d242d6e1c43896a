# tokenshield/utils/num.py
# Parse-or-None helpers for untrusted upstream payloads. Nothing here raises.
from __future__ import annotations

import math
from typing import Any, Optional


def safe_number(v: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None (NaN/inf -> None)."""
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        f = float(v)
        return f if math.isfinite(f) else None
    if isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def safe_int(v: Any) -> Optional[int]:
    f = safe_number(v)
    if f is None:
        return None
    return int(f)


def dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts; any missing/non-dict hop yields None."""
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def first_present(obj: Any, *keys: str) -> Any:
    """First non-None value among keys of a dict (provider field aliases)."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        val = obj.get(key)
        if val is not None:
            return val
    return None
