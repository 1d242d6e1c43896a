# tokenshield/utils/log.py
# Tagged debug lines ("[TAG] message") on stderr so --json output on stdout stays clean.
import os
import sys

_QUIET = os.getenv("SHIELD_QUIET", "0").strip().lower() not in {"0", "false", "no", "off", ""}


def dbg(tag: str, msg: str) -> None:
    if _QUIET:
        return
    print(f"[{tag}] {msg}", file=sys.stderr)


def yes_no(value) -> str:
    """Presence marker for secrets: never print the value itself."""
    return "yes" if value else "no"
