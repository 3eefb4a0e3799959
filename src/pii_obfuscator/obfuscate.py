"""Obfuscation transforms.

Pure functions of the matched value.  Tokenize needs per-session memory and
is finished off by the engine via ``TokenTable``; everything here is
stateless.
"""

from __future__ import annotations

from .types import Method

PLACEHOLDER = "\u2588"   # full block
MASK_DEFAULT = "[PHANTOMED]"
MIRROR_PREFIX = "PHANTOM_"
TOKEN_PREFIX = "PHANTOM_TOKEN_"

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619


def phantom_hash(value: str) -> int:
    """32-bit FNV-1a over the UTF-8 bytes of *value*.  Not cryptographic."""
    h = _FNV_OFFSET
    for byte in value.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def phantom_string(value: str, preserve: int = 0) -> str:
    """Keep *preserve* characters at each end, block out the rest.

    Works on code points, so multi-byte characters are never split.
    """
    n = len(value)
    # value[-0:] is the whole string, so k == 0 takes this branch too
    if preserve == 0 or n <= preserve * 2:
        return PLACEHOLDER * n
    return value[:preserve] + PLACEHOLDER * (n - preserve * 2) + value[-preserve:]


def mirror_value(value: str) -> str:
    return f"{MIRROR_PREFIX}{phantom_hash(value):08X}"


def token_value(value: str) -> str:
    return f"{TOKEN_PREFIX}{phantom_hash(value):08X}"


def obfuscate_value(
    value: str,
    method: Method,
    preserve_chars: int | None = None,
    replacement: str | None = None,
) -> str:
    """Apply *method* to a single value without any session state.

    Tokenize output here matches what a fresh engine would mint; use an
    engine when repeated values must be tracked.
    """
    if method is Method.PHANTOM:
        return phantom_string(value, preserve_chars or 0)
    if method is Method.VANISH:
        return ""
    if method is Method.MIRROR:
        return mirror_value(value)
    if method is Method.MASK:
        return MASK_DEFAULT if replacement is None else replacement
    if method is Method.TOKENIZE:
        return token_value(value)
    raise ValueError(f"unsupported obfuscation method: {method!r}")
