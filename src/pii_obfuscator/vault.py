"""TokenTable — session-scoped memory for Tokenize.

Design goals:
  - Consistent: the same value always gets the same token within a session
  - Fast: dict lookups only, keyed by the value's hash
  - Private: only hashes and tokens are held, never the original values
"""

from __future__ import annotations

from .obfuscate import phantom_hash, token_value


class TokenTable:
    """Hash → token store, scoped to one engine instance."""

    __slots__ = ("_tokens",)

    def __init__(self) -> None:
        self._tokens: dict[int, str] = {}    # 0x1A2B3C4D → "PHANTOM_TOKEN_1A2B3C4D"

    def get_or_create_token(self, value: str) -> str:
        """Return the token already minted for *value*, or mint one."""
        key = phantom_hash(value)
        token = self._tokens.get(key)
        if token is None:
            token = token_value(value)
            self._tokens[key] = token
        return token

    def lookup(self, value: str) -> str | None:
        """Look up the token for a value without minting one."""
        return self._tokens.get(phantom_hash(value))

    @property
    def size(self) -> int:
        return len(self._tokens)

    def dump(self) -> dict[int, str]:
        """Return a copy of the hash→token mapping (for debugging)."""
        return dict(self._tokens)

    def clear(self) -> None:
        self._tokens.clear()
