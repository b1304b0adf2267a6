"""Deterministic blind indexes for equality search on encrypted columns.

A token is ``HMAC-SHA256(mac_key, "scope:" + scope + "\\n" + normalize(raw))``.

Security properties:
- Without the master key, tokens are not reversible in practice.
- The scope prefix gives every field its own hash domain, so the same value
  stored as a name and as a company yields unrelated tokens.

Columns store the raw 32-byte form; ``token_hex`` exists for string columns
and must never be mixed with the byte form inside one logical column.
"""

from __future__ import annotations

import hashlib
import hmac

from relish.shared.normalize import normalize

TOKEN_BYTES = 32


class BlindIndex:
    """Keyed, scope-separated equality tokens over normalized input."""

    def __init__(self, mac_key: bytes) -> None:
        self._mac_key = mac_key

    def __repr__(self) -> str:
        return "BlindIndex(<key hidden>)"

    def token(self, raw: str, scope: str) -> bytes:
        """Compute the 32-byte token for ``raw`` within ``scope``."""
        message = f"scope:{scope}\n{normalize(raw)}".encode("utf-8")
        return hmac.new(self._mac_key, message, hashlib.sha256).digest()

    def token_hex(self, raw: str, scope: str) -> str:
        """Lowercase hex form of ``token`` (64 chars)."""
        return self.token(raw, scope).hex()
