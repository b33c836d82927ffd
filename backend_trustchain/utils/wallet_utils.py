"""Wallet validation utilities."""

from __future__ import annotations

import re

from backend_trustchain.core.exceptions import InvalidAddressError

BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_wallet(w: str | None) -> bool:
    """Return True if w looks like a Solana address: 32-44 chars of the base58 alphabet."""
    if not w or not isinstance(w, str):
        return False
    return bool(BASE58_RE.match(w))


def require_valid_wallet(w: str | None) -> str:
    """Return the stripped address or raise InvalidAddressError."""
    address = (w or "").strip()
    if not is_valid_wallet(address):
        raise InvalidAddressError(address)
    return address
