"""
Application-level exceptions.

HistoryFetchError and InvalidAddressError reach the caller of an integrity check.
NotaryError never does: notarization failures are logged and dropped by
oracle.notary.notarize_decision.
"""

from __future__ import annotations


class TrustChainError(Exception):
    """Base class for all Backend TrustChain errors."""

    code = "TRUSTCHAIN_ERROR"


class InvalidAddressError(TrustChainError, ValueError):
    """Address is empty or not a 32-44 character base58 string."""

    code = "INVALID_ADDRESS"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Invalid Solana wallet address: {address[:16]!r}")


class HistoryFetchError(TrustChainError):
    """Transaction history for an address could not be retrieved."""

    code = "HISTORY_FETCH_FAILED"

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"History fetch failed for {address[:16]}: {reason}")


class NotaryError(TrustChainError):
    """Notarization is misconfigured or the on-chain call failed."""

    code = "NOTARY_FAILED"
