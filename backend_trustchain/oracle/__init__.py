"""
On-chain notarization of integrity decisions (TrustChain notary program).
"""

from backend_trustchain.oracle.notary import NotarizationOutcome, SolanaNotary, notarize_decision

__all__ = ["NotarizationOutcome", "SolanaNotary", "notarize_decision"]
