"""
Backend TrustChain: behavioral integrity scoring for Solana wallets.

Fetches a wallet's recent transaction history, reduces it to concentration
(Gini, HHI) and timing synchronization metrics, fuses those with a cached
FairScale reputation score, and renders a VERIFIED / PROBATIONARY / SYBIL
decision plus a governance weight. Decisions can be notarized on-chain.
"""

__version__ = "0.1.0"
