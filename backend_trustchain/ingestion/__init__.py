"""
Ingestion: retrieve a wallet's recent transaction history from Solana RPC.

fetch_with_retry wraps single RPC calls with exponential backoff on 429s;
history.fetch_observations turns signatures + parsed transactions into an ObservationSet.
"""

from backend_trustchain.ingestion.rpc import fetch_with_retry, is_rate_limit_error

__all__ = ["fetch_with_retry", "is_rate_limit_error"]
