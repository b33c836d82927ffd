"""
Structured logging for Backend TrustChain.

JSON logs with timestamp, wallet_id, event_type.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_trustchain.trustchain_logging.logger import bind_wallet, get_logger, short_wallet

__all__ = ["get_logger", "bind_wallet", "short_wallet"]
