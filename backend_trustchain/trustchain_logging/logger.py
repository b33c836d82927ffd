"""
structlog setup for TrustChain: one JSON object per line on stderr.

Every record carries timestamp, level, logger and event_type. Wallet addresses
passed as wallet_id or wallet are cut to 16 characters before rendering, so
full addresses never reach log storage. stdout is left to command output
(tools.verify_wallet prints its JSON result there).

LOG_LEVEL (default INFO) and LOG_FORMAT (json | console) are read once at import.
This module imports nothing from backend_trustchain.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_VALUE = getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

WALLET_KEYS = ("wallet_id", "wallet")
WALLET_LOG_CHARS = 16


def short_wallet(address: str | None) -> str:
    """First 16 chars of an address plus '...'; shorter strings unchanged."""
    address = address or ""
    if len(address) > WALLET_LOG_CHARS:
        return address[:WALLET_LOG_CHARS] + "..."
    return address


def _truncate_wallets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in WALLET_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and not value.endswith("..."):
            event_dict[key] = short_wallet(value)
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's 'event' key is published as event_type."""
    if "event" in event_dict:
        event_dict.setdefault("event_type", event_dict.pop("event"))
    return event_dict


def configure_structlog() -> None:
    renderer: Any
    if LOG_FORMAT == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _truncate_wallets,
            _event_type,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with logger=<name> bound.

        logger = get_logger(__name__)
        logger.info("integrity_decided", wallet_id=address, status="VERIFIED")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet_id: str) -> structlog.BoundLogger:
    """Logger carrying wallet_id on every call, for one verification."""
    return get_logger("backend_trustchain").bind(wallet_id=short_wallet(wallet_id))
