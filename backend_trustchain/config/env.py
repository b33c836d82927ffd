"""
Environment variable loading for TrustChain.

- SOLANA_RPC_URL: RPC endpoint (default: devnet)
- SOLANA_PROGRAM_ID: deployed notary program ID
- NOTARY_SECRET: notary keypair (JSON byte array or base58)
- FAIRSCALE_API_URL: reputation API base URL
- Loads .env.local then .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: config is backend_trustchain/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATHS = (_ROOT / ".env.local", _ROOT / ".env")

DEFAULT_PROGRAM_ID = "CvEK7knkMGSE4jw9HxNjHndxdChKW6XAxN4wThk3dkLT"
DEVNET_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_FAIRSCALE_API_URL = "https://sales.fairscale.xyz"


def load_trustchain_env() -> None:
    """Load .env.local / .env from project root. Safe to call multiple times."""
    from dotenv import load_dotenv

    for path in _ENV_PATHS:
        if path.is_file():
            # .env.local wins: load_dotenv never overrides an already-set variable
            load_dotenv(path)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or "").strip() or default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def get_solana_rpc_url() -> str:
    """Resolve Solana RPC URL from env; devnet when unset."""
    load_trustchain_env()
    return env_str("SOLANA_RPC_URL", DEVNET_RPC_URL)


def get_program_id() -> str:
    """Return SOLANA_PROGRAM_ID from env, or the devnet notary program."""
    load_trustchain_env()
    return env_str("SOLANA_PROGRAM_ID", DEFAULT_PROGRAM_ID)


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in RPC URLs before logging them."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
