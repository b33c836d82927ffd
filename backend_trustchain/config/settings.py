"""
Application settings.

Settings is a plain dataclass filled from env (see config.env). get_settings()
caches one instance per process; tests build Settings(...) directly.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_trustchain.analytics.decision_engine import DecisionThresholds
from backend_trustchain.config.env import (
    DEFAULT_FAIRSCALE_API_URL,
    env_bool,
    env_float,
    env_int,
    env_str,
    get_program_id,
    get_solana_rpc_url,
    load_trustchain_env,
)


def _thresholds_from_env() -> DecisionThresholds:
    defaults = DecisionThresholds()
    return DecisionThresholds(
        min_sample_count=env_int("MIN_SAMPLE_COUNT", defaults.min_sample_count),
        min_value_samples=env_int("MIN_VALUE_SAMPLES", defaults.min_value_samples),
        sybil_gini=env_float("SYBIL_GINI_THRESHOLD", defaults.sybil_gini),
        sybil_sync_index=env_float("SYBIL_SYNC_INDEX_THRESHOLD", defaults.sybil_sync_index),
        verified_gini=env_float("VERIFIED_GINI_THRESHOLD", defaults.verified_gini),
        whale_hhi=env_float("WHALE_HHI_THRESHOLD", defaults.whale_hhi),
    )


@dataclass
class Settings:
    """Service configuration. Every field has an env var of the same name, upper-cased."""

    solana_rpc_url: str = field(default_factory=get_solana_rpc_url)
    solana_program_id: str = field(default_factory=get_program_id)
    notary_secret: str = field(default_factory=lambda: env_str("NOTARY_SECRET"))
    notary_dry_run: bool = field(default_factory=lambda: env_bool("NOTARY_DRY_RUN", False))
    fairscale_api_url: str = field(default_factory=lambda: env_str("FAIRSCALE_API_URL", DEFAULT_FAIRSCALE_API_URL))
    reputation_cache_ttl_sec: float = field(default_factory=lambda: env_float("REPUTATION_CACHE_TTL_SEC", 60.0))
    reputation_timeout_sec: float = field(default_factory=lambda: env_float("REPUTATION_TIMEOUT_SEC", 3.0))
    signature_limit: int = field(default_factory=lambda: env_int("SIGNATURE_LIMIT", 15))
    fetch_concurrency: int = field(default_factory=lambda: env_int("FETCH_CONCURRENCY", 3))
    fetch_batch_delay_sec: float = field(default_factory=lambda: env_float("FETCH_BATCH_DELAY_SEC", 0.2))
    rpc_max_retries: int = field(default_factory=lambda: env_int("RPC_MAX_RETRIES", 3))
    rpc_base_delay_ms: float = field(default_factory=lambda: env_float("RPC_BASE_DELAY_MS", 500.0))
    thresholds: DecisionThresholds = field(default_factory=_thresholds_from_env)

    def __post_init__(self) -> None:
        if self.fetch_concurrency < 1:
            self.fetch_concurrency = 1
        if self.signature_limit < 1:
            self.signature_limit = 1
        if self.rpc_max_retries < 0:
            self.rpc_max_retries = 0
        if self.fetch_batch_delay_sec < 0:
            self.fetch_batch_delay_sec = 0.0


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading .env on first call."""
    load_trustchain_env()
    return Settings()
