"""
Application settings.

Typed, immutable view of the environment: provider keys, timeouts, metadata
cache TTL, history batch size, optional program registry override, API bind
address. Built once per process by get_settings().
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_solview.config.env import env_float, env_int, env_str, get_rpc_endpoints


@dataclass(frozen=True)
class Settings:
    rpc_endpoints: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    birdeye_api_key: str = ""
    coingecko_api_key: str = ""
    cryptocompare_api_key: str = ""
    jupiter_api_key: str = ""
    request_timeout_sec: float = 10.0
    metadata_timeout_sec: float = 5.0
    metadata_cache_ttl_sec: float = 24 * 60 * 60
    history_batch_size: int = 5
    program_registry_path: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Read every setting from the environment (.env loaded first)."""
        return cls(
            rpc_endpoints=tuple(get_rpc_endpoints()),
            birdeye_api_key=env_str("BIRDEYE_API_KEY"),
            coingecko_api_key=env_str("COINGECKO_API_KEY"),
            cryptocompare_api_key=env_str("CRYPTOCOMPARE_API_KEY"),
            jupiter_api_key=env_str("JUPITER_API_KEY"),
            request_timeout_sec=env_float("REQUEST_TIMEOUT_SEC", 10.0),
            metadata_timeout_sec=env_float("METADATA_TIMEOUT_SEC", 5.0),
            metadata_cache_ttl_sec=env_float("METADATA_CACHE_TTL_SEC", 24 * 60 * 60),
            history_batch_size=max(1, env_int("HISTORY_BATCH_SIZE", 5)),
            program_registry_path=env_str("PROGRAM_REGISTRY_PATH"),
            api_host=env_str("API_HOST", "0.0.0.0"),
            api_port=env_int("API_PORT", 8000),
        )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call get_settings.cache_clear() in tests)."""
    return Settings.from_env()
