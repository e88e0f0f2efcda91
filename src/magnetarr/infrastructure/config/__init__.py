from __future__ import annotations

from .load import load_config
from .schema import AppConfig, CacheConfig, EngineConfig, EnvOverrides

__all__ = ["AppConfig", "CacheConfig", "EngineConfig", "EnvOverrides", "load_config"]
