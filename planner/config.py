"""
Planner Configuration
=====================
Runtime settings for the server and CLI. Values come from the environment
(``PLANNER_*``) and can be overridden by command-line flags.

    PLANNER_STORE           memory | json | sqlite      (default: memory)
    PLANNER_STORE_PATH      directory (json) or db file (sqlite)
    PLANNER_HOST            bind address                (default: 127.0.0.1)
    PLANNER_PORT            bind port                   (default: 8787)
    PLANNER_LOG_LEVEL       DEBUG/INFO/WARNING/...      (default: INFO)
    PLANNER_INDEX_RETRIES   CAS attempts per index write (default: 5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from planner.stores.base import StoreConfig


@dataclass
class PlannerConfig:
    """Settings shared by ``planner serve`` and ``planner call``."""

    store: str = "memory"
    store_path: str = ""
    host: str = "127.0.0.1"
    port: int = 8787
    log_level: str = "INFO"
    index_retries: int = 5
    store_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> PlannerConfig:
        """Build a config from ``PLANNER_*`` variables (``os.environ`` by default)."""
        env = os.environ if environ is None else environ
        defaults = cls()
        try:
            port = int(env.get("PLANNER_PORT", defaults.port))
            retries = int(env.get("PLANNER_INDEX_RETRIES", defaults.index_retries))
        except ValueError as e:
            raise ValueError(f"Invalid numeric PLANNER_* setting: {e}") from e
        return cls(
            store=env.get("PLANNER_STORE", defaults.store).lower(),
            store_path=env.get("PLANNER_STORE_PATH", defaults.store_path),
            host=env.get("PLANNER_HOST", defaults.host),
            port=port,
            log_level=env.get("PLANNER_LOG_LEVEL", defaults.log_level).upper(),
            index_retries=retries,
        )

    def with_overrides(self, **overrides: Any) -> PlannerConfig:
        """Copy with every non-None override applied (CLI flags win over env)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_store_config(self) -> StoreConfig:
        return StoreConfig(backend=self.store, path=self.store_path,
                           extra=dict(self.store_options))
