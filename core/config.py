from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_BIND = "127.0.0.1:8888"
_TRUTHY = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _flag(env: Mapping[str, str], name: str, default: str) -> bool:
    return env.get(name, default).strip().lower() in _TRUTHY


def parse_bind(value: str) -> Tuple[str, int]:
    """Split ``host:port``. Raises ValueError on anything else."""
    host, sep, port = value.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Invalid bind address {value!r}; expected host:port")
    port_num = int(port)
    if not 0 <= port_num <= 65535:
        raise ValueError(f"Port out of range in bind address {value!r}")
    return host.strip("[]"), port_num


@dataclass
class HostConfig:
    host: str = "127.0.0.1"
    port: int = 8888
    control_enabled: bool = True
    notify_list_changed: bool = False
    metrics_enabled: bool = True
    log_level: str = "INFO"
    seed_file: Optional[str] = None

    @property
    def bind(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "HostConfig":
        env = os.environ if env is None else env
        host, port = parse_bind(env.get("MCP_BIND", DEFAULT_BIND))
        log_level = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown LOG_LEVEL {log_level!r}")
        return cls(
            host=host,
            port=port,
            control_enabled=_flag(env, "MCP_CONTROL_ENABLED", "true"),
            notify_list_changed=_flag(env, "MCP_NOTIFY_LIST_CHANGED", "false"),
            metrics_enabled=_flag(env, "METRICS_ENABLED", "true"),
            log_level=log_level,
            seed_file=env.get("MCP_SEED_FILE", "").strip() or None,
        )
