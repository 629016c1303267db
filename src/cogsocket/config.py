"""Engine and transport configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any


def _env_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    if value.lower() in ("none", "off"):
        return None
    return float(value)


@dataclass
class CogSocketConfig:
    """CogSocket configuration.

    Used by the engine (encoding, identity) and by the WebSocket
    client transport (timeouts, keep-alive pings).
    """

    # JSON indentation for outbound frames (None = compact)
    indent: int | str | None = None

    # Identity record returned from @/hello (None = computed from the host)
    identity: dict[str, Any] | None = None

    # WebSocket client settings
    open_timeout: float | None = 10.0
    ping_interval: float | None = 30.0
    ping_timeout: float | None = 10.0
    close_timeout: float | None = 5.0

    @classmethod
    def from_env(cls) -> CogSocketConfig:
        """Build a config from COGSOCKET_* environment variables."""
        config = cls()

        indent = os.getenv("COGSOCKET_INDENT")
        if indent:
            config.indent = int(indent) if indent.isdigit() else indent

        name = os.getenv("COGSOCKET_NAME")
        model = os.getenv("COGSOCKET_MODEL")
        if name or model:
            config.identity = {}
            if name:
                config.identity["name"] = name
            if model:
                config.identity["model"] = model

        config.open_timeout = _env_float("COGSOCKET_OPEN_TIMEOUT", config.open_timeout)
        config.ping_interval = _env_float("COGSOCKET_PING_INTERVAL", config.ping_interval)
        return config
