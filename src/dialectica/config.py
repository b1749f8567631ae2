from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_PORT = 8765


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class NetConfig:
    """Where a host listens and a client connects."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    player_name: str = "Player"
    avatar_id: str = "default"

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None, **overrides: object) -> "NetConfig":
        """Build from ``DIALECTICA_*`` variables; explicit non-None overrides win."""
        src = os.environ if env is None else env
        raw_port = src.get("DIALECTICA_PORT", str(DEFAULT_PORT))
        try:
            port = int(raw_port)
        except ValueError as e:
            raise ConfigError(f"DIALECTICA_PORT must be an integer, got {raw_port!r}") from e
        values: dict[str, object] = {
            "host": src.get("DIALECTICA_HOST", "0.0.0.0"),
            "port": port,
            "player_name": src.get("DIALECTICA_NAME", "Player"),
            "avatar_id": src.get("DIALECTICA_AVATAR", "default"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if not 0 < int(values["port"]) < 65536:  # type: ignore[call-overload]
            raise ConfigError(f"Port out of range: {values['port']}")
        return NetConfig(**values)  # type: ignore[arg-type]
