"""Application configuration using Pydantic Settings."""

from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings

from .protocol.constants import (
    BROADCAST_ADDRESS,
    BROADCAST_PORT,
    DEVICE_NAME,
    DEVICE_NAME_WIDTH,
    LISTEN_PORT,
)

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/ws1001/ws1001.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Station
    device_name: str = DEVICE_NAME

    # Network
    bind_host: str = "0.0.0.0"
    broadcast_address: str = BROADCAST_ADDRESS
    broadcast_port: int = BROADCAST_PORT
    discovery_bind_port: int = BROADCAST_PORT
    listen_port: int = LISTEN_PORT

    # Polling
    poll_interval_sec: float = 10.0

    # Timeouts (0 = wait forever)
    discovery_timeout_sec: float = 120.0
    read_timeout_sec: float = 300.0

    # IPC (daemon <-> subscribers)
    ipc_port: int = 6514

    # Logging
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_values(self) -> "Settings":
        """Reject a device name that cannot be encoded and a non-positive poll interval."""
        try:
            encoded = self.device_name.encode("ascii")
        except UnicodeEncodeError as exc:
            raise ValueError("device_name must be ASCII") from exc
        if len(encoded) >= DEVICE_NAME_WIDTH:
            raise ValueError(
                f"device_name must be shorter than {DEVICE_NAME_WIDTH} bytes"
            )
        if self.poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        self.log_level = self.log_level.upper()
        return self

    @property
    def discovery_timeout(self) -> Optional[float]:
        return self.discovery_timeout_sec if self.discovery_timeout_sec > 0 else None

    @property
    def read_timeout(self) -> Optional[float]:
        return self.read_timeout_sec if self.read_timeout_sec > 0 else None

    model_config = {"env_prefix": "WS1001_", "env_file": str(_ENV_FILE)}


settings = Settings()
