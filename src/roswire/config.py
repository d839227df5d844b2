"""Connection options and the persisted CLI configuration.

``ConnectionOptions`` is what a ``Connection`` is built from. ``ClientConfig``
lives under ~/.roswire/:
  config.json — default rosbridge URL and log level used by the CLI
  logs/       — rotating log files written by ``log_setup.init``
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, Field

APP_DIR = Path.home() / ".roswire"
CONFIG_FILE = APP_DIR / "config.json"
LOG_DIR = APP_DIR / "logs"

DEFAULT_URL = "ws://localhost:9090"


class ConnectionOptions(BaseModel):
    url: str | None = None
    transport_library: str = "websocket"
    transport_options: dict[str, Any] = Field(default_factory=dict)
    # Replaces the whole inbound decode pipeline when set; see codec.FrameCodec.
    decoder: Callable[..., Any] | None = None
    reconnect: bool = False
    reconnect_delay: float = 1.0
    reconnect_delay_max: float = 60.0


class ClientConfig(BaseModel):
    url: str = DEFAULT_URL
    log_level: str = "INFO"


def ensure_app_dir() -> Path:
    APP_DIR.mkdir(parents=True, exist_ok=True)
    return APP_DIR


def load_config() -> ClientConfig:
    if CONFIG_FILE.exists():
        return ClientConfig.model_validate_json(CONFIG_FILE.read_text(encoding="utf-8"))
    return ClientConfig()


def save_config(config: ClientConfig) -> None:
    ensure_app_dir()
    CONFIG_FILE.write_text(config.model_dump_json(indent=2), encoding="utf-8")
