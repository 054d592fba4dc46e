"""Configuration management for ptybridge.

Loads settings from a YAML configuration file with environment variable
overrides (``PTYBRIDGE_`` prefix, ``__`` as the nested delimiter).
Supports .env files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/ptybridge.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)


class TerminalConfig(BaseModel):
    command: list[str] = Field(
        default_factory=lambda: ["tmux", "new-session", "-A", "-D", "-s", "0"],
        min_length=1,
        description="Shell or multiplexer started for every session",
    )
    term_name: str = Field(default="xterm-color", description="Value exported as TERM")
    content_root: Path = Field(default=Path("."))
    working_dir: str = Field(
        default="content", description="Directory the terminal starts in, relative to content_root"
    )
    cols: int = Field(default=80, gt=0)
    rows: int = Field(default=24, gt=0)

    @property
    def cwd(self) -> Path:
        return self.content_root / self.working_dir


class FlowControlConfig(BaseModel):
    ack_threshold: int = Field(default=100_000, gt=0)
    high_watermark: int = Field(default=5, gt=0)
    low_watermark: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def _check_watermarks(self) -> FlowControlConfig:
        if self.low_watermark >= self.high_watermark:
            raise ValueError("low_watermark must be below high_watermark")
        return self


class SocketIOConfig(BaseModel):
    enabled: bool = Field(default=True)
    path: str = Field(default="/tty")
    # python-engineio defaults to a few seconds; a long timeout avoids
    # errant disconnects of idle polling clients.
    ping_timeout: int = Field(default=60, gt=0)
    ping_interval: int = Field(default=25, gt=0)


class WebSocketConfig(BaseModel):
    enabled: bool = Field(default=True)
    path: str | None = Field(
        default=None, description="Only accept upgrades below this path; any path when unset"
    )


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)
    library_level: str = Field(
        default="WARNING",
        description="Level for python-socketio and python-engineio events",
    )


class Settings(BaseSettings):
    """Root configuration for the ptybridge server.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "PTYBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    flow_control: FlowControlConfig = Field(default_factory=FlowControlConfig)
    socketio: SocketIOConfig = Field(default_factory=SocketIOConfig)
    websocket: WebSocketConfig = Field(default_factory=WebSocketConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: init values (YAML) > env vars > .env file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
