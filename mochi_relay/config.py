"""Relay configuration with defaults, loadable from YAML."""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MOCHI_CONFIG"
DEFAULT_HTTP_PORT = 80


class DeviceConfig(BaseModel):
    connection_type: Literal["serial", "http"] = "serial"
    address: str = "/dev/ttyUSB0"
    # Baud rate for serial, TCP port for HTTP
    port: int = 115200
    settle_delay: float = Field(2.0, ge=0)
    timeout: float = Field(5.0, gt=0)

    @model_validator(mode="after")
    def _check_port(self) -> "DeviceConfig":
        if self.connection_type != "http":
            return self
        if "port" not in self.model_fields_set:
            self.port = DEFAULT_HTTP_PORT
        elif not 1 <= self.port <= 65535:
            raise ValueError(f"http port must be 1-65535, got {self.port}")
        return self


class SchedulerConfig(BaseModel):
    error_cooldown: float = Field(5.0, ge=0)
    stop_timeout: float = Field(5.0, ge=0)
    expiry_interval: float = Field(1.0, gt=0)


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class RelayConfig(BaseModel):
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    log_level: str = "INFO"


def load_config(path: str | Path | None = None) -> RelayConfig:
    """
    Load config from a YAML file, falling back to defaults.

    When no path is given the ``MOCHI_CONFIG`` environment variable is
    consulted. A missing file yields the defaults; a malformed one raises.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If a value is out of range
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return RelayConfig()

    path = Path(path)
    if not path.exists():
        log.warning("config file not found: %s, using defaults", path)
        return RelayConfig()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    cfg = RelayConfig.model_validate(raw)
    log.info("config loaded from %s", path)
    return cfg
