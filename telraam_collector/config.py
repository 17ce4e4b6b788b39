"""Configuration: environment settings and the YAML run configuration."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DeviceConfig


class Settings(BaseSettings):
    """Settings read from TELRAAM_* environment variables or .env."""

    # Traffic API
    api_url: str = "https://telraam-api.net"
    api_key: str = ""
    request_timeout_sec: float = 30.0
    max_retries: int = 3
    initial_backoff_sec: float = 1.0
    max_backoff_sec: float = 30.0

    # Collection
    data_dir: str = "docs/data"
    days_to_fetch: int = 31

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="TELRAAM_",
        extra="ignore",
    )


def load_config(config_path: str) -> dict:
    """
    Load the YAML run configuration.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary (empty if the file is empty)
    """
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return raw


def load_devices(config: dict) -> List[DeviceConfig]:
    """
    Parse the ``devices`` section of the run configuration.

    Raises:
        ValueError: Section is missing, empty or malformed
    """
    raw_devices = config.get("devices")
    if not raw_devices or not isinstance(raw_devices, list):
        raise ValueError("Config must define a non-empty 'devices' list")

    devices = []
    for item in raw_devices:
        if isinstance(item, dict) and "id" in item:
            # YAML reads bare numeric ids as int
            item = {**item, "id": str(item["id"])}
            item.setdefault("name", item["id"])
        try:
            devices.append(DeviceConfig.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"Invalid device entry {item!r}: {e}") from e

    ids = [d.id for d in devices]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Duplicate device ids in config: {', '.join(duplicates)}")
    return devices


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_cfg: Optional[dict] = None) -> None:
    """
    Send log records to stdout and, if ``file`` is set, a rotating log file.

    Args:
        log_cfg: The ``logging`` section of the run configuration
            (``level``, ``format``, ``file``, ``max_bytes``, ``backup_count``)
    """
    log_cfg = log_cfg or {}
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(log_cfg.get("format", DEFAULT_LOG_FORMAT))

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = log_cfg.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=int(log_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(log_cfg.get("backup_count", 3)),
                encoding="utf-8",
            )
        )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
