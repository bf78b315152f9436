"""Application configuration using pydantic-settings."""

import logging
import sys

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    All settings can be overridden via environment variables
    prefixed with PLUGWISE_ (e.g., PLUGWISE_DEVICE).
    """

    device: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    log_level: str = "INFO"
    scan_count: int = 16
    request_timeout: float = 5.0
    read_timeout: float = 3.0
    read_size: int = 2048

    model_config = SettingsConfigDict(env_prefix="PLUGWISE_")


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
