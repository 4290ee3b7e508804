"""
Application configuration using Pydantic Settings
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

from asset_stager.core.exceptions import ConfigurationError
from asset_stager.core.schemas import DeployConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.json"
MIN_PROGRESS_REFRESH_INTERVAL = 0.1


class Settings(BaseSettings):
    """Process settings with environment variable support"""

    # Deployment configuration source (local path or http(s) URL)
    config_source: Optional[str] = None
    remote_config_url: str = ""
    config_fetch_timeout: float = 30.0

    # Overrides for the paths stored in the deployment configuration
    root_path: Optional[str] = None
    assets_cache_path: Optional[str] = None

    # Transport Settings
    http_timeout: Optional[float] = None  # None = wait as long as the server streams
    ftp_connect_timeout: float = 10.0
    ftp_transfer_timeout: Optional[float] = None
    download_chunk_size: int = 64 * 1024

    # Progress Settings
    progress_enabled: bool = True
    progress_refresh_interval: float = 0.1  # seconds between redraws

    # Logging Settings
    log_level: str = "INFO"
    log_format: str = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    log_file: str = ""

    @field_validator("progress_refresh_interval")
    @classmethod
    def clamp_refresh_interval(cls, v):
        """Never redraw progress more often than every 100 ms.

        Example:
            >>> Settings(progress_refresh_interval=0.01).progress_refresh_interval
            0.1
        """
        return max(float(v), MIN_PROGRESS_REFRESH_INTERVAL)

    @field_validator("download_chunk_size")
    @classmethod
    def positive_chunk_size(cls, v):
        if int(v) <= 0:
            raise ValueError("download_chunk_size must be positive")
        return int(v)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@dataclass(frozen=True)
class TransportConfig:
    """Network settings injected into the asset manager and its transports."""

    ftp_host: str = ""
    ftp_user: str = ""
    ftp_password: str = ""
    ftp_connect_timeout: float = 10.0
    ftp_transfer_timeout: Optional[float] = None
    http_timeout: Optional[float] = None
    chunk_size: int = 64 * 1024
    progress_enabled: bool = True
    progress_refresh_interval: float = MIN_PROGRESS_REFRESH_INTERVAL

    @classmethod
    def from_config(
        cls, config: DeployConfig, app_settings: Optional[Settings] = None
    ) -> "TransportConfig":
        s = app_settings or settings
        return cls(
            ftp_host=config.ftp.host,
            ftp_user=config.ftp.user,
            ftp_password=config.ftp.password,
            ftp_connect_timeout=s.ftp_connect_timeout,
            ftp_transfer_timeout=s.ftp_transfer_timeout,
            http_timeout=s.http_timeout,
            chunk_size=s.download_chunk_size,
            progress_enabled=s.progress_enabled,
            progress_refresh_interval=s.progress_refresh_interval,
        )


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def resolve_config_source(
    explicit: Optional[str] = None, app_settings: Optional[Settings] = None
) -> str:
    """Pick the configuration source.

    Order: explicit argument, CONFIG_SOURCE setting, a local config.json in the
    working directory, REMOTE_CONFIG_URL setting.
    """
    s = app_settings or settings
    if explicit:
        logger.info("Using configuration given on the command line: %s", explicit)
        return explicit
    if s.config_source:
        logger.info("Using configuration from settings: %s", s.config_source)
        return s.config_source
    if os.path.exists(DEFAULT_CONFIG_NAME):
        logger.info("Found local configuration file: %s", DEFAULT_CONFIG_NAME)
        return DEFAULT_CONFIG_NAME
    if s.remote_config_url:
        logger.info("Using remote configuration: %s", s.remote_config_url)
        return s.remote_config_url
    raise ConfigurationError(
        f"no configuration source: pass one explicitly, set CONFIG_SOURCE "
        f"or place {DEFAULT_CONFIG_NAME} in the working directory"
    )


def _read_source(source: str, timeout: float) -> str:
    if _is_url(source):
        logger.info("Downloading configuration from %s", source)
        try:
            resp = requests.get(source, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ConfigurationError(
                f"cannot download configuration: {e}", remote=source
            ) from e
        return resp.text

    logger.info("Reading configuration file %s", source)
    try:
        with open(source, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration file {source}: {e}") from e


def load_deploy_config(
    source: str, app_settings: Optional[Settings] = None
) -> DeployConfig:
    """Load the deployment configuration from a local JSON file or an http(s) URL.

    Args:
        source: File path or URL of the JSON document
        app_settings: Settings providing path overrides and fetch timeout

    Returns:
        DeployConfig: Validated configuration, with root/cache overrides applied

    Raises:
        ConfigurationError: If the document cannot be fetched, parsed or validated
    """
    s = app_settings or settings
    text = _read_source(source, s.config_fetch_timeout)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"invalid configuration JSON in {source}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"configuration in {source} must be a JSON object")

    if s.root_path:
        data["root_path"] = s.root_path
    if s.assets_cache_path:
        data["assets_cache_path"] = s.assets_cache_path

    try:
        config = DeployConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration in {source}: {e}") from e

    logger.info(
        "Loaded configuration with %d catalog assets", len(config.asset_catalog)
    )
    return config


# Global settings instance
settings = Settings()
