"""
Configuration management for wafctl.

Runtime settings are loaded from defaults, then the JSON config file, then
environment variables. The same config file carries the account API key and
the per-site API secrets:

    {
      "apiKey": "<api key>",
      "sites": {"example.com": "<api secret>"}
    }
"""
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .models import ConfigFile, Template
from .utils import setup_logging

logger = setup_logging("config")

CONFIG_FILE_NAME = "config.json"


class ConfigError(Exception):
    """Exception raised for missing or invalid configuration."""
    pass


def default_config_path() -> Optional[Path]:
    """
    Locate the config file when none was given explicitly.

    Checks CONFIG_FILE, then ./config.json, then config.json beside the
    running executable.
    """
    env_path = os.environ.get("CONFIG_FILE")
    if env_path:
        return Path(env_path)

    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path(sys.argv[0]).resolve().parent / CONFIG_FILE_NAME,
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


class Config:
    """
    Centralized configuration for wafctl.

    Configuration priority (highest to lowest):
    1. Environment variables
    2. Config file (config.json)
    3. Default values
    """

    # Default configuration values
    DEFAULTS = {
        # Sucuri API v2 endpoint
        "SUCURI_API_URL": "https://waf.sucuri.net/api?v2",

        # Per-request timeout in seconds
        "SUCURI_TIMEOUT": 30.0,

        # Retries for timeouts, connection errors and 5xx responses
        "SUCURI_MAX_RETRIES": 2,

        # Requests in flight at once
        "SUCURI_CONCURRENCY": 10,

        # Largest subnet (in usable hosts) that will be expanded
        "SUCURI_MAX_SUBNET_HOSTS": 1024,

        "LOG_LEVEL": "INFO",
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Explicit path to the config file. When given, the
                         file must exist.
        """
        self._explicit = config_file is not None
        self._config_file_path: Optional[Path] = (
            Path(config_file) if config_file else default_config_path()
        )
        self._config: Dict[str, Any] = {}
        self.site_config = ConfigFile()
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment."""
        # Start with defaults
        self._config = self.DEFAULTS.copy()
        self.site_config = ConfigFile()

        path = self._config_file_path
        if path is not None and path.exists():
            file_config = self._read_file(path)
            for key in self.DEFAULTS:
                if key in file_config:
                    self._config[key] = file_config[key]
            try:
                self.site_config = ConfigFile.model_validate(file_config)
            except ValidationError as e:
                raise ConfigError(
                    f"Unable to parse config file {path}, please check the content "
                    f"and refer to the documentation.\n{e}"
                )
            logger.info(f"Loaded configuration from: {path}")
        elif path is not None and self._explicit:
            raise ConfigError(f"Config file not found: {path}")

        # Override with environment variables
        for key in self.DEFAULTS.keys():
            env_value = os.environ.get(key)
            if env_value is not None:
                self._config[key] = env_value

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigError(
                f"Unable to parse config file {path}, please check the content "
                f"and refer to the documentation.\n{e}"
            )
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return data

    def _number(self, key: str, cast):
        value = self._config[key]
        try:
            return cast(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be a number, got: {value!r}")

    @property
    def config_file_path(self) -> Optional[Path]:
        """Path of the config file in use, if any."""
        return self._config_file_path

    @property
    def api_url(self) -> str:
        """Get the WAF API endpoint."""
        return str(self._config["SUCURI_API_URL"])

    @property
    def timeout(self) -> float:
        return self._number("SUCURI_TIMEOUT", float)

    @property
    def max_retries(self) -> int:
        return self._number("SUCURI_MAX_RETRIES", int)

    @property
    def concurrency(self) -> int:
        return max(1, self._number("SUCURI_CONCURRENCY", int))

    @property
    def max_subnet_hosts(self) -> int:
        return self._number("SUCURI_MAX_SUBNET_HOSTS", int)

    @property
    def log_level(self) -> str:
        return str(self._config["LOG_LEVEL"]).upper()


@dataclass(frozen=True)
class Credentials:
    """API key and secret for one site."""
    api_key: str
    api_secret: str
    site: Optional[str] = None


def resolve_credentials(
    site_config: ConfigFile,
    template: Optional[Template] = None,
    key: Optional[str] = None,
    secret: Optional[str] = None,
    site: Optional[str] = None,
) -> Credentials:
    """
    Pick the API key and secret to use.

    An explicit flag wins over the template, which wins over the config file.

    Raises:
        ConfigError: If credentials are missing or contradictory
    """
    template = template or Template()

    api_key = key or template.api_key or site_config.api_key
    if not api_key:
        raise ConfigError(
            "API key wasn't provided, and it was not found in config file. "
            "(use --key '<key>', or add \"apiKey\": \"<apiKey>\" to config file)"
        )

    if secret and site:
        raise ConfigError("Only use --secret or --site, not both")

    if secret:
        return Credentials(api_key=api_key, api_secret=secret)

    site_name = site or template.site
    if site_name:
        api_secret = site_config.sites.get(site_name)
        if not api_secret:
            raise ConfigError(f"Site '{site_name}' not found in config file")
        return Credentials(api_key=api_key, api_secret=api_secret, site=site_name)

    raise ConfigError("No API secret or site was provided (use --secret or --site)")
