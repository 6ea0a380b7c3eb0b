"""
Configuration for the access digest system.

Provides explicit configuration with:
- JSON file loading with defaults
- Environment variable overrides
- Dot-notation access while building the config
- Validation of the settings a given entry point needs

Usage:
    from access_log.config import load_config

    config = load_config()
    config.require("table_name", "email_from", "email_to")
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigurationError

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "TABLE_NAME": "store.table_name",
    "EMAIL_FROM": "email.from_address",
    "EMAIL_TO": "email.to_address",
    "AWS_REGION": "email.region",
    "SES_REGION": "email.region",
    "DELIVERY_METHOD": "email.method",
    "SMTP_SERVER": "smtp.server",
    "SMTP_PORT": "smtp.port",
    "SMTP_USERNAME": "smtp.username",
    "SMTP_PASSWORD": "smtp.password",
    "REPORT_TIMEZONE": "report.display_timezone",
    "GIPHY_ACCESS_TOKEN": "giphy.api_key",
    "LOG_LEVEL": "logging.level",
}


@dataclass(frozen=True)
class SmtpSettings:
    """SMTP transport settings, used when delivery method is "smtp"."""
    server: str = ""
    port: int = 587
    use_tls: bool = True
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class DigestConfig:
    """Settings shared by the store, renderer, mailer and handlers."""
    table_name: str = ""
    email_from: str = ""
    email_to: str = ""
    email_region: str = "us-east-1"
    delivery_method: str = "ses"
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    display_timezone: str = "America/Sao_Paulo"
    date_format: str = "%d/%m/%Y, %H:%M:%S"
    giphy_api_key: str = ""
    giphy_query: str = "celebration"
    giphy_timeout_sec: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DigestConfig":
        """Build a config from the nested dictionary layout of the JSON file."""
        smtp = data.get("smtp") or {}
        try:
            return cls(
                table_name=_get(data, "store.table_name", ""),
                email_from=_get(data, "email.from_address", ""),
                email_to=_get(data, "email.to_address", ""),
                email_region=_get(data, "email.region", "us-east-1"),
                delivery_method=str(_get(data, "email.method", "ses")).lower(),
                smtp=SmtpSettings(
                    server=smtp.get("server", ""),
                    port=int(smtp.get("port", 587)),
                    use_tls=_as_bool(smtp.get("use_tls", True)),
                    username=smtp.get("username", ""),
                    password=smtp.get("password", ""),
                ),
                display_timezone=_get(data, "report.display_timezone", "America/Sao_Paulo"),
                date_format=_get(data, "report.date_format", "%d/%m/%Y, %H:%M:%S"),
                giphy_api_key=_get(data, "giphy.api_key", ""),
                giphy_query=_get(data, "giphy.query", "celebration"),
                giphy_timeout_sec=float(_get(data, "giphy.timeout_sec", 10.0)),
                log_level=str(_get(data, "logging.level", "INFO")).upper(),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    def require(self, *names: str):
        """
        Ensure the named settings are non-empty.

        Args:
            names: Attribute names of this config

        Raises:
            ConfigurationError: If any of them is empty
        """
        known = {f.name for f in fields(self)}
        missing = [n for n in names if n not in known or not getattr(self, n)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        if self.delivery_method not in ("ses", "smtp"):
            raise ConfigurationError(f"Unknown delivery method: {self.delivery_method}")
        if self.delivery_method == "smtp" and not self.smtp.server:
            raise ConfigurationError("Missing required configuration: smtp.server")


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DigestConfig:
    """
    Load configuration from defaults, an optional JSON file and the environment.

    Args:
        config_path: Path to a JSON config file (optional)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        DigestConfig instance
    """
    data = _get_defaults()

    if config_path is not None:
        config_path = Path(config_path)
        try:
            with open(config_path) as f:
                _merge(data, json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

    _apply_env_overrides(data, os.environ if environ is None else environ)

    return DigestConfig.from_dict(data)


def _get_defaults() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default settings
    """
    return copy.deepcopy({
        "store": {
            "table_name": "",
        },
        "email": {
            "method": "ses",
            "region": "us-east-1",
            "from_address": "",
            "to_address": "",
        },
        "smtp": {
            "server": "",
            "port": 587,
            "use_tls": True,
            "username": "",
            "password": "",
        },
        "report": {
            "display_timezone": "America/Sao_Paulo",
            "date_format": "%d/%m/%Y, %H:%M:%S",
        },
        "giphy": {
            "api_key": "",
            "query": "celebration",
            "timeout_sec": 10.0,
        },
        "logging": {
            "level": "INFO",
        },
    })


def _apply_env_overrides(data: Dict[str, Any], environ: Mapping[str, str]):
    """Apply environment variable overrides to configuration."""
    for env_name, key in ENV_OVERRIDES.items():
        if env_name in environ:
            _set(data, key, environ[env_name])


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]):
    """Recursively merge overrides into base."""
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Get a value with dot notation."""
    value: Any = data
    for k in key.split('.'):
        if isinstance(value, Mapping):
            value = value.get(k)
        else:
            return default
    return value if value is not None else default


def _set(data: Dict[str, Any], key: str, value: Any):
    """Set a value with dot notation, creating sections as needed."""
    keys: List[str] = key.split('.')
    section = data
    for k in keys[:-1]:
        if not isinstance(section.get(k), dict):
            section[k] = {}
        section = section[k]
    section[keys[-1]] = value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes")
    return bool(value)


def configure_logging(level: str = "INFO"):
    """Configure root logging; keeps handlers the runtime already installed."""
    level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    logging.getLogger().setLevel(level)
