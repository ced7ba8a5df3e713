"""Loading of client settings from .courier.yml and COURIER_* variables"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from courier.domain.config import AppConfig, ClientConfig, LoggingConfig, RetryConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".courier.yml"


class ConfigurationError(Exception):
    """Raised when settings cannot be read or do not validate."""


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: working directory) looking for .courier.yml"""
    start = start or Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            logger.info(f"Using config file {candidate}")
            return candidate
    logger.debug(f"{CONFIG_FILE_NAME} not found above {start}")
    return None


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``overlay``; nested mappings merge key by key"""
    merged = copy.deepcopy(dict(base))
    for name, incoming in overlay.items():
        current = merged.get(name)
        if isinstance(current, dict) and isinstance(incoming, dict):
            merged[name] = deep_merge(current, incoming)
        else:
            merged[name] = incoming
    return merged


def _describe(error: ValidationError) -> str:
    lines = ["Configuration validation failed:"]
    for problem in error.errors():
        where = ".".join(str(part) for part in problem["loc"])
        lines.append(f"  - {where}: {problem['msg']}")
    return "\n".join(lines)


class ConfigManager:
    """Resolves the effective ``AppConfig``

    Later sources win:
    1. model defaults
    2. .courier.yml (explicit path, or the nearest one above the working directory)
    3. COURIER_* environment variables
    4. command line options (applied by the CLI)
    """

    ENV_OVERRIDES = {
        "COURIER_PUBLIC_KEY": ("client", "public_key"),
        "COURIER_SECRET": ("client", "secret"),
        "COURIER_BASE_URL": ("client", "base_url"),
        "COURIER_TIMEOUT": ("client", "timeout"),
        "COURIER_RETRY_MAX_ATTEMPTS": ("retry", "max_attempts"),
        "COURIER_LOG_LEVEL": ("logging", "level"),
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Args:
            config_path: Settings file; searched for when omitted

        Raises:
            ConfigurationError: The file is unreadable or a value is invalid
        """
        self.config_path = Path(config_path) if config_path else find_config_file()
        raw = deep_merge(self._read_file(), self._read_environment())
        try:
            self.config = AppConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(_describe(e)) from e

    def _read_file(self) -> Dict[str, Any]:
        if self.config_path is None or not self.config_path.exists():
            return {}
        try:
            document = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {self.config_path}: {e}") from e
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping")
        logger.info(f"Loaded configuration from {self.config_path}")
        return document

    def _read_environment(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for variable, (section, field) in self.ENV_OVERRIDES.items():
            value = os.environ.get(variable)
            if value:
                overrides.setdefault(section, {})[field] = value
        return overrides

    def get_client_config(self) -> ClientConfig:
        return self.config.client

    def get_retry_config(self) -> RetryConfig:
        return self.config.retry

    def get_logging_config(self) -> LoggingConfig:
        return self.config.logging
