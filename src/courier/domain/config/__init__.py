"""Configuration models with Pydantic validation."""

from courier.domain.config.app import AppConfig
from courier.domain.config.client import ClientConfig
from courier.domain.config.log import LoggingConfig
from courier.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "ClientConfig",
    "LoggingConfig",
    "RetryConfig",
]
