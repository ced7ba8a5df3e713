"""Logging configuration model."""

from typing import Literal

from pydantic import BaseModel


class LoggingConfig(BaseModel):
    """Configuration for client logging.

    Attributes:
        level: Minimum level for the ``courier`` loggers
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
