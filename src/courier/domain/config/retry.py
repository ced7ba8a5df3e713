"""Retry configuration model."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class RetryConfig(BaseModel):
    """Configuration for retry logic.

    Attributes:
        strategy: Backoff strategy between attempts
        max_attempts: Maximum number of attempts per call (0 = never retry)
        min_delay: Lower delay bound in seconds (linear/exponential)
        max_delay: Upper delay bound in seconds (linear/exponential)
        delay: Fixed delay in seconds (constant)
    """

    strategy: Literal["constant", "linear", "exponential"] = "exponential"
    max_attempts: int = Field(3, ge=0, le=100)
    min_delay: float = Field(1.0, ge=0.0)
    max_delay: float = Field(30.0, ge=0.0)
    delay: float = Field(1.0, ge=0.0)  # Allow 0 for tests

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryConfig":
        if self.strategy != "constant" and self.min_delay > self.max_delay:
            raise ValueError(
                f"min_delay ({self.min_delay}) must not exceed max_delay ({self.max_delay})"
            )
        return self
