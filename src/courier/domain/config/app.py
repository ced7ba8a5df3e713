"""Root configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from courier.domain.config.client import ClientConfig
from courier.domain.config.log import LoggingConfig
from courier.domain.config.retry import RetryConfig


class AppConfig(BaseModel):
    """Every setting the client and CLI read, grouped by section.

    Unknown sections are rejected so that typos in .courier.yml surface at load time.

    Attributes:
        client: Endpoint and credentials
        retry: Attempt limit and backoff between attempts
        logging: Log verbosity
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "client": {
                    "public_key": "my-public-key",
                    "secret": "my-secret",
                    "base_url": "https://api.client.ch/v3",
                    "timeout": 60.0,
                },
                "retry": {"strategy": "exponential", "max_attempts": 3, "min_delay": 1.0, "max_delay": 30.0},
                "logging": {"level": "WARNING"},
            }
        },
    )
