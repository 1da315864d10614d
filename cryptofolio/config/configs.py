from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cryptofolio.types.topics import EventName

"""
Here, we collect all the different configs
"""


# --- Bus ---


class BusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    strict: bool = Field(
        default=False, description="Reject event names outside the registry"
    )
    log_payloads: bool = Field(
        default=True, description="Include publish arguments in the diagnostic record"
    )
    log_level: str = Field(default="DEBUG", description="Level of the default logging hook")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def level_no(self) -> int:
        return logging.getLevelName(self.log_level)


# --- Data fetching ---


class PollerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    interval_s: Optional[float] = Field(
        default=30.0, description="Polling period; None disables polling"
    )
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    retry_delay_s: float = Field(
        default=1.0, ge=0, description="Base delay, doubled per retry"
    )
    event: EventName = Field(
        default=EventName.PORTFOLIO_REFRESHED, description="Event published on success"
    )

    @field_validator("interval_s")
    @classmethod
    def _positive_interval(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("interval_s must be positive")
        return value


# --- App ---


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    bus: BusConfig = Field(default_factory=BusConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
