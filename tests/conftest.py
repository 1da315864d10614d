from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import pytest

from cryptofolio.config.configs import BusConfig
from cryptofolio.core.bus import EventBus


@dataclass
class StubTelemetry:
    events: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    def log(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]


@pytest.fixture
def telemetry() -> StubTelemetry:
    return StubTelemetry()


@pytest.fixture
def bus(telemetry: StubTelemetry) -> EventBus:
    """Fresh, isolated bus per test."""
    return EventBus(BusConfig(), telemetry=telemetry)
