"""Telemetry Port Interface.

Contract: receive structured diagnostics as log(event, **fields). The bus and
the polling fetcher report through this port so tests can assert on emitted
diagnostics without capturing log output.
"""
from __future__ import annotations
from typing import Protocol, Any

class Telemetry(Protocol):
    def log(self, event: str, **fields: Any) -> None: ...
