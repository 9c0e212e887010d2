from __future__ import annotations

from typing import Protocol

from .events import ClaimEvent
from .types import SettlementRecord


class ClaimNotifier(Protocol):
    def notify(self, event: ClaimEvent) -> bool:
        ...


class SettlementStore(Protocol):
    def append_settlement(self, record: SettlementRecord) -> bool:
        ...
