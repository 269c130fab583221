"""
events.py - Observable vault events

Each successful vault operation produces exactly one event record. Failed
operations produce none. Events are immutable and carry the ledger time at
which they were emitted.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional


@dataclass(frozen=True, slots=True)
class VaultEvent:
    """Base class for vault events."""
    timestamp: datetime

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class Deposit(VaultEvent):
    holder: str
    amount: int


@dataclass(frozen=True, slots=True)
class Withdraw(VaultEvent):
    holder: str
    amount: int


@dataclass(frozen=True, slots=True)
class ForeignTransfer(VaultEvent):
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class DelayUpdated(VaultEvent):
    new_delay: timedelta


@dataclass(frozen=True, slots=True)
class OwnershipTransferStarted(VaultEvent):
    previous_holder: str
    new_holder: str


@dataclass(frozen=True, slots=True)
class OwnershipTransferred(VaultEvent):
    previous_holder: str
    new_holder: str


EventListener = Callable[[VaultEvent], None]


class EventLog:
    """
    Append-only record of emitted events with observer fan-out.

    Listeners are called synchronously, in subscription order, after the event
    has been recorded.
    """

    def __init__(self):
        self.events: List[VaultEvent] = []
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: VaultEvent) -> None:
        self.events.append(event)
        for listener in list(self._listeners):
            listener(event)

    def of_type(self, event_type: type) -> List[VaultEvent]:
        """All recorded events of a given class, in emission order."""
        return [e for e in self.events if isinstance(e, event_type)]

    def last(self) -> Optional[VaultEvent]:
        return self.events[-1] if self.events else None

    def __len__(self) -> int:
        return len(self.events)
