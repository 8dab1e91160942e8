"""
Campaign events and the append-only log they are written to.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Type, TypeVar, Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CampaignCreated:
    name: str
    target_amount: int
    end_timestamp: int
    fundraiser: str


@dataclass(frozen=True)
class ContributionReceived:
    contributor: str
    value: int


@dataclass(frozen=True)
class CampaignEnded:
    fundraiser: str
    amount: int
    timestamp: int


Event = Union[CampaignCreated, ContributionReceived, CampaignEnded]
E = TypeVar("E", CampaignCreated, ContributionReceived, CampaignEnded)


class EventLog:
    """Append-only record of committed operations."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def emit(self, event: Event) -> None:
        self._events.append(event)
        logger.info("%s %s", type(event).__name__, event)

    def of_type(self, event_type: Type[E]) -> list[E]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
