"""Signal store interfaces.

A store persists two independent, ordered collections of signal records.
Reads and writes always operate on a whole collection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

SignalRecord = dict[str, Any]


class Collection(str, Enum):
    """Names of the persisted collections."""

    PENDING = "pending"
    APPROVED = "approved"


class AbstractSignalStore(ABC):
    """Interface for durable signal storage."""

    @abstractmethod
    def read_collection(self, name: Collection) -> list[SignalRecord]:
        """Return the records of a collection in stored order.

        Implementations must never raise: a missing or unreadable collection
        reads as an empty list.
        """
        raise NotImplementedError

    @abstractmethod
    def write_collection(self, name: Collection, records: list[SignalRecord]) -> bool:
        """Replace the stored content of a collection.

        Returns:
            True when the new content is durable, False otherwise.
        """
        raise NotImplementedError
