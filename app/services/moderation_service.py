"""Moderation workflow for crowd-submitted signals.

A signal enters the ``pending`` collection on submission and leaves it
exactly once: either moved to ``approved`` (published) or discarded.
Records are always addressed by their stable ``id``, never by position, so
an admin acting on a stale page cannot hit the wrong record.

Every public method re-reads the store, so out-of-process edits to the
collections are picked up on the next call. Mutations are serialized by one
lock per collection; operations touching both take them in a fixed order
(pending, then approved).
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.storage.base import AbstractSignalStore, Collection, SignalRecord
from app.core.errors import NotFoundAppError, PersistenceAppError, ValidationAppError
from app.schemas.signal import SignalStatus
from app.services.signal_validation import validate_signal

logger = logging.getLogger(__name__)

ID_PREFIX = "sig"

# Lock acquisition order for multi-collection operations
_LOCK_ORDER = (Collection.PENDING, Collection.APPROVED)


def utc_timestamp(now: datetime | None = None) -> str:
    """Format a UTC instant as ISO-8601 with millisecond precision and ``Z``."""

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def mint_signal_id() -> str:
    """Build a new id from the current epoch milliseconds and 24 random bits."""

    return f"{ID_PREFIX}-{time.time_ns() // 1_000_000}-{secrets.token_hex(3)}"


class ModerationService:
    """Owns collection membership of signals and their lifecycle stamps.

    Attributes:
        store: Durable storage for the two collections.
    """

    def __init__(
        self,
        store: AbstractSignalStore,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] = mint_signal_id,
    ) -> None:
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory
        self._locks = {name: threading.Lock() for name in _LOCK_ORDER}
        self._issued_ids: set[str] = set()

    def _now(self) -> str:
        return utc_timestamp(self._clock())

    def _locked(self, *names: Collection) -> ExitStack:
        stack = ExitStack()
        for name in _LOCK_ORDER:
            if name in names:
                stack.enter_context(self._locks[name])
        return stack

    def _assign_id(self, requested: Any, taken: set[str]) -> str:
        if isinstance(requested, str) and requested and requested not in taken:
            return requested
        if isinstance(requested, str) and requested:
            logger.info("moderation.id_collision", extra={"requested_id": requested})

        # Minted ids are also checked against every id issued by this process
        while True:
            candidate = self._id_factory()
            if candidate not in taken and candidate not in self._issued_ids:
                return candidate

    def submit(self, payload: Any) -> str:
        """Validate a submission and append it to the pending queue.

        Args:
            payload: Decoded JSON body. Extra fields are stored unchanged.

        Returns:
            The id assigned to the new pending signal.

        Raises:
            ValidationAppError: If the payload fails validation.
            PersistenceAppError: If the pending collection could not be saved.
        """

        result = validate_signal(payload)
        if not result.ok:
            logger.info("moderation.submission_rejected", extra={"reason": result.reason})
            raise ValidationAppError(
                code="invalid_signal",
                message=result.reason or "Invalid payload",
                details={"reason": result.reason or "invalid_payload"},
            )

        with self._locked(Collection.PENDING, Collection.APPROVED):
            pending = self.store.read_collection(Collection.PENDING)
            approved = self.store.read_collection(Collection.APPROVED)
            taken = {str(r.get("id")) for r in pending + approved if r.get("id") is not None}

            record: SignalRecord = dict(payload)
            record["id"] = self._assign_id(payload.get("id"), taken)
            record["status"] = SignalStatus.PENDING.value
            record["submittedAt"] = self._now()
            record.pop("approvedAt", None)

            if not self.store.write_collection(Collection.PENDING, [*pending, record]):
                raise PersistenceAppError(
                    code="persistence_failed",
                    message="Could not save pending signal",
                    details={"collection": Collection.PENDING.value},
                )
            self._issued_ids.add(record["id"])

        logger.info(
            "moderation.submitted",
            extra={"signal_id": record["id"], "pending_count": len(pending) + 1},
        )
        return record["id"]

    def approve(self, signal_id: str) -> SignalRecord:
        """Move a pending signal to the approved collection.

        ``approved`` is written first; if writing ``pending`` then fails, the
        previous ``approved`` content is restored before reporting failure.

        Returns:
            The approved record.

        Raises:
            NotFoundAppError: If ``signal_id`` is not pending.
            PersistenceAppError: If either collection could not be saved.
        """

        with self._locked(Collection.PENDING, Collection.APPROVED):
            pending = self.store.read_collection(Collection.PENDING)
            position = self._find(pending, signal_id)
            approved = self.store.read_collection(Collection.APPROVED)

            record = dict(pending[position])
            record["status"] = SignalStatus.APPROVED.value
            record["approvedAt"] = self._now()
            remaining = pending[:position] + pending[position + 1:]

            if not self.store.write_collection(Collection.APPROVED, [*approved, record]):
                raise self._persistence_failure("approve", signal_id, Collection.APPROVED)

            if not self.store.write_collection(Collection.PENDING, remaining):
                if not self.store.write_collection(Collection.APPROVED, approved):
                    logger.critical(
                        "moderation.rollback_failed",
                        extra={"signal_id": signal_id, "collection": Collection.APPROVED.value},
                    )
                raise self._persistence_failure("approve", signal_id, Collection.PENDING)

        logger.info(
            "moderation.approved",
            extra={"signal_id": signal_id, "pending_count": len(remaining)},
        )
        return record

    def reject(self, signal_id: str) -> None:
        """Discard a pending signal. Nothing about it is retained.

        Raises:
            NotFoundAppError: If ``signal_id`` is not pending.
            PersistenceAppError: If the pending collection could not be saved.
        """

        with self._locked(Collection.PENDING):
            pending = self.store.read_collection(Collection.PENDING)
            position = self._find(pending, signal_id)
            remaining = pending[:position] + pending[position + 1:]

            if not self.store.write_collection(Collection.PENDING, remaining):
                raise self._persistence_failure("reject", signal_id, Collection.PENDING)

        logger.info(
            "moderation.rejected",
            extra={"signal_id": signal_id, "pending_count": len(remaining)},
        )

    def list_pending(self) -> list[SignalRecord]:
        return self.store.read_collection(Collection.PENDING)

    def list_approved(self) -> list[SignalRecord]:
        return self.store.read_collection(Collection.APPROVED)

    def counts(self) -> dict[str, int]:
        return {
            Collection.PENDING.value: len(self.list_pending()),
            Collection.APPROVED.value: len(self.list_approved()),
        }

    @staticmethod
    def _find(records: list[SignalRecord], signal_id: str) -> int:
        for position, record in enumerate(records):
            if record.get("id") == signal_id:
                return position
        raise NotFoundAppError(
            code="signal_not_found",
            message="Signal not found in pending queue",
            details={"signal_id": signal_id},
        )

    @staticmethod
    def _persistence_failure(action: str, signal_id: str, collection: Collection) -> PersistenceAppError:
        return PersistenceAppError(
            code="persistence_failed",
            message=f"Failed to save {action} update",
            details={"signal_id": signal_id, "collection": collection.value},
        )
