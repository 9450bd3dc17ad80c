"""Tests for the moderation workflow (submit / approve / reject)."""

import re
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.adapters.storage.base import AbstractSignalStore, Collection
from app.adapters.storage.json_file import JsonFileSignalStore
from app.core.errors import NotFoundAppError, PersistenceAppError, ValidationAppError
from app.services.moderation_service import ModerationService, mint_signal_id, utc_timestamp

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)


class FlakyStore(AbstractSignalStore):
    """JSON store wrapper that can be told to fail writes to one collection."""

    def __init__(self, inner: JsonFileSignalStore) -> None:
        self.inner = inner
        self.fail_writes: set[Collection] = set()
        self.writes: list[Collection] = []

    def read_collection(self, name):
        return self.inner.read_collection(name)

    def write_collection(self, name, records):
        self.writes.append(Collection(name))
        if Collection(name) in self.fail_writes:
            return False
        return self.inner.write_collection(name, records)


@pytest.fixture
def store(tmp_path) -> FlakyStore:
    return FlakyStore(JsonFileSignalStore(tmp_path))


@pytest.fixture
def service(store) -> ModerationService:
    return ModerationService(store, clock=lambda: FIXED_NOW)


def _payload(**overrides) -> dict:
    payload = {"title": "Protest", "startTime": "2024-01-01T10:00:00Z"}
    payload.update(overrides)
    return payload


def _ids(records) -> list[str]:
    return [r["id"] for r in records]


class TestSubmit:
    def test_new_signal_is_pending_only(self, service) -> None:
        signal_id = service.submit(_payload())

        assert _ids(service.list_pending()) == [signal_id]
        assert service.list_approved() == []

    def test_stamps_status_id_and_submission_time(self, service) -> None:
        signal_id = service.submit(_payload(location="Main St", custom={"x": 1}))
        record = service.list_pending()[0]

        assert re.fullmatch(r"sig-\d+-[0-9a-f]{6}", signal_id)
        assert record["status"] == "pending"
        assert record["submittedAt"] == "2024-01-01T12:00:00.123Z"
        assert "approvedAt" not in record
        assert record["location"] == "Main St"
        assert record["custom"] == {"x": 1}
        assert record["title"] == "Protest"

    def test_client_cannot_forge_moderation_fields(self, service) -> None:
        service.submit(_payload(status="approved", approvedAt="2020-01-01T00:00:00Z"))
        record = service.list_pending()[0]

        assert record["status"] == "pending"
        assert "approvedAt" not in record

    def test_caller_supplied_string_id_is_kept(self, service) -> None:
        assert service.submit(_payload(id="my-own-id")) == "my-own-id"

    @pytest.mark.parametrize("bad_id", ["", 123, None, ["x"]])
    def test_non_string_or_empty_id_is_replaced(self, service, bad_id) -> None:
        signal_id = service.submit(_payload(id=bad_id))
        assert signal_id.startswith("sig-")

    def test_colliding_id_is_replaced(self, service) -> None:
        first = service.submit(_payload(id="dup"))
        second = service.submit(_payload(id="dup"))

        assert first == "dup"
        assert second != "dup"
        assert len(set(_ids(service.list_pending()))) == 2

    def test_minted_ids_are_unique_even_if_factory_repeats(self, store) -> None:
        factory = MagicMock(side_effect=["sig-1-aaaaaa", "sig-1-aaaaaa", "sig-1-bbbbbb"])
        service = ModerationService(store, id_factory=factory)

        assert service.submit(_payload()) == "sig-1-aaaaaa"
        assert service.submit(_payload()) == "sig-1-bbbbbb"

    def test_invalid_payload_raises_and_stores_nothing(self, service, store) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            service.submit({"title": " ", "startTime": "2024-01-01T10:00:00Z"})

        assert exc_info.value.message == "title is required"
        assert service.list_pending() == []
        assert store.writes == []

    def test_pending_write_failure_raises(self, service, store) -> None:
        store.fail_writes.add(Collection.PENDING)

        with pytest.raises(PersistenceAppError):
            service.submit(_payload())

        assert service.list_pending() == []

    def test_preserves_submission_order(self, service) -> None:
        ids = [service.submit(_payload(title=f"Event {n}")) for n in range(4)]
        assert _ids(service.list_pending()) == ids


class TestApprove:
    def test_moves_record_to_approved(self, service) -> None:
        keep = service.submit(_payload(title="Keep"))
        target = service.submit(_payload(title="Publish"))

        record = service.approve(target)

        assert _ids(service.list_pending()) == [keep]
        approved = service.list_approved()
        assert _ids(approved) == [target]
        assert approved[0]["status"] == "approved"
        assert approved[0]["approvedAt"] == "2024-01-01T12:00:00.123Z"
        assert approved[0]["title"] == "Publish"
        assert record == approved[0]

    def test_total_count_is_unchanged(self, service) -> None:
        ids = [service.submit(_payload()) for _ in range(3)]
        service.approve(ids[1])

        counts = service.counts()
        assert counts == {"pending": 2, "approved": 1}

    def test_appends_to_existing_approved(self, service) -> None:
        first = service.submit(_payload())
        second = service.submit(_payload())

        service.approve(second)
        service.approve(first)

        assert _ids(service.list_approved()) == [second, first]

    def test_unknown_id_reports_not_found_and_changes_nothing(self, service, store) -> None:
        signal_id = service.submit(_payload())
        store.writes.clear()

        with pytest.raises(NotFoundAppError):
            service.approve("sig-does-not-exist")

        assert _ids(service.list_pending()) == [signal_id]
        assert service.list_approved() == []
        assert store.writes == []

    def test_cannot_approve_twice(self, service) -> None:
        signal_id = service.submit(_payload())
        service.approve(signal_id)

        with pytest.raises(NotFoundAppError):
            service.approve(signal_id)
        assert _ids(service.list_approved()) == [signal_id]

    def test_approved_write_failure_leaves_record_pending(self, service, store) -> None:
        signal_id = service.submit(_payload())
        store.fail_writes.add(Collection.APPROVED)

        with pytest.raises(PersistenceAppError):
            service.approve(signal_id)

        assert _ids(service.list_pending()) == [signal_id]
        assert service.list_approved() == []

    def test_pending_write_failure_rolls_back_approved(self, service, store) -> None:
        signal_id = service.submit(_payload())
        store.fail_writes.add(Collection.PENDING)

        with pytest.raises(PersistenceAppError) as exc_info:
            service.approve(signal_id)

        assert exc_info.value.details["collection"] == "pending"
        assert _ids(service.list_pending()) == [signal_id]
        assert service.list_approved() == []


class TestReject:
    def test_discards_record(self, service) -> None:
        keep = service.submit(_payload())
        drop = service.submit(_payload())

        service.reject(drop)

        assert _ids(service.list_pending()) == [keep]
        assert service.list_approved() == []

    def test_rejected_record_can_no_longer_be_approved(self, service) -> None:
        signal_id = service.submit(_payload())
        service.reject(signal_id)

        with pytest.raises(NotFoundAppError):
            service.approve(signal_id)
        assert service.list_approved() == []

    def test_unknown_id_reports_not_found(self, service) -> None:
        signal_id = service.submit(_payload())

        with pytest.raises(NotFoundAppError):
            service.reject("nope")
        assert _ids(service.list_pending()) == [signal_id]

    def test_write_failure_raises_and_keeps_record(self, service, store) -> None:
        signal_id = service.submit(_payload())
        store.fail_writes.add(Collection.PENDING)

        with pytest.raises(PersistenceAppError):
            service.reject(signal_id)
        assert _ids(service.list_pending()) == [signal_id]


class TestStoreIsSourceOfTruth:
    def test_lists_reflect_out_of_band_writes(self, service, store) -> None:
        service.submit(_payload())
        store.inner.write_collection(
            Collection.PENDING,
            [{"id": "external", "title": "Edited by hand", "startTime": "2024-01-01", "status": "pending"}],
        )

        assert _ids(service.list_pending()) == ["external"]
        service.approve("external")
        assert _ids(service.list_approved()) == ["external"]


class TestConcurrency:
    def test_concurrent_submissions_are_not_lost(self, service) -> None:
        barrier = threading.Barrier(8)
        ids: list[str] = []
        ids_lock = threading.Lock()

        def worker(n: int) -> None:
            barrier.wait()
            for i in range(5):
                signal_id = service.submit(_payload(title=f"w{n}-{i}"))
                with ids_lock:
                    ids.append(signal_id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(ids) == 40
        assert sorted(_ids(service.list_pending())) == sorted(ids)

    def test_concurrent_moderation_keeps_every_record_in_one_collection(self, service) -> None:
        ids = [service.submit(_payload(title=f"s{n}")) for n in range(20)]
        to_approve, to_reject = ids[::2], ids[1::2]

        def approve_all() -> None:
            for signal_id in to_approve:
                service.approve(signal_id)

        def reject_all() -> None:
            for signal_id in to_reject:
                service.reject(signal_id)

        threads = [threading.Thread(target=approve_all), threading.Thread(target=reject_all)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert service.list_pending() == []
        assert sorted(_ids(service.list_approved())) == sorted(to_approve)


def test_utc_timestamp_normalizes_offsets() -> None:
    moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert utc_timestamp(moment) == "2024-01-01T12:00:00.000Z"


def test_mint_signal_id_format() -> None:
    assert re.fullmatch(r"sig-\d{13,}-[0-9a-f]{6}", mint_signal_id())
