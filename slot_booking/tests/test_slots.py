from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from slot_booking.app.availability import list_available_slots, submit_availability
from slot_booking.app.errors import InvalidRange, ProviderNotFound, StorageError
from slot_booking.app.models import Availability, Slot
from slot_booking.app.policy import BookingPolicy
from slot_booking.app.utils import as_utc, generate_time_slots

UTC = timezone.utc
FIFTEEN_MINUTES = timedelta(minutes=15)


@pytest.mark.parametrize(
    ('start', 'end', 'expected_count'),
    [
        (datetime(2024, 8, 23, 8, 0, tzinfo=UTC), datetime(2024, 8, 23, 9, 0, tzinfo=UTC), 4),
        (datetime(2024, 8, 23, 8, 0, tzinfo=UTC), datetime(2024, 8, 23, 9, 10, tzinfo=UTC), 4),
        (datetime(2024, 8, 23, 8, 7, tzinfo=UTC), datetime(2024, 8, 23, 8, 37, tzinfo=UTC), 2),
        (datetime(2024, 8, 23, 23, 30, tzinfo=UTC), datetime(2024, 8, 24, 0, 30, tzinfo=UTC), 4),
        (datetime(2024, 8, 23, 8, 0, tzinfo=UTC), datetime(2024, 8, 23, 8, 14, tzinfo=UTC), 0),
    ],
)
def test_generated_slots_tile_the_window(start, end, expected_count):
    slots = generate_time_slots(start, end)

    assert len(slots) == expected_count
    if not slots:
        return
    assert slots[0][0] == start
    for slot_start, slot_end in slots:
        assert slot_end - slot_start == FIFTEEN_MINUTES
    for (_, previous_end), (next_start, _) in zip(slots, slots[1:]):
        assert previous_end == next_start
    assert slots[-1][1] <= end
    assert end - slots[-1][1] < FIFTEEN_MINUTES


def test_trailing_remainder_is_dropped():
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    slots = generate_time_slots(start, start + timedelta(minutes=44))

    assert [slot_start.minute for slot_start, _ in slots] == [0, 15]


def test_custom_slot_duration():
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    slots = generate_time_slots(start, start + timedelta(hours=2), timedelta(minutes=30))

    assert len(slots) == 4


@pytest.mark.parametrize('minutes', [0, -15])
def test_empty_or_reversed_window_is_rejected(minutes):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    with pytest.raises(InvalidRange):
        generate_time_slots(start, start + timedelta(minutes=minutes))


def test_naive_timestamps_are_read_as_utc():
    slots = generate_time_slots(datetime(2024, 8, 23, 8, 0), datetime(2024, 8, 23, 8, 30))

    assert slots[0][0] == datetime(2024, 8, 23, 8, 0, tzinfo=UTC)
    assert slots[0][0].tzinfo is not None


def test_offset_timestamps_are_converted_to_utc():
    plus_two = timezone(timedelta(hours=2))

    slots = generate_time_slots(datetime(2024, 8, 23, 10, 0, tzinfo=plus_two),
                                datetime(2024, 8, 23, 10, 30, tzinfo=plus_two))

    assert slots[0][0] == datetime(2024, 8, 23, 8, 0, tzinfo=UTC)
    assert slots[0][0].utcoffset() == timedelta(0)


def test_submit_availability_persists_window_and_slots(db, provider):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    availability, slots = submit_availability(db, provider.id, start, start + timedelta(hours=1))

    assert availability.id is not None
    assert len(slots) == 4
    assert all(slot.status == 'available' and slot.reservation_id is None for slot in slots)
    assert db.query(Availability).count() == 1
    assert db.query(Slot).filter(Slot.provider_id == provider.id).count() == 4


def test_submit_availability_uses_policy_granularity(db, provider):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)
    policy = BookingPolicy(slot_duration=timedelta(minutes=20))

    _, slots = submit_availability(db, provider.id, start, start + timedelta(hours=1), policy)

    assert len(slots) == 3


def test_submit_availability_twice_duplicates_slots(db, provider):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    submit_availability(db, provider.id, start, start + timedelta(hours=1))
    submit_availability(db, provider.id, start, start + timedelta(hours=1))

    assert db.query(Slot).count() == 8


def test_submit_availability_for_unknown_provider(db):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    with pytest.raises(ProviderNotFound):
        submit_availability(db, 999, start, start + timedelta(hours=1))

    assert db.query(Availability).count() == 0


def test_submit_availability_rejects_invalid_range(db, provider):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    with pytest.raises(InvalidRange):
        submit_availability(db, provider.id, start, start - timedelta(hours=1))

    assert db.query(Availability).count() == 0
    assert db.query(Slot).count() == 0


def test_failed_slot_insert_rolls_back_the_window(db, provider, monkeypatch):
    start = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)

    def failing_add_all(objects):
        db.flush()
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(db, "add_all", failing_add_all)

    with pytest.raises(StorageError):
        submit_availability(db, provider.id, start, start + timedelta(hours=1))

    monkeypatch.undo()
    assert db.query(Availability).count() == 0
    assert db.query(Slot).count() == 0


def test_available_slots_are_ordered_by_start_time(db, provider):
    later = datetime(2024, 8, 24, 8, 0, tzinfo=UTC)
    earlier = datetime(2024, 8, 23, 8, 0, tzinfo=UTC)
    submit_availability(db, provider.id, later, later + timedelta(minutes=30))
    submit_availability(db, provider.id, earlier, earlier + timedelta(minutes=30))

    slots = list_available_slots(db, provider.id)

    starts = [as_utc(slot.start_time) for slot in slots]
    assert starts == sorted(starts)
    assert starts[0] == earlier


def test_available_slots_for_unknown_provider(db):
    with pytest.raises(ProviderNotFound):
        list_available_slots(db, 999)


def test_listing_slots_reports_storage_failures(db, provider, monkeypatch):
    provider_id = provider.id

    def failing_execute(statement, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    db.expire_all()
    monkeypatch.setattr(db, "execute", failing_execute)

    with pytest.raises(StorageError):
        list_available_slots(db, provider_id)
