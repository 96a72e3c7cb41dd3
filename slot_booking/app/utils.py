from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from .errors import InvalidRange
from .models import Availability, Reservation, Slot


def as_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime. Naive values are assumed to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat(dt: datetime):
    return as_utc(dt).isoformat() if dt else None


def generate_time_slots(start_time: datetime, end_time: datetime,
                        slot_duration: timedelta = timedelta(minutes=15)) -> List[Tuple[datetime, datetime]]:
    """
    Split an availability window into contiguous slots of ``slot_duration``.

    :param start_time: Start of the window (inclusive).
    :param end_time: End of the window (exclusive).
    :param slot_duration: Length of every generated slot.
    :return: Ordered list of (start, end) pairs. A trailing remainder shorter than
             ``slot_duration`` is dropped.
    """
    start_time = as_utc(start_time)
    end_time = as_utc(end_time)
    if start_time >= end_time:
        raise InvalidRange()
    if slot_duration <= timedelta(0):
        raise ValueError("slot_duration must be positive")

    time_slots = []
    current_time = start_time
    while current_time + slot_duration <= end_time:
        next_slot_start = current_time + slot_duration
        time_slots.append((current_time, next_slot_start))
        current_time = next_slot_start

    return time_slots


def serialize_slot(slot: Slot, include_private_info: bool = False):
    serialized = {
        "id": slot.id,
        "provider_id": slot.provider_id,
        "start_time": isoformat(slot.start_time),
        "end_time": isoformat(slot.end_time),
        "status": slot.status,
    }
    if include_private_info:
        serialized["reservation_id"] = slot.reservation_id
    return serialized


def serialize_availability(availability: Availability):
    return {
        "id": availability.id,
        "provider_id": availability.provider_id,
        "start_time": isoformat(availability.start_time),
        "end_time": isoformat(availability.end_time),
    }


def serialize_reservation(reservation: Reservation):
    return {
        "id": reservation.id,
        "slot_id": reservation.slot_id,
        "client_id": reservation.client_id,
        "created_at": isoformat(reservation.created_at),
        "expires_at": isoformat(reservation.expires_at),
        "confirmed_at": isoformat(reservation.confirmed_at),
    }
