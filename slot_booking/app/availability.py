# availability.py
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from .directory import get_provider
from .models import Availability, Slot, SLOT_AVAILABLE, SLOT_RESERVED, SLOT_CONFIRMED
from .policy import BookingPolicy, DEFAULT_POLICY
from .store import list_slots, transaction
from .utils import as_utc, generate_time_slots


def submit_availability(db: Session, provider_id: int, start_time: datetime, end_time: datetime,
                        policy: BookingPolicy = DEFAULT_POLICY):
    """
    Record an availability window for a provider and generate its slots.

    The window row and every generated slot are written in one transaction, so a
    failure never leaves slots without their window (or the reverse). Submitting
    the same window twice produces duplicate slots.

    :return: (availability, slots) with slots ordered by start time.
    """
    with transaction(db):
        provider = get_provider(db, provider_id)
        time_slots = generate_time_slots(start_time, end_time, policy.slot_duration)

        availability = Availability(
            provider_id=provider.id,
            start_time=as_utc(start_time),
            end_time=as_utc(end_time)
        )
        db.add(availability)

        slots = [
            Slot(
                provider_id=provider.id,
                start_time=slot_start,
                end_time=slot_end,
                status=SLOT_AVAILABLE,
                reservation_id=None
            )
            for slot_start, slot_end in time_slots
        ]
        db.add_all(slots)

    logging.info(f"Availability {availability.id} set for provider {provider_id} with {len(slots)} slots")
    return availability, slots


def list_available_slots(db: Session, provider_id: int):
    provider = get_provider(db, provider_id)
    return list_slots(db, provider.id, statuses=[SLOT_AVAILABLE])


def list_booked_slots(db: Session, provider_id: int):
    provider = get_provider(db, provider_id)
    return list_slots(db, provider.id, statuses=[SLOT_RESERVED, SLOT_CONFIRMED])
