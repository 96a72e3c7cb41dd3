# reservations.py
import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from .directory import get_client
from .errors import LeadTimeViolation, ReservationExpired, ReservationNotFound, SlotUnavailable
from .metrics import HOLDS_CREATED, HOLDS_REJECTED, RESERVATIONS_CONFIRMED
from .models import Reservation, SLOT_AVAILABLE, SLOT_RESERVED, SLOT_CONFIRMED
from .policy import BookingPolicy, DEFAULT_POLICY, utc_now
from .store import get_slot, read_scope, transaction, try_transition
from .utils import as_utc


def get_reservation(db: Session, reservation_id: int, client_id: int = None) -> Reservation:
    query = db.query(Reservation).filter(Reservation.id == reservation_id)
    if client_id is not None:
        query = query.filter(Reservation.client_id == client_id)
    with read_scope(db):
        reservation = query.first()
    if not reservation:
        raise ReservationNotFound()
    return reservation


def reserve_slot(db: Session, client_id: int, slot_id: int,
                 policy: BookingPolicy = DEFAULT_POLICY, now: datetime = None) -> Reservation:
    """
    Place a hold on an available slot for a client.

    The reservation row is inserted and the slot is flipped from available to
    reserved with a conditional update in the same transaction. If another
    request reserved the slot first the update matches no row, the insert is
    rolled back and SlotUnavailable is raised.
    """
    now = as_utc(now or utc_now())
    try:
        with transaction(db):
            get_client(db, client_id)

            slot = get_slot(db, slot_id)
            if not slot:
                raise SlotUnavailable()

            if as_utc(slot.start_time) - now < policy.lead_time:
                hours = policy.lead_time.total_seconds() / 3600
                raise LeadTimeViolation(f"Reservations must be made at least {hours:g} hours in advance")

            if slot.status != SLOT_AVAILABLE:
                raise SlotUnavailable()

            reservation = Reservation(
                slot_id=slot.id,
                client_id=client_id,
                created_at=now,
                expires_at=now + policy.hold_duration
            )
            db.add(reservation)
            db.flush()

            if not try_transition(db, slot.id, SLOT_AVAILABLE, SLOT_RESERVED, reservation_id=reservation.id):
                raise SlotUnavailable()
    except (SlotUnavailable, LeadTimeViolation) as e:
        HOLDS_REJECTED.labels(reason=e.__class__.__name__).inc()
        logging.info(f"Hold on slot {slot_id} for client {client_id} rejected: {e.message}")
        raise

    HOLDS_CREATED.inc()
    logging.info(f"Slot {slot_id} reserved by client {client_id} until {reservation.expires_at}")
    return reservation


def confirm_reservation(db: Session, client_id: int, reservation_id: int,
                        policy: BookingPolicy = DEFAULT_POLICY, now: datetime = None) -> Reservation:
    """
    Turn a live hold into a booking.

    Confirming a reservation that is already confirmed returns it unchanged;
    ``confirmed_at`` keeps its first value. The slot row is updated before the
    reservation row, the same order the expiry sweep uses, so a sweep and a
    confirmation racing on one reservation serialize on the slot: whichever
    commits first wins and the other observes its result.
    """
    now = as_utc(now or utc_now())
    with transaction(db):
        get_client(db, client_id)
        reservation = get_reservation(db, reservation_id, client_id=client_id)

        if reservation.confirmed_at is not None:
            return reservation

        if as_utc(reservation.expires_at) <= now:
            raise ReservationExpired()

        if not try_transition(db, reservation.slot_id, SLOT_RESERVED, SLOT_CONFIRMED,
                              expected_reservation_id=reservation.id):
            # Either a sweep released it or a concurrent confirmation got there first
            db.expire(reservation)
            reservation = get_reservation(db, reservation_id, client_id=client_id)
            if reservation.confirmed_at is not None:
                return reservation
            raise ReservationNotFound()

        stamped = db.execute(
            update(Reservation)
            .where(
                Reservation.id == reservation.id,
                Reservation.confirmed_at.is_(None),
                Reservation.expires_at > now
            )
            .values(confirmed_at=now)
            .execution_options(synchronize_session=False)
        )
        if stamped.rowcount != 1:
            raise ReservationExpired()

    with read_scope(db):
        db.refresh(reservation)
    RESERVATIONS_CONFIRMED.inc()
    logging.info(f"Reservation {reservation_id} confirmed by client {client_id}")
    return reservation
