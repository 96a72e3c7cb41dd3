# reconciler.py
import logging
from datetime import datetime

from sqlalchemy import delete

from .errors import StorageError
from .locks import NullSweepLock, SweepLock
from .metrics import RESERVATIONS_RELEASED, SWEEPS_SKIPPED
from .models import Reservation, SLOT_AVAILABLE, SLOT_RESERVED
from .policy import BookingPolicy, DEFAULT_POLICY, utc_now
from .store import transaction, try_transition
from .utils import as_utc


def find_expired_reservations(db, cutoff: datetime):
    return db.query(Reservation.id, Reservation.slot_id).filter(
        Reservation.confirmed_at.is_(None),
        Reservation.expires_at < cutoff
    ).order_by(Reservation.expires_at.asc()).all()


def release_reservation(db, reservation_id: int, slot_id: int, cutoff: datetime) -> bool:
    """
    Give an expired hold's slot back to the pool and delete the hold.

    Both writes happen in one transaction. Returns False, with nothing changed,
    when the reservation was confirmed or already released in the meantime.
    """
    with transaction(db):
        if not try_transition(db, slot_id, SLOT_RESERVED, SLOT_AVAILABLE,
                              expected_reservation_id=reservation_id):
            return False

        deleted = db.execute(
            delete(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.confirmed_at.is_(None),
                Reservation.expires_at < cutoff
            )
            .execution_options(synchronize_session=False)
        )
        if deleted.rowcount != 1:
            db.rollback()
            return False
    return True


def expire_stale_reservations(session_factory, policy: BookingPolicy = DEFAULT_POLICY,
                              now: datetime = None, lock: SweepLock = None) -> int:
    """
    Release every unconfirmed reservation that expired before the cutoff.

    Each reservation is released in its own session and transaction, so a
    storage failure on one of them is logged and the sweep moves on. Running it
    again right away releases nothing.

    :param session_factory: Callable returning a new Session (e.g. SessionLocal).
    :param lock: Held for the whole sweep; if it cannot be acquired the sweep is skipped.
    :return: Number of reservations released.
    """
    now = as_utc(now or utc_now())
    cutoff = now - policy.sweep_grace
    lock = lock or NullSweepLock()

    if not lock.acquire():
        SWEEPS_SKIPPED.inc()
        logging.info("Expiry sweep skipped because another process is running.")
        return 0

    try:
        db = session_factory()
        try:
            with transaction(db):
                expired = find_expired_reservations(db, cutoff)
        finally:
            db.close()

        released = 0
        for reservation_id, slot_id in expired:
            db = session_factory()
            try:
                if release_reservation(db, reservation_id, slot_id, cutoff):
                    released += 1
                    logging.info(f"Reservation {reservation_id} expired, slot {slot_id} is {SLOT_AVAILABLE} again")
            except StorageError as e:
                logging.error(f"Failed to release reservation {reservation_id}: {e.message}")
            finally:
                db.close()

        RESERVATIONS_RELEASED.inc(released)
        logging.info(f"Expiry sweep released {released} of {len(expired)} expired reservations")
        return released
    finally:
        lock.release()
