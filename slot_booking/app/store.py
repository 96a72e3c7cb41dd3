# store.py
import logging
from contextlib import contextmanager
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from .errors import StorageError
from .models import Slot, SLOT_AVAILABLE, SLOT_RESERVED, SLOT_CONFIRMED

ALLOWED_TRANSITIONS = {
    (SLOT_AVAILABLE, SLOT_RESERVED),
    (SLOT_RESERVED, SLOT_CONFIRMED),
    (SLOT_RESERVED, SLOT_AVAILABLE),
}


@contextmanager
def transaction(db: Session):
    """
    Run a block as one unit of work on ``db``.

    Commits when the block exits normally and rolls back on any exception.
    Database errors are re-raised as StorageError so callers only deal with the
    engine's own exception types.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Transaction rolled back after storage failure: {str(e)}")
        raise StorageError(str(e)) from e
    except BaseException:
        db.rollback()
        raise


@contextmanager
def read_scope(db: Session):
    """
    Like ``transaction`` for lookups: nothing is committed, but database errors
    still surface as StorageError. Safe to nest inside ``transaction``.
    """
    try:
        yield db
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Read failed on storage error: {str(e)}")
        raise StorageError(str(e)) from e


def get_slot(db: Session, slot_id: int) -> Optional[Slot]:
    with read_scope(db):
        return db.get(Slot, slot_id)


def list_slots(db: Session, provider_id: int, statuses: Iterable[str] = None):
    query = db.query(Slot).filter(Slot.provider_id == provider_id)
    if statuses is not None:
        query = query.filter(Slot.status.in_(list(statuses)))
    with read_scope(db):
        return query.order_by(Slot.start_time.asc(), Slot.id.asc()).all()


def try_transition(db: Session, slot_id: int, from_status: str, to_status: str,
                   reservation_id: int = None, expected_reservation_id: int = None) -> bool:
    """
    Atomically move a slot from ``from_status`` to ``to_status``.

    Issues a single conditional UPDATE guarded by the current status (and the
    linked reservation when ``expected_reservation_id`` is given). Returns True
    only if exactly one row changed; a concurrent writer that got there first
    makes this return False instead of overwriting its result.
    """
    if (from_status, to_status) not in ALLOWED_TRANSITIONS:
        raise ValueError(f"Invalid slot transition {from_status} -> {to_status}")

    values = {"status": to_status}
    if to_status == SLOT_AVAILABLE:
        values["reservation_id"] = None
    elif from_status == SLOT_AVAILABLE:
        if reservation_id is None:
            raise ValueError("A reservation id is required to reserve a slot")
        values["reservation_id"] = reservation_id

    stmt = update(Slot).where(Slot.id == slot_id, Slot.status == from_status)
    if expected_reservation_id is not None:
        stmt = stmt.where(Slot.reservation_id == expected_reservation_id)
    result = db.execute(stmt.values(**values).execution_options(synchronize_session=False))

    cached = db.identity_map.get(identity_key(Slot, slot_id))
    if cached is not None:
        db.expire(cached)
    return result.rowcount == 1
