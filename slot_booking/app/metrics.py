# metrics.py
from prometheus_client import Counter

HOLDS_CREATED = Counter("slot_holds_created_total", "Reservations placed on available slots")
HOLDS_REJECTED = Counter("slot_holds_rejected_total", "Hold requests that failed", ["reason"])
RESERVATIONS_CONFIRMED = Counter("reservations_confirmed_total", "Reservations converted into bookings")
RESERVATIONS_RELEASED = Counter("reservations_released_total", "Expired reservations released by the sweep")
SWEEPS_SKIPPED = Counter("expiry_sweeps_skipped_total", "Sweeps skipped because another instance held the lock")
