# policy.py
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class BookingPolicy:
    """Scheduling rules applied by every engine operation."""
    slot_duration: timedelta = timedelta(minutes=15)
    lead_time: timedelta = timedelta(hours=24)
    hold_duration: timedelta = timedelta(minutes=30)
    sweep_grace: timedelta = timedelta(0)

    def __post_init__(self):
        if self.slot_duration <= timedelta(0):
            raise ValueError("slot_duration must be positive")
        if self.hold_duration <= timedelta(0):
            raise ValueError("hold_duration must be positive")
        if self.lead_time < timedelta(0) or self.sweep_grace < timedelta(0):
            raise ValueError("lead_time and sweep_grace cannot be negative")

    @classmethod
    def from_env(cls) -> "BookingPolicy":
        return cls(
            slot_duration=timedelta(minutes=int(os.getenv('SLOT_DURATION_MINUTES', 15))),
            lead_time=timedelta(hours=int(os.getenv('LEAD_TIME_HOURS', 24))),
            hold_duration=timedelta(minutes=int(os.getenv('CONFIRMATION_GRACE_PERIOD_MINUTES', 30))),
            sweep_grace=timedelta(minutes=int(os.getenv('SWEEP_GRACE_PERIOD_MINUTES', 0))),
        )


DEFAULT_POLICY = BookingPolicy()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
