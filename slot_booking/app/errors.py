# errors.py
"""
Typed failures raised by the booking engine.

Every engine operation either succeeds or raises one of these after rolling
back its transaction. ``kind`` names the branch of the taxonomy so callers
(the HTTP layer, the CLI) can map a failure without knowing every subclass.
"""


class SchedulingError(Exception):
    kind = "scheduling_error"

    def __init__(self, message: str = None):
        self.message = message or self.__doc__ or self.kind
        super().__init__(self.message)


class NotFound(SchedulingError):
    kind = "not_found"


class InvalidInput(SchedulingError):
    kind = "invalid_input"


class ConflictingState(SchedulingError):
    kind = "conflicting_state"


class PolicyViolation(SchedulingError):
    kind = "policy_violation"


class StorageError(SchedulingError):
    """Storage layer failure"""
    kind = "storage_error"


class ProviderNotFound(NotFound):
    """Provider not found"""


class ClientNotFound(NotFound):
    """Client not found"""


class ReservationNotFound(NotFound):
    """Reservation not found"""


class InvalidRange(InvalidInput):
    """Start time must be before end time"""


class SlotUnavailable(ConflictingState):
    """Slot not available or does not exist"""


class ReservationExpired(ConflictingState):
    """Reservation has expired"""


class DuplicateClient(ConflictingState):
    """Client with this email already exists"""


class HasDependents(ConflictingState):
    """Record still has active bookings"""


class LeadTimeViolation(PolicyViolation):
    """Reservations must be made at least 24 hours in advance"""
