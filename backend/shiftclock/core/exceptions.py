class ShiftClockError(Exception):
    """Base class for every error raised by the shift core."""


class DomainError(ShiftClockError):
    """A punch operation that violates the shift lifecycle."""


class AlreadyOpenError(DomainError):
    """The owner already has an open shift."""


class NoOpenShiftError(DomainError):
    """There is no open shift to act on."""


class AlreadyClosedError(DomainError):
    """The shift was punched out already."""


class RecordOwnershipError(DomainError):
    """The record belongs to another owner."""


class InvalidPunchOutError(DomainError):
    """Punch-out would not be strictly after punch-in."""


class ConcurrentModificationError(ShiftClockError):
    """A conditional write kept losing against concurrent writers."""


class DuplicateRecordError(ShiftClockError):
    """Insert rejected by a uniqueness constraint."""


class StoreUnavailableError(ShiftClockError):
    """The backing persistence cannot be reached or timed out."""


class NotifierError(ShiftClockError):
    """A notification could not be delivered."""
