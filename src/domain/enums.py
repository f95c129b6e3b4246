"""Domain enumerations and state-transition rules."""

import enum
from typing import NamedTuple


class BookingStatus(str, enum.Enum):
    """Status values as persisted, legacy aliases included."""

    SCHEDULED = "SCHEDULED"
    ASSIGNED = "ASSIGNED"
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    COLLECTED = "COLLECTED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class CanonicalBookingStatus(str, enum.Enum):
    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COLLECTED = "COLLECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Older rows still carry these; everything else maps to its namesake.
LEGACY_STATUS_MAP: dict[BookingStatus, CanonicalBookingStatus] = {
    BookingStatus.SCHEDULED: CanonicalBookingStatus.CREATED,
    BookingStatus.PAID: CanonicalBookingStatus.COLLECTED,
}


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    DRIVER = "DRIVER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class BookingAction(str, enum.Enum):
    ASSIGN = "ASSIGN"
    START = "START"
    COLLECT = "COLLECT"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"
    REFUND = "REFUND"


class DriverStatus(str, enum.Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    ON_PICKUP = "ON_PICKUP"


class TransitionRule(NamedTuple):
    sources: frozenset[CanonicalBookingStatus]
    target: CanonicalBookingStatus


_S = CanonicalBookingStatus

# State machine: maps (actor role, action) -> allowed sources and target
BOOKING_TRANSITIONS: dict[tuple[UserRole, BookingAction], TransitionRule] = {
    (UserRole.ADMIN, BookingAction.ASSIGN): TransitionRule(
        frozenset({_S.CREATED}), _S.ASSIGNED
    ),
    (UserRole.ADMIN, BookingAction.COMPLETE): TransitionRule(
        frozenset({_S.COLLECTED}), _S.COMPLETED
    ),
    (UserRole.ADMIN, BookingAction.CANCEL): TransitionRule(
        frozenset({_S.CREATED, _S.ASSIGNED, _S.IN_PROGRESS, _S.COLLECTED}),
        _S.CANCELLED,
    ),
    (UserRole.ADMIN, BookingAction.REFUND): TransitionRule(
        frozenset({_S.CANCELLED}), _S.REFUNDED
    ),
    (UserRole.DRIVER, BookingAction.START): TransitionRule(
        frozenset({_S.ASSIGNED}), _S.IN_PROGRESS
    ),
    # Re-collecting corrects weight / amount without moving the status.
    (UserRole.DRIVER, BookingAction.COLLECT): TransitionRule(
        frozenset({_S.IN_PROGRESS, _S.COLLECTED}), _S.COLLECTED
    ),
    (UserRole.DRIVER, BookingAction.CANCEL): TransitionRule(
        frozenset({_S.ASSIGNED, _S.IN_PROGRESS, _S.COLLECTED}), _S.CANCELLED
    ),
}

TERMINAL_STATUSES: frozenset[CanonicalBookingStatus] = frozenset(
    status
    for status in CanonicalBookingStatus
    if not any(status in rule.sources for rule in BOOKING_TRANSITIONS.values())
)

# Bookings in these states can no longer take a driver.
CLOSED_STATUSES: frozenset[CanonicalBookingStatus] = frozenset(
    {_S.COMPLETED, _S.CANCELLED, _S.REFUNDED}
)
