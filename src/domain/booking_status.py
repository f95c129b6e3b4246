"""
Booking status model
====================

Raw statuses read from storage are canonicalised here before any decision
is taken on them.  Labels, completion checks and the role-gated transition
predicates all go through :func:`normalize_booking_status`, and the
predicates are derived from the single ``BOOKING_TRANSITIONS`` table so the
validation path and the UI affordances cannot drift apart.
"""

from __future__ import annotations

from typing import Optional, Union

from .enums import (
    BOOKING_TRANSITIONS,
    LEGACY_STATUS_MAP,
    TERMINAL_STATUSES,
    BookingAction,
    BookingStatus,
    CanonicalBookingStatus,
    UserRole,
)

RawStatus = Union[BookingStatus, str]


class UnknownBookingStatus(ValueError):
    """Raised when a stored status is outside the known raw enumeration."""

    def __init__(self, value: object):
        super().__init__(f"Unknown booking status: {value!r}")
        self.value = value


class InvalidStateTransition(Exception):
    """Raised when an actor may not perform an action in the current status."""

    def __init__(
        self,
        current: CanonicalBookingStatus,
        role: UserRole,
        action: BookingAction,
    ):
        rule = BOOKING_TRANSITIONS.get((role, action))
        if rule is None:
            message = f"{role.value} cannot {action.value.lower()} bookings."
        else:
            message = (
                f"Invalid status transition from {current.value} "
                f"to {rule.target.value}."
            )
        super().__init__(message)
        self.current = current
        self.role = role
        self.action = action


CUSTOMER_LABELS: dict[CanonicalBookingStatus, str] = {
    CanonicalBookingStatus.CREATED: "Scheduled",
    CanonicalBookingStatus.ASSIGNED: "Scheduled",
    CanonicalBookingStatus.IN_PROGRESS: "In Progress",
    CanonicalBookingStatus.COLLECTED: "Payment Due",
    CanonicalBookingStatus.COMPLETED: "Completed",
    CanonicalBookingStatus.CANCELLED: "Cancelled",
    CanonicalBookingStatus.REFUNDED: "Refunded",
}

INTERNAL_LABELS: dict[CanonicalBookingStatus, str] = {
    CanonicalBookingStatus.CREATED: "Created",
    CanonicalBookingStatus.ASSIGNED: "Assigned",
    CanonicalBookingStatus.IN_PROGRESS: "In Progress",
    CanonicalBookingStatus.COLLECTED: "Collected",
    CanonicalBookingStatus.COMPLETED: "Completed",
    CanonicalBookingStatus.CANCELLED: "Cancelled",
    CanonicalBookingStatus.REFUNDED: "Refunded",
}


# ── Normalisation ─────────────────────────────────────────────────────


def parse_booking_status(status: RawStatus) -> BookingStatus:
    if isinstance(status, BookingStatus):
        return status
    try:
        return BookingStatus(status)
    except ValueError:
        raise UnknownBookingStatus(status) from None


def normalize_booking_status(status: RawStatus) -> CanonicalBookingStatus:
    """Map a raw (possibly legacy) status onto its canonical lifecycle state."""
    raw = parse_booking_status(status)
    return LEGACY_STATUS_MAP.get(raw) or CanonicalBookingStatus(raw.value)


def is_legacy_booking_status(status: RawStatus) -> bool:
    return parse_booking_status(status) in LEGACY_STATUS_MAP


def is_booking_completed(status: RawStatus) -> bool:
    return normalize_booking_status(status) == CanonicalBookingStatus.COMPLETED


def is_payment_due(status: RawStatus) -> bool:
    return normalize_booking_status(status) == CanonicalBookingStatus.COLLECTED


def is_terminal_status(status: RawStatus) -> bool:
    return normalize_booking_status(status) in TERMINAL_STATUSES


def expand_status_filter(status: CanonicalBookingStatus) -> list[BookingStatus]:
    """Every raw value that reads back as *status*, for storage-level filters."""
    return [raw for raw in BookingStatus if normalize_booking_status(raw) == status]


def booking_status_label(
    status: RawStatus, viewer_role: Optional[UserRole] = None
) -> str:
    normalized = normalize_booking_status(status)
    if viewer_role == UserRole.CUSTOMER:
        return CUSTOMER_LABELS[normalized]
    return INTERNAL_LABELS[normalized]


# ── Transitions ───────────────────────────────────────────────────────


def acting_role(role: UserRole) -> UserRole:
    """Super admins act with admin transition rights."""
    if role == UserRole.SUPER_ADMIN:
        return UserRole.ADMIN
    return role


def can_perform(status: RawStatus, role: UserRole, action: BookingAction) -> bool:
    rule = BOOKING_TRANSITIONS.get((acting_role(role), action))
    if rule is None:
        return False
    return normalize_booking_status(status) in rule.sources


def next_status(
    status: RawStatus, role: UserRole, action: BookingAction
) -> CanonicalBookingStatus:
    """Target status of *action*, or raise ``InvalidStateTransition``."""
    current = normalize_booking_status(status)
    role = acting_role(role)
    if not can_perform(current, role, action):
        raise InvalidStateTransition(current, role, action)
    return BOOKING_TRANSITIONS[(role, action)].target


def transition_error(
    status: RawStatus, role: UserRole, action: BookingAction
) -> Optional[str]:
    try:
        next_status(status, role, action)
    except InvalidStateTransition as exc:
        return str(exc)
    return None


def allowed_actions(status: RawStatus, role: UserRole) -> list[BookingAction]:
    """Actions *role* may take right now; drives which buttons a client shows."""
    return [action for action in BookingAction if can_perform(status, role, action)]


def can_admin_assign(status: RawStatus) -> bool:
    return can_perform(status, UserRole.ADMIN, BookingAction.ASSIGN)


def can_admin_complete(status: RawStatus) -> bool:
    return can_perform(status, UserRole.ADMIN, BookingAction.COMPLETE)


def can_admin_cancel(status: RawStatus) -> bool:
    return can_perform(status, UserRole.ADMIN, BookingAction.CANCEL)


def can_admin_refund(status: RawStatus) -> bool:
    return can_perform(status, UserRole.ADMIN, BookingAction.REFUND)


def can_driver_start(status: RawStatus) -> bool:
    return can_perform(status, UserRole.DRIVER, BookingAction.START)


def can_driver_collect(status: RawStatus) -> bool:
    return can_perform(status, UserRole.DRIVER, BookingAction.COLLECT)


def can_driver_cancel(status: RawStatus) -> bool:
    return can_perform(status, UserRole.DRIVER, BookingAction.CANCEL)
