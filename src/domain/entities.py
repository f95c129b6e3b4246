"""
Domain value objects for booking status writes.

A ``StatusChange`` is planned from the *persisted* status before anything
is written; the write path applies ``to_status`` and only records history
when ``changed`` is true (re-collecting a collected booking is a no-op for
the lifecycle).
"""

from __future__ import annotations

from dataclasses import dataclass

from .booking_status import RawStatus, acting_role, next_status, normalize_booking_status
from .enums import BookingAction, CanonicalBookingStatus, UserRole


@dataclass(frozen=True)
class StatusChange:
    from_status: CanonicalBookingStatus
    to_status: CanonicalBookingStatus
    action: BookingAction
    role: UserRole

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


def plan_status_change(
    status: RawStatus, role: UserRole, action: BookingAction
) -> StatusChange:
    """Raise ``InvalidStateTransition`` if *role* may not *action* now."""
    return StatusChange(
        from_status=normalize_booking_status(status),
        to_status=next_status(status, role, action),
        action=action,
        role=acting_role(role),
    )
