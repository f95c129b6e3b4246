"""
Booking status writes
=====================

The only code path that changes ``bookings.status``.  Admin and driver
endpoints call :func:`apply_booking_action`, which

1. takes the per-booking Redis lock (409 if another write holds it),
2. re-reads the booking row ``FOR UPDATE``,
3. plans the change from the transition table against that persisted
   status (400 on refusal, nothing written),
4. applies the action's side effects and the canonical target status,
5. records history when the status actually moved, then commits before
   the lock is released.

The admin edit form goes through :func:`update_booking_as_admin`, which runs
the optional status action, a driver swap and weight / amount corrections
under the same lock and commits them together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core.exceptions import (
    AuthorizationError,
    BadRequestError,
    BookingLocked,
    InvalidBookingTransition,
    NotFoundError,
)
from src.domain.booking_status import (
    InvalidStateTransition,
    acting_role,
    normalize_booking_status,
)
from src.domain.entities import StatusChange, plan_status_change
from src.domain.enums import CLOSED_STATUSES, BookingAction, DriverStatus, UserRole
from src.domain.pricing import calculate_midpoint_amount_lkr
from src.infrastructure.locks import DistributedLock, LockNotAcquired
from src.infrastructure.models import BookingModel, DriverModel
from src.infrastructure.repositories import (
    BookingRepository,
    DriverRepository,
    PricingRepository,
    StatusHistoryRepository,
    WasteCategoryRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Caller identity as forwarded by the upstream gateway."""

    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return acting_role(self.role) == UserRole.ADMIN


@dataclass
class ActionInput:
    driver_id: Optional[int] = None
    weight_kg: Optional[float] = None
    final_amount_lkr: Optional[float] = None
    waste_category_id: Optional[int] = None
    reason: Optional[str] = None


@asynccontextmanager
async def locked_booking(
    db: AsyncSession, redis: aioredis.Redis, booking_id: int
) -> AsyncIterator[BookingModel]:
    """Hold the Redis lock and the row lock; commit on clean exit."""
    lock = DistributedLock.for_booking(
        redis, booking_id, ttl_seconds=settings.transition_lock_ttl_seconds
    )
    try:
        async with lock:
            booking = await BookingRepository(db).get_for_update(booking_id)
            if booking is None:
                raise NotFoundError("Booking")
            try:
                yield booking
                await db.flush()
                await db.commit()
                await db.refresh(booking)
            except Exception:
                await db.rollback()
                raise
    except LockNotAcquired:
        logger.info("booking.locked booking=%s", booking_id)
        raise BookingLocked(booking_id) from None


async def apply_booking_action(
    db: AsyncSession,
    redis: aioredis.Redis,
    *,
    booking_id: int,
    action: BookingAction,
    actor: Actor,
    data: ActionInput | None = None,
) -> BookingModel:
    event = f"booking.{action.value.lower()}"
    logger.info(
        "%s.start booking=%s actor=%s role=%s",
        event, booking_id, actor.id, actor.role.value,
    )

    async with locked_booking(db, redis, booking_id) as booking:
        change = await _perform_action(db, booking, action, actor, data or ActionInput())

    logger.info(
        "%s.success booking=%s from=%s to=%s",
        event, booking_id, change.from_status.value, change.to_status.value,
    )
    return booking


async def update_booking_as_admin(
    db: AsyncSession,
    redis: aioredis.Redis,
    *,
    booking_id: int,
    actor: Actor,
    action: Optional[BookingAction] = None,
    driver_id: Optional[int] = None,
    weight_kg: Optional[float] = None,
    final_amount_lkr: Optional[float] = None,
) -> BookingModel:
    """Status action, driver swap and amount fix-up in one locked commit.

    Any refusal rolls back the whole request, so a status change is never
    kept when the driver or amount part of the same body is rejected.
    """
    if not actor.is_admin:
        raise AuthorizationError("Only admins can update bookings")
    amounts_given = weight_kg is not None or final_amount_lkr is not None
    logger.info(
        "booking.admin_update.start booking=%s actor=%s action=%s driver=%s",
        booking_id, actor.id, action.value if action else None, driver_id,
    )

    async with locked_booking(db, redis, booking_id) as booking:
        if action is not None:
            await _perform_action(
                db,
                booking,
                action,
                actor,
                ActionInput(
                    driver_id=driver_id,
                    weight_kg=weight_kg,
                    final_amount_lkr=final_amount_lkr,
                ),
            )
        if driver_id is not None and driver_id != booking.driver_id:
            if _is_closed(booking):
                raise BadRequestError("Cannot assign a driver to a closed booking")
            await _require_approved_driver(db, driver_id)
            booking.driver_id = driver_id
        # COMPLETE already settled the amounts it was given.
        if amounts_given and action != BookingAction.COMPLETE:
            if _is_closed(booking):
                raise BadRequestError("Cannot change amounts on a closed booking")
            await _apply_amounts(db, booking, weight_kg, final_amount_lkr)

    logger.info(
        "booking.admin_update.success booking=%s status=%s driver=%s amount=%s",
        booking_id, booking.status, booking.driver_id, booking.final_amount_lkr,
    )
    return booking


async def _perform_action(
    db: AsyncSession,
    booking: BookingModel,
    action: BookingAction,
    actor: Actor,
    data: ActionInput,
) -> StatusChange:
    """Check, apply side effects, write the canonical status and history."""
    if actor.role == UserRole.DRIVER and booking.driver_id != actor.id:
        raise AuthorizationError("Booking is not assigned to this driver")

    try:
        change = plan_status_change(booking.status, actor.role, action)
    except InvalidStateTransition as exc:
        logger.info(
            "booking.%s.refused booking=%s status=%s reason=%s",
            action.value.lower(), booking.id, booking.status, exc,
        )
        raise InvalidBookingTransition(str(exc)) from exc

    await _ACTION_HANDLERS[action](db, booking, change, actor, data)

    booking.status = change.to_status.value
    if change.changed:
        await StatusHistoryRepository(db).record(booking.id, change, actor.id)
    return change


# ── Action side effects ───────────────────────────────────────────────


def _is_closed(booking: BookingModel) -> bool:
    return normalize_booking_status(booking.status) in CLOSED_STATUSES


async def _require_approved_driver(db: AsyncSession, driver_id: int) -> DriverModel:
    driver = await DriverRepository(db).get_by_id(driver_id)
    if driver is None:
        raise BadRequestError("Driver not found")
    if not driver.approved:
        raise BadRequestError("Driver must be approved before assignment")
    return driver


async def _set_driver_status(
    db: AsyncSession, driver_id: Optional[int], status: DriverStatus, *, pickups: int = 0
) -> None:
    if driver_id is None:
        return
    driver = await DriverRepository(db).get_by_id(driver_id)
    if driver is None:
        return
    driver.status = status.value
    driver.pickup_count = (driver.pickup_count or 0) + pickups


async def _apply_amounts(
    db: AsyncSession,
    booking: BookingModel,
    weight_kg: Optional[float],
    final_amount_lkr: Optional[float],
) -> None:
    if weight_kg is not None:
        booking.actual_weight_kg = weight_kg
    if final_amount_lkr is not None:
        booking.final_amount_lkr = final_amount_lkr
    elif weight_kg is not None:
        pricing = await PricingRepository(db).get_for_category(booking.waste_category_id)
        amount = calculate_midpoint_amount_lkr(weight_kg, pricing)
        if amount is not None:
            booking.final_amount_lkr = amount


async def _on_assign(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    if data.driver_id is None:
        raise BadRequestError("A driver is required to assign a booking")
    await _require_approved_driver(db, data.driver_id)
    booking.driver_id = data.driver_id


async def _on_start(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    await _set_driver_status(db, booking.driver_id, DriverStatus.ON_PICKUP)


async def _on_collect(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    if data.weight_kg is None:
        raise BadRequestError(
            "Weight (kg) is required when marking a booking as collected."
        )
    category_id = data.waste_category_id or booking.waste_category_id
    if category_id != booking.waste_category_id:
        if await WasteCategoryRepository(db).get_by_id(category_id) is None:
            raise BadRequestError("Waste category not found")

    pricing = await PricingRepository(db).get_for_category(category_id)
    amount = calculate_midpoint_amount_lkr(data.weight_kg, pricing)
    if amount is None:
        raise BadRequestError("Pricing is not configured for this waste category.")

    booking.actual_weight_kg = data.weight_kg
    booking.final_amount_lkr = amount
    booking.waste_category_id = category_id
    if change.changed:
        await _set_driver_status(db, booking.driver_id, DriverStatus.ONLINE, pickups=1)


async def _on_complete(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    if booking.driver_id is None:
        raise BadRequestError("Assign a driver before advancing this booking")
    await _apply_amounts(db, booking, data.weight_kg, data.final_amount_lkr)
    if booking.actual_weight_kg is None or booking.final_amount_lkr is None:
        raise BadRequestError("Cannot complete a booking without weight and amount.")
    if booking.confirmed_at is None:
        booking.confirmed_at = datetime.now(timezone.utc)


async def _on_cancel(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    reason = (data.reason or "").strip()
    if reason:
        booking.cancel_reason = reason
    if actor.role == UserRole.DRIVER:
        await _set_driver_status(db, booking.driver_id, DriverStatus.ONLINE)


async def _on_refund(db, booking, change: StatusChange, actor: Actor, data: ActionInput) -> None:
    # Money movement happens outside this service.
    return None


_ACTION_HANDLERS = {
    BookingAction.ASSIGN: _on_assign,
    BookingAction.START: _on_start,
    BookingAction.COLLECT: _on_collect,
    BookingAction.COMPLETE: _on_complete,
    BookingAction.CANCEL: _on_cancel,
    BookingAction.REFUND: _on_refund,
}
