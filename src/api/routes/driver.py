"""
Driver endpoints
================

GET   /api/v1/driver/bookings                 -- bookings assigned to me
GET   /api/v1/driver/bookings/{id}            -- one assigned booking
PATCH /api/v1/driver/bookings/{id}/start      -- ASSIGNED -> IN_PROGRESS
PATCH /api/v1/driver/bookings/{id}/collect    -- IN_PROGRESS | COLLECTED -> COLLECTED
PATCH /api/v1/driver/bookings/{id}/cancel     -- ASSIGNED .. COLLECTED -> CANCELLED
PATCH /api/v1/driver/bookings/{id}/update     -- status-form variant of the above
PATCH /api/v1/driver/status                   -- go ONLINE / OFFLINE
"""

from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_driver
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    BookingResponse,
    CancelBookingRequest,
    CollectBookingRequest,
    DriverBookingUpdateRequest,
    DriverResponse,
    DriverStatusUpdateRequest,
)
from src.core.exceptions import AuthorizationError, BadRequestError, NotFoundError
from src.domain.booking_status import is_legacy_booking_status
from src.domain.enums import BookingAction, BookingStatus, DriverStatus
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import BookingRepository, DriverRepository
from src.services.booking_actions import ActionInput, Actor, apply_booking_action

router = APIRouter(prefix="/driver", tags=["driver"])

MANUAL_DRIVER_STATUSES = {DriverStatus.ONLINE, DriverStatus.OFFLINE}


@router.get("/bookings", response_model=list[BookingResponse])
@limiter.limit(RATE_LIMIT)
async def list_assigned_bookings(
    request: Request,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    bookings = await BookingRepository(db).list_for_driver(actor.id)
    return [BookingResponse.from_model(b, actor.role) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def get_assigned_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).get_by_id(booking_id)
    if booking is None:
        raise NotFoundError("Booking")
    if booking.driver_id != actor.id:
        raise AuthorizationError("Booking is not assigned to this driver")
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/bookings/{booking_id}/start", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def start_pickup(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    booking = await apply_booking_action(
        db, redis, booking_id=booking_id, action=BookingAction.START, actor=actor
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/bookings/{booking_id}/collect", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def collect_booking(
    request: Request,
    booking_id: int,
    body: CollectBookingRequest,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    booking = await apply_booking_action(
        db,
        redis,
        booking_id=booking_id,
        action=BookingAction.COLLECT,
        actor=actor,
        data=ActionInput(
            weight_kg=body.weight_kg, waste_category_id=body.waste_category_id
        ),
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def cancel_booking(
    request: Request,
    booking_id: int,
    body: Optional[CancelBookingRequest] = None,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    booking = await apply_booking_action(
        db,
        redis,
        booking_id=booking_id,
        action=BookingAction.CANCEL,
        actor=actor,
        data=ActionInput(reason=body.reason if body else None),
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch(
    "/bookings/{booking_id}/update",
    response_model=BookingResponse,
    summary="Update a booking through a target status",
)
@limiter.limit(RATE_LIMIT)
async def update_booking(
    request: Request,
    booking_id: int,
    body: DriverBookingUpdateRequest,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    if body.status is not None and is_legacy_booking_status(body.status):
        raise BadRequestError(f"Legacy status {body.status.value} is not allowed.")
    if body.status == BookingStatus.COMPLETED:
        raise BadRequestError("Driver cannot mark bookings as completed.")

    action: Optional[BookingAction] = None
    data = ActionInput()
    if body.status == BookingStatus.IN_PROGRESS:
        action = BookingAction.START
    elif body.status == BookingStatus.CANCELLED:
        action = BookingAction.CANCEL
    elif body.status == BookingStatus.COLLECTED or (
        body.status is None and body.actual_weight_kg is not None
    ):
        if body.actual_weight_kg is None:
            raise BadRequestError(
                "Weight (kg) is required when marking a booking as collected."
            )
        action = BookingAction.COLLECT
        data = ActionInput(
            weight_kg=body.actual_weight_kg, waste_category_id=body.waste_category_id
        )

    if action is None:
        raise BadRequestError("Use start, collect, or cancel actions to update bookings.")

    booking = await apply_booking_action(
        db, redis, booking_id=booking_id, action=action, actor=actor, data=data
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/status", response_model=DriverResponse, summary="Set availability")
@limiter.limit(RATE_LIMIT)
async def update_driver_status(
    request: Request,
    body: DriverStatusUpdateRequest,
    actor: Actor = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    if body.status not in MANUAL_DRIVER_STATUSES:
        raise BadRequestError("Driver status can only be ONLINE or OFFLINE")
    driver = await DriverRepository(db).get_by_id(actor.id)
    if driver is None:
        raise NotFoundError("Driver")
    driver.status = body.status.value
    await db.flush()
    return DriverResponse.model_validate(driver)
