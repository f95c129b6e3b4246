"""
Admin / operations endpoints
============================

GET   /api/v1/admin/bookings                    -- all bookings, status filter
PATCH /api/v1/admin/bookings/{id}/assign        -- CREATED -> ASSIGNED
PATCH /api/v1/admin/bookings/{id}/complete      -- COLLECTED -> COMPLETED
PATCH /api/v1/admin/bookings/{id}/cancel        -- open booking -> CANCELLED
PATCH /api/v1/admin/bookings/{id}/refund        -- CANCELLED -> REFUNDED
PATCH /api/v1/admin/bookings/{id}               -- status / driver / amount form
GET   /api/v1/admin/bookings/{id}/history       -- status history
GET   /api/v1/admin/metrics                     -- dashboard counters
GET   /api/v1/admin/pricing                     -- pricing bands
PUT   /api/v1/admin/pricing/{waste_category_id} -- create / replace a band
GET   /api/v1/admin/health                      -- simple health check
"""

import logging
from collections import Counter
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    AdminBookingUpdateRequest,
    AssignDriverRequest,
    BookingPage,
    BookingResponse,
    CancelBookingRequest,
    CompleteBookingRequest,
    HealthResponse,
    MetricsResponse,
    PricingResponse,
    PricingUpdateRequest,
    StatusHistoryResponse,
)
from src.config import settings
from src.core.exceptions import BadRequestError, NotFoundError
from src.domain.booking_status import (
    is_booking_completed,
    is_legacy_booking_status,
    normalize_booking_status,
)
from src.domain.enums import (
    BOOKING_TRANSITIONS,
    BookingAction,
    CanonicalBookingStatus,
    UserRole,
)
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import (
    BookingRepository,
    PricingRepository,
    StatusHistoryRepository,
    WasteCategoryRepository,
)
from src.services.booking_actions import (
    ActionInput,
    Actor,
    apply_booking_action,
    update_booking_as_admin,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Target status -> admin action whose rule lands there.
_ADMIN_ACTION_BY_TARGET: dict[CanonicalBookingStatus, BookingAction] = {
    rule.target: action
    for (role, action), rule in BOOKING_TRANSITIONS.items()
    if role == UserRole.ADMIN
}


@router.get("/bookings", response_model=BookingPage)
@limiter.limit(RATE_LIMIT)
async def list_bookings(
    request: Request,
    status: Optional[CanonicalBookingStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await BookingRepository(db).list_bookings(
        status=status, page=page, page_size=page_size
    )
    return BookingPage(
        items=[BookingResponse.from_model(b, actor.role) for b in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/bookings/{booking_id}/assign", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def assign_driver(
    request: Request,
    booking_id: int,
    body: AssignDriverRequest,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    booking = await apply_booking_action(
        db,
        redis,
        booking_id=booking_id,
        action=BookingAction.ASSIGN,
        actor=actor,
        data=ActionInput(driver_id=body.driver_id),
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/bookings/{booking_id}/complete", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def complete_booking(
    request: Request,
    booking_id: int,
    body: Optional[CompleteBookingRequest] = None,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    data = ActionInput()
    if body is not None:
        data = ActionInput(
            weight_kg=body.actual_weight_kg, final_amount_lkr=body.final_amount_lkr
        )
    booking = await apply_booking_action(
        db,
        redis,
        booking_id=booking_id,
        action=BookingAction.COMPLETE,
        actor=actor,
        data=data,
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def cancel_booking(
    request: Request,
    booking_id: int,
    body: Optional[CancelBookingRequest] = None,
    actor: Actor = Depends(require_admin),
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


@router.patch("/bookings/{booking_id}/refund", response_model=BookingResponse)
@limiter.limit(RATE_LIMIT)
async def refund_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    booking = await apply_booking_action(
        db, redis, booking_id=booking_id, action=BookingAction.REFUND, actor=actor
    )
    return BookingResponse.from_model(booking, actor.role)


@router.patch(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    summary="Update a booking through a target status, driver or amounts",
)
@limiter.limit(RATE_LIMIT)
async def update_booking(
    request: Request,
    booking_id: int,
    body: AdminBookingUpdateRequest,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    if body.status is not None and is_legacy_booking_status(body.status):
        raise BadRequestError(f"Legacy status {body.status.value} is not allowed.")

    existing = await BookingRepository(db).get_by_id(booking_id)
    if existing is None:
        raise NotFoundError("Booking")
    current = normalize_booking_status(existing.status)

    action: Optional[BookingAction] = None
    if body.status is not None:
        target = normalize_booking_status(body.status)
        if target != current:
            action = _ADMIN_ACTION_BY_TARGET.get(target)
            if action is None:
                raise BadRequestError(
                    f"Admins cannot move bookings to {target.value}."
                )
    elif body.driver_id is not None and current == CanonicalBookingStatus.CREATED:
        action = BookingAction.ASSIGN

    booking = await update_booking_as_admin(
        db,
        redis,
        booking_id=booking_id,
        actor=actor,
        action=action,
        driver_id=body.driver_id,
        weight_kg=body.actual_weight_kg,
        final_amount_lkr=body.final_amount_lkr,
    )
    return BookingResponse.from_model(booking, actor.role)


@router.get(
    "/bookings/{booking_id}/history", response_model=list[StatusHistoryResponse]
)
@limiter.limit(RATE_LIMIT)
async def booking_history(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await BookingRepository(db).get_by_id(booking_id) is None:
        raise NotFoundError("Booking")
    return await StatusHistoryRepository(db).for_booking(booking_id)


@router.get("/metrics", response_model=MetricsResponse, summary="Dashboard counters")
@limiter.limit(RATE_LIMIT)
async def metrics(
    request: Request,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = BookingRepository(db)
    counts = await repo.count_by_raw_status()
    amounts = await repo.amount_by_raw_status()

    by_status: Counter[CanonicalBookingStatus] = Counter(
        {status: 0 for status in CanonicalBookingStatus}
    )
    for raw, count in counts.items():
        by_status[normalize_booking_status(raw)] += count

    revenue = sum(
        total for raw, total in amounts.items() if is_booking_completed(raw)
    )
    return MetricsResponse(
        total_bookings=sum(counts.values()),
        completed_bookings=by_status[CanonicalBookingStatus.COMPLETED],
        payment_due_bookings=by_status[CanonicalBookingStatus.COLLECTED],
        cancelled_bookings=by_status[CanonicalBookingStatus.CANCELLED],
        completed_revenue_lkr=round(revenue, 2),
        by_status=dict(by_status),
    )


@router.get("/pricing", response_model=list[PricingResponse])
@limiter.limit(RATE_LIMIT)
async def list_pricing(
    request: Request,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await PricingRepository(db).list_all()


@router.put("/pricing/{waste_category_id}", response_model=PricingResponse)
@limiter.limit(RATE_LIMIT)
async def upsert_pricing(
    request: Request,
    waste_category_id: int,
    body: PricingUpdateRequest,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await WasteCategoryRepository(db).get_by_id(waste_category_id) is None:
        raise NotFoundError("Waste category")
    pricing = await PricingRepository(db).upsert(
        waste_category_id,
        min_price_lkr_per_kg=body.min_price_lkr_per_kg,
        max_price_lkr_per_kg=body.max_price_lkr_per_kg,
        is_active=body.is_active,
    )
    logger.info(
        "pricing.update.success category=%s min=%s max=%s",
        waste_category_id, body.min_price_lkr_per_kg, body.max_price_lkr_per_kg,
    )
    return pricing


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
