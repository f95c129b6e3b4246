"""
Customer booking endpoints
==========================

POST /api/v1/bookings            -- book a pickup (one booking per item)
GET  /api/v1/bookings            -- own bookings, optional status filter
GET  /api/v1/bookings/{id}       -- one booking with customer-facing label

Customers never write the status after creation; status moves only through
the admin and driver endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_booking_viewer, require_customer
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import BookingCreateRequest, BookingPage, BookingResponse
from src.config import settings
from src.core.exceptions import AuthorizationError, BadRequestError, NotFoundError
from src.domain.enums import CanonicalBookingStatus
from src.domain.pricing import band_from_pricing
from src.infrastructure.repositories import (
    BookingRepository,
    PricingRepository,
    WasteCategoryRepository,
)
from src.services.booking_actions import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=list[BookingResponse],
    summary="Book a pickup",
)
@limiter.limit(RATE_LIMIT)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    actor: Actor = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    categories = WasteCategoryRepository(db)
    pricing_repo = PricingRepository(db)
    repo = BookingRepository(db)

    created = []
    for item in body.items:
        category = await categories.get_by_id(item.waste_category_id)
        if category is None or not category.is_active:
            raise BadRequestError(
                f"Waste category {item.waste_category_id} is not available"
            )
        band = band_from_pricing(
            await pricing_repo.get_for_category(item.waste_category_id)
        )
        estimate_min, estimate_max = band.estimate(item.quantity_kg) if band else (0.0, 0.0)

        booking = await repo.create_booking(
            user_id=actor.id,
            waste_category_id=item.waste_category_id,
            address_line1=body.address_line1,
            city=body.city,
            postal_code=body.postal_code,
            phone=body.phone,
            special_instructions=body.special_instructions,
            scheduled_date=body.scheduled_date,
            scheduled_time_slot=body.scheduled_time_slot,
            lat=body.lat,
            lng=body.lng,
            estimated_weight_range=f"{item.quantity_kg:g} kg",
            estimated_min_amount=estimate_min,
            estimated_max_amount=estimate_max,
        )
        created.append(booking)
        logger.info(
            "booking.create.success booking=%s user=%s category=%s",
            booking.id, actor.id, item.waste_category_id,
        )

    return [BookingResponse.from_model(b, actor.role) for b in created]


@router.get("", response_model=BookingPage, summary="List own bookings")
@limiter.limit(RATE_LIMIT)
async def list_bookings(
    request: Request,
    status: Optional[CanonicalBookingStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    actor: Actor = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    items, total = await BookingRepository(db).list_bookings(
        user_id=actor.id, status=status, page=page, page_size=page_size
    )
    return BookingPage(
        items=[BookingResponse.from_model(b, actor.role) for b in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
@limiter.limit(RATE_LIMIT)
async def get_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_booking_viewer),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).get_by_id(booking_id)
    if booking is None:
        raise NotFoundError("Booking")
    if not actor.is_admin and booking.user_id != actor.id:
        raise AuthorizationError("Booking belongs to another customer")
    return BookingResponse.from_model(booking, actor.role)
