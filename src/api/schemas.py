"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.domain.booking_status import (
    allowed_actions,
    booking_status_label,
    is_payment_due,
    normalize_booking_status,
)
from src.domain.enums import (
    BookingAction,
    BookingStatus,
    CanonicalBookingStatus,
    DriverStatus,
    UserRole,
)


# ── Requests ──────────────────────────────────────────────────────────


class BookingItem(BaseModel):
    waste_category_id: int
    quantity_kg: float = Field(..., ge=0.1)


class BookingCreateRequest(BaseModel):
    items: list[BookingItem] = Field(..., min_length=1)
    address_line1: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=120)
    postal_code: str = Field(..., min_length=1, max_length=20)
    phone: str = Field(..., min_length=1, max_length=32)
    special_instructions: Optional[str] = None
    scheduled_date: date
    scheduled_time_slot: str = Field(..., min_length=1, max_length=40)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class AssignDriverRequest(BaseModel):
    driver_id: int


class CompleteBookingRequest(BaseModel):
    actual_weight_kg: Optional[float] = Field(None, ge=0)
    final_amount_lkr: Optional[float] = Field(None, ge=0)


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=240)


class AdminBookingUpdateRequest(BaseModel):
    status: Optional[BookingStatus] = None
    driver_id: Optional[int] = None
    actual_weight_kg: Optional[float] = Field(None, ge=0)
    final_amount_lkr: Optional[float] = Field(None, ge=0)


class CollectBookingRequest(BaseModel):
    weight_kg: float = Field(..., ge=0.01)
    waste_category_id: Optional[int] = None


class DriverBookingUpdateRequest(BaseModel):
    status: Optional[BookingStatus] = None
    waste_category_id: Optional[int] = None
    actual_weight_kg: Optional[float] = Field(None, ge=0)
    final_amount_lkr: Optional[float] = Field(None, ge=0)


class DriverStatusUpdateRequest(BaseModel):
    status: DriverStatus


class PricingUpdateRequest(BaseModel):
    min_price_lkr_per_kg: float = Field(..., ge=0)
    max_price_lkr_per_kg: float = Field(..., ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def _min_not_above_max(self) -> "PricingUpdateRequest":
        if self.min_price_lkr_per_kg > self.max_price_lkr_per_kg:
            raise ValueError("min_price_lkr_per_kg must not exceed max_price_lkr_per_kg")
        return self


# ── Responses ─────────────────────────────────────────────────────────


class BookingResponse(BaseModel):
    id: int
    user_id: int
    driver_id: Optional[int] = None
    waste_category_id: int
    status: CanonicalBookingStatus
    status_label: str
    payment_due: bool
    allowed_actions: list[BookingAction] = []
    estimated_weight_range: Optional[str] = None
    estimated_min_amount: Optional[float] = None
    estimated_max_amount: Optional[float] = None
    actual_weight_kg: Optional[float] = None
    final_amount_lkr: Optional[float] = None
    address_line1: str
    city: str
    postal_code: str
    special_instructions: Optional[str] = None
    scheduled_date: date
    scheduled_time_slot: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    cancel_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking, viewer_role: UserRole) -> "BookingResponse":
        """Canonical status, label and affordances as seen by *viewer_role*."""
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            driver_id=booking.driver_id,
            waste_category_id=booking.waste_category_id,
            status=normalize_booking_status(booking.status),
            status_label=booking_status_label(booking.status, viewer_role),
            payment_due=is_payment_due(booking.status),
            allowed_actions=allowed_actions(booking.status, viewer_role),
            estimated_weight_range=booking.estimated_weight_range,
            estimated_min_amount=booking.estimated_min_amount,
            estimated_max_amount=booking.estimated_max_amount,
            actual_weight_kg=booking.actual_weight_kg,
            final_amount_lkr=booking.final_amount_lkr,
            address_line1=booking.address_line1,
            city=booking.city,
            postal_code=booking.postal_code,
            special_instructions=booking.special_instructions,
            scheduled_date=booking.scheduled_date,
            scheduled_time_slot=booking.scheduled_time_slot,
            lat=booking.lat,
            lng=booking.lng,
            cancel_reason=booking.cancel_reason,
            confirmed_at=booking.confirmed_at,
            created_at=booking.created_at,
        )


class BookingPage(BaseModel):
    items: list[BookingResponse]
    total: int
    page: int
    page_size: int


class StatusHistoryResponse(BaseModel):
    id: int
    booking_id: int
    from_status: CanonicalBookingStatus
    to_status: CanonicalBookingStatus
    action: BookingAction
    changed_by_id: Optional[int] = None
    changed_by_role: UserRole
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    full_name: str
    approved: bool
    status: DriverStatus
    pickup_count: int

    model_config = {"from_attributes": True}


class PricingResponse(BaseModel):
    waste_category_id: int
    min_price_lkr_per_kg: float
    max_price_lkr_per_kg: float
    is_active: bool
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MetricsResponse(BaseModel):
    total_bookings: int
    completed_bookings: int
    payment_due_bookings: int
    cancelled_bookings: int
    completed_revenue_lkr: float
    by_status: dict[CanonicalBookingStatus, int]


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
