"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Status filters are expressed in canonical
statuses and expanded here to every raw value, legacy aliases included.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BookingModel,
    BookingStatusHistoryModel,
    DriverModel,
    PricingModel,
    WasteCategoryModel,
)
from src.domain.booking_status import expand_status_filter
from src.domain.entities import StatusChange
from src.domain.enums import BookingStatus, CanonicalBookingStatus


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_booking(
        self,
        *,
        user_id: int,
        waste_category_id: int,
        address_line1: str,
        city: str,
        postal_code: str,
        scheduled_date: date,
        scheduled_time_slot: str,
        phone: str | None = None,
        special_instructions: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        estimated_weight_range: str | None = None,
        estimated_min_amount: float | None = None,
        estimated_max_amount: float | None = None,
    ) -> BookingModel:
        booking = BookingModel(
            user_id=user_id,
            waste_category_id=waste_category_id,
            status=BookingStatus.CREATED.value,
            address_line1=address_line1,
            city=city,
            postal_code=postal_code,
            phone=phone,
            special_instructions=special_instructions,
            scheduled_date=scheduled_date,
            scheduled_time_slot=scheduled_time_slot,
            lat=lat,
            lng=lng,
            estimated_weight_range=estimated_weight_range,
            estimated_min_amount=estimated_min_amount,
            estimated_max_amount=estimated_max_amount,
        )
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_for_update(self, booking_id: int) -> Optional[BookingModel]:
        """SELECT ... FOR UPDATE so the status read is the one we overwrite."""
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_bookings(
        self,
        *,
        user_id: int | None = None,
        driver_id: int | None = None,
        status: CanonicalBookingStatus | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[BookingModel], int]:
        conditions = []
        if user_id is not None:
            conditions.append(BookingModel.user_id == user_id)
        if driver_id is not None:
            conditions.append(BookingModel.driver_id == driver_id)
        if status is not None:
            raw = [s.value for s in expand_status_filter(status)]
            conditions.append(BookingModel.status.in_(raw))

        total = await self.session.execute(
            select(func.count()).select_from(BookingModel).where(*conditions)
        )
        result = await self.session.execute(
            select(BookingModel)
            .where(*conditions)
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total.scalar() or 0

    async def list_for_driver(self, driver_id: int) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.driver_id == driver_id)
            .order_by(BookingModel.scheduled_date, BookingModel.id)
        )
        return list(result.scalars().all())

    async def count_by_raw_status(self) -> dict[str, int]:
        result = await self.session.execute(
            select(BookingModel.status, func.count()).group_by(BookingModel.status)
        )
        return {status: count for status, count in result.all()}

    async def amount_by_raw_status(self) -> dict[str, float]:
        result = await self.session.execute(
            select(
                BookingModel.status,
                func.coalesce(func.sum(BookingModel.final_amount_lkr), 0.0),
            ).group_by(BookingModel.status)
        )
        return {status: float(total) for status, total in result.all()}


class StatusHistoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self, booking_id: int, change: StatusChange, changed_by_id: int | None
    ) -> BookingStatusHistoryModel:
        entry = BookingStatusHistoryModel(
            booking_id=booking_id,
            from_status=change.from_status.value,
            to_status=change.to_status.value,
            action=change.action.value,
            changed_by_id=changed_by_id,
            changed_by_role=change.role.value,
        )
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def for_booking(self, booking_id: int) -> list[BookingStatusHistoryModel]:
        result = await self.session.execute(
            select(BookingStatusHistoryModel)
            .where(BookingStatusHistoryModel.booking_id == booking_id)
            .order_by(BookingStatusHistoryModel.id)
        )
        return list(result.scalars().all())


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)


class PricingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_category(self, waste_category_id: int) -> Optional[PricingModel]:
        result = await self.session.execute(
            select(PricingModel).where(
                PricingModel.waste_category_id == waste_category_id
            )
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[PricingModel]:
        result = await self.session.execute(
            select(PricingModel).order_by(PricingModel.waste_category_id)
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        waste_category_id: int,
        *,
        min_price_lkr_per_kg: float,
        max_price_lkr_per_kg: float,
        is_active: bool = True,
    ) -> PricingModel:
        pricing = await self.get_for_category(waste_category_id)
        if pricing is None:
            pricing = PricingModel(waste_category_id=waste_category_id)
            self.session.add(pricing)
        pricing.min_price_lkr_per_kg = min_price_lkr_per_kg
        pricing.max_price_lkr_per_kg = max_price_lkr_per_kg
        pricing.is_active = is_active
        await self.session.flush()
        await self.session.refresh(pricing)
        return pricing


class WasteCategoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, category_id: int) -> Optional[WasteCategoryModel]:
        return await self.session.get(WasteCategoryModel, category_id)

