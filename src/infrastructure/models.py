"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``                   -- customers, drivers and admins
* ``drivers``                 -- driver profile, approval and availability
* ``waste_categories``        -- recyclable material types
* ``pricing``                 -- LKR per kg band for each category
* ``bookings``                -- pickup requests and their lifecycle status
* ``booking_status_history``  -- one row per status change

``bookings.status`` stores the *raw* status string (legacy aliases
included).  A CHECK constraint keeps it inside the known enumeration; reads
canonicalise it in the domain layer.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, DriverStatus, UserRole

_RAW_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BookingStatus)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(String(20), default=UserRole.CUSTOMER.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    full_name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    vehicle_number = Column(String(32), nullable=True)
    approved = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=DriverStatus.OFFLINE.value, nullable=False)
    pickup_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_drivers_status", "status"),)


class WasteCategoryModel(Base):
    __tablename__ = "waste_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(80), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class PricingModel(Base):
    __tablename__ = "pricing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    waste_category_id = Column(
        Integer, ForeignKey("waste_categories.id"), unique=True, nullable=False
    )
    min_price_lkr_per_kg = Column(Float, nullable=False)
    max_price_lkr_per_kg = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    waste_category_id = Column(
        Integer, ForeignKey("waste_categories.id"), nullable=False
    )

    status = Column(String(20), default=BookingStatus.CREATED.value, nullable=False)

    estimated_weight_range = Column(String(40), nullable=True)
    estimated_min_amount = Column(Float, nullable=True)
    estimated_max_amount = Column(Float, nullable=True)
    actual_weight_kg = Column(Float, nullable=True)
    final_amount_lkr = Column(Float, nullable=True)

    address_line1 = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    postal_code = Column(String(20), nullable=False)
    phone = Column(String(32), nullable=True)
    special_instructions = Column(Text, nullable=True)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time_slot = Column(String(40), nullable=False)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    cancel_reason = Column(String(240), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_RAW_STATUS_VALUES})", name="ck_bookings_status"),
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_user", "user_id"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_scheduled", "scheduled_date"),
    )


class BookingStatusHistoryModel(Base):
    __tablename__ = "booking_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    action = Column(String(20), nullable=False)
    changed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    changed_by_role = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_status_history_booking", "booking_id"),)
