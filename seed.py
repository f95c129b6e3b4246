"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 5 customers and 3 drivers (2 approved)
  - 4 waste categories with LKR per kg pricing bands
  - 9 sample bookings covering every stored status, including the
    legacy SCHEDULED and PAID rows left behind by older releases
"""

import asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import text

from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    BookingModel,
    DriverModel,
    PricingModel,
    UserModel,
    WasteCategoryModel,
)
from src.domain.enums import BookingStatus, DriverStatus, UserRole
from src.domain.pricing import PricingBand

# Colombo city centre (approx)
CITY_LAT, CITY_LNG = 6.9271, 79.8612


USERS = [
    {"full_name": "Nimal Perera", "email": "admin@ecopickup.lk", "role": UserRole.ADMIN},
    {"full_name": "Kasuni Silva", "email": "kasuni@example.com", "role": UserRole.CUSTOMER},
    {"full_name": "Ruwan Fernando", "email": "ruwan@example.com", "role": UserRole.CUSTOMER},
    {"full_name": "Dilani Jayasuriya", "email": "dilani@example.com", "role": UserRole.CUSTOMER},
    {"full_name": "Tharindu Bandara", "email": "tharindu@example.com", "role": UserRole.CUSTOMER},
    {"full_name": "Ishara Wickramasinghe", "email": "ishara@example.com", "role": UserRole.CUSTOMER},
    {"full_name": "Saman Kumara", "email": "saman@example.com", "role": UserRole.DRIVER},
    {"full_name": "Chamara Rathnayake", "email": "chamara@example.com", "role": UserRole.DRIVER},
    {"full_name": "Lahiru Dissanayake", "email": "lahiru@example.com", "role": UserRole.DRIVER},
]

CATEGORIES = [
    {"name": "Plastic", "description": "PET bottles and rigid plastics", "band": (40.0, 60.0)},
    {"name": "Paper", "description": "Newspaper, cardboard and office paper", "band": (25.0, 35.0)},
    {"name": "Metal", "description": "Aluminium cans and scrap iron", "band": (120.0, 180.0)},
    {"name": "E-waste", "description": "Small electronics and cables", "band": (200.0, 300.0)},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(
                full_name=u["full_name"], email=u["email"], role=u["role"].value
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        customers = [u for u in user_models if u.role == UserRole.CUSTOMER.value]
        driver_users = [u for u in user_models if u.role == UserRole.DRIVER.value]

        # ── Drivers ───────────────────────────────────────────────────
        drivers = []
        for i, u in enumerate(driver_users):
            m = DriverModel(
                id=u.id,
                full_name=u.full_name,
                vehicle_number=f"WP-LB-{4100 + i}",
                approved=i < 2,
                status=DriverStatus.ONLINE.value if i < 2 else DriverStatus.OFFLINE.value,
            )
            session.add(m)
            drivers.append(m)
        await session.flush()
        print(f"  Created {len(drivers)} drivers")

        # ── Categories & pricing ──────────────────────────────────────
        categories = []
        for c in CATEGORIES:
            category = WasteCategoryModel(name=c["name"], description=c["description"])
            session.add(category)
            categories.append((category, PricingBand(*c["band"])))
        await session.flush()
        for category, band in categories:
            session.add(
                PricingModel(
                    waste_category_id=category.id,
                    min_price_lkr_per_kg=band.min_price_lkr_per_kg,
                    max_price_lkr_per_kg=band.max_price_lkr_per_kg,
                )
            )
        await session.flush()
        print(f"  Created {len(categories)} waste categories with pricing")

        # ── Bookings ──────────────────────────────────────────────────
        today = date.today()
        now = datetime.now(timezone.utc)
        bookings_data = [
            # Open bookings
            {"status": BookingStatus.CREATED, "driver": None, "category": 0, "qty": 5},
            {"status": BookingStatus.SCHEDULED, "driver": None, "category": 1, "qty": 12},
            {"status": BookingStatus.ASSIGNED, "driver": 0, "category": 2, "qty": 3},
            {"status": BookingStatus.IN_PROGRESS, "driver": 1, "category": 0, "qty": 8},
            # Payment due
            {"status": BookingStatus.COLLECTED, "driver": 0, "category": 3, "qty": 2, "weight": 2.4},
            {"status": BookingStatus.PAID, "driver": 1, "category": 1, "qty": 10, "weight": 9.5},
            # Closed
            {"status": BookingStatus.COMPLETED, "driver": 0, "category": 2, "qty": 4, "weight": 4.2},
            {"status": BookingStatus.CANCELLED, "driver": None, "category": 0, "qty": 6},
            {"status": BookingStatus.REFUNDED, "driver": 1, "category": 1, "qty": 7},
        ]

        for i, b in enumerate(bookings_data):
            category, band = categories[b["category"]]
            est_min, est_max = band.estimate(b["qty"])
            weight = b.get("weight")
            booking = BookingModel(
                user_id=customers[i % len(customers)].id,
                driver_id=drivers[b["driver"]].id if b["driver"] is not None else None,
                waste_category_id=category.id,
                status=b["status"].value,
                estimated_weight_range=f"{b['qty']:g} kg",
                estimated_min_amount=est_min,
                estimated_max_amount=est_max,
                actual_weight_kg=weight,
                final_amount_lkr=band.midpoint_amount(weight) if weight else None,
                address_line1=f"{12 + i} Galle Road",
                city="Colombo",
                postal_code="00300",
                scheduled_date=today + timedelta(days=i - 4),
                scheduled_time_slot="09:00-12:00",
                lat=CITY_LAT + i * 0.002,
                lng=CITY_LNG + i * 0.002,
                cancel_reason="Customer not home" if b["status"] == BookingStatus.CANCELLED else None,
                confirmed_at=now if b["status"] == BookingStatus.COMPLETED else None,
            )
            session.add(booking)
        await session.flush()
        print(f"  Created {len(bookings_data)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
