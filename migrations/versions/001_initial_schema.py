"""Initial schema: users, drivers, waste categories, pricing, bookings, history.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

RAW_BOOKING_STATUSES = (
    "SCHEDULED",
    "ASSIGNED",
    "CREATED",
    "IN_PROGRESS",
    "COLLECTED",
    "PAID",
    "COMPLETED",
    "CANCELLED",
    "REFUNDED",
)


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="CUSTOMER"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column(
            "id", sa.Integer, sa.ForeignKey("users.id"), primary_key=True
        ),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("vehicle_number", sa.String(32), nullable=True),
        sa.Column("approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(20), nullable=False, server_default="OFFLINE"),
        sa.Column("pickup_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_drivers_status", "drivers", ["status"])

    # ── waste_categories / pricing ────────────────────────────────────
    op.create_table(
        "waste_categories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(80), unique=True, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "pricing",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "waste_category_id",
            sa.Integer,
            sa.ForeignKey("waste_categories.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("min_price_lkr_per_kg", sa.Float, nullable=False),
        sa.Column("max_price_lkr_per_kg", sa.Float, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── bookings ──────────────────────────────────────────────────────
    statuses = ", ".join(f"'{s}'" for s in RAW_BOOKING_STATUSES)
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column(
            "waste_category_id",
            sa.Integer,
            sa.ForeignKey("waste_categories.id"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="CREATED"),
        sa.Column("estimated_weight_range", sa.String(40), nullable=True),
        sa.Column("estimated_min_amount", sa.Float, nullable=True),
        sa.Column("estimated_max_amount", sa.Float, nullable=True),
        sa.Column("actual_weight_kg", sa.Float, nullable=True),
        sa.Column("final_amount_lkr", sa.Float, nullable=True),
        sa.Column("address_line1", sa.String(255), nullable=False),
        sa.Column("city", sa.String(120), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("scheduled_time_slot", sa.String(40), nullable=False),
        sa.Column("lat", sa.Float, nullable=True),
        sa.Column("lng", sa.Float, nullable=True),
        sa.Column("cancel_reason", sa.String(240), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(f"status IN ({statuses})", name="ck_bookings_status"),
    )
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_user", "bookings", ["user_id"])
    op.create_index("idx_bookings_driver", "bookings", ["driver_id"])
    op.create_index("idx_bookings_scheduled", "bookings", ["scheduled_date"])

    # ── booking_status_history ────────────────────────────────────────
    op.create_table(
        "booking_status_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.Integer,
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(20), nullable=False),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("changed_by_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("changed_by_role", sa.String(20), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_status_history_booking", "booking_status_history", ["booking_id"]
    )


def downgrade() -> None:
    op.drop_table("booking_status_history")
    op.drop_table("bookings")
    op.drop_table("pricing")
    op.drop_table("waste_categories")
    op.drop_table("drivers")
    op.drop_table("users")
