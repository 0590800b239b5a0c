"""Initial schema: users, driver profiles, orders and recurring plans.

Revision ID: 001
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("phone", sa.String(32), unique=True, nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("is_driver", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── driver_profiles ───────────────────────────────────────────────
    op.create_table(
        "driver_profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Uuid, sa.ForeignKey("users.id"), unique=True, nullable=False
        ),
        sa.Column("approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("car_model", sa.String(80), nullable=True),
        sa.Column("plate_number", sa.String(20), nullable=True),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── orders ────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "action",
            sa.Enum("taxi", "delivery", "schedule", name="orderaction"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pickup", sa.String(255), nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("pickup_lat", sa.Float, nullable=True),
        sa.Column("pickup_lng", sa.Float, nullable=True),
        sa.Column("dest_lat", sa.Float, nullable=True),
        sa.Column("dest_lng", sa.Float, nullable=True),
        sa.Column("stops", sa.JSON, nullable=True),
        sa.Column("package_details", sa.Text, nullable=True),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "scheduled",
                "searching",
                "assigned",
                "on_trip",
                "completed",
                "cancelled",
                name="orderstatus",
            ),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.Text, nullable=True),
        sa.Column("driver_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("driver_name", sa.String(120), nullable=True),
        sa.Column("driver_phone", sa.String(32), nullable=True),
        sa.Column("driver_car", sa.String(80), nullable=True),
        sa.Column("driver_plate", sa.String(20), nullable=True),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("eta_minutes", sa.Integer, nullable=True),
        sa.Column("price", sa.Integer, nullable=True),
        sa.Column("payment_method", sa.String(40), nullable=True),
        sa.Column("pet_allowed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("child_seat", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "tariff",
            sa.Enum("standard", "premium", name="tariff"),
            nullable=False,
        ),
        sa.Column(
            "vehicle_type",
            sa.Enum("moto", "car", "van", name="vehicletype"),
            nullable=False,
        ),
        sa.Column("last_lat", sa.Float, nullable=True),
        sa.Column("last_lng", sa.Float, nullable=True),
        sa.Column("last_location_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("review", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_user", "orders", ["user_id"])
    op.create_index("idx_orders_driver", "orders", ["driver_id"])

    # ── scheduled_plans ───────────────────────────────────────────────
    op.create_table(
        "scheduled_plans",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("entries", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_plans_user", "scheduled_plans", ["user_id"])

    # ── plan_occurrences ──────────────────────────────────────────────
    op.create_table(
        "plan_occurrences",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "plan_id", sa.Uuid, sa.ForeignKey("scheduled_plans.id"), nullable=False
        ),
        sa.Column("entry_index", sa.Integer, nullable=False),
        sa.Column("occurrence_date", sa.Date, nullable=False),
        sa.Column("order_id", sa.Uuid, nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "plan_id", "entry_index", "occurrence_date", name="uq_plan_occurrence"
        ),
    )


def downgrade() -> None:
    op.drop_table("plan_occurrences")
    op.drop_table("scheduled_plans")
    op.drop_table("orders")
    op.drop_table("driver_profiles")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS orderstatus")
    op.execute("DROP TYPE IF EXISTS orderaction")
    op.execute("DROP TYPE IF EXISTS tariff")
    op.execute("DROP TYPE IF EXISTS vehicletype")
