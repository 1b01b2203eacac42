"""Initial schema: rides table with approval trail and assignment.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

RIDE_STATUSES = (
    "pending_admin",
    "pending_pm",
    "pending_admin_after_pm",
    "approved",
    "in_progress",
    "completed",
    "rejected",
)


def upgrade() -> None:
    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("requester_id", sa.String(64), nullable=False),
        sa.Column("start_lat", sa.Float, nullable=False),
        sa.Column("start_lng", sa.Float, nullable=False),
        sa.Column("start_address", sa.String(500), nullable=False),
        sa.Column("end_lat", sa.Float, nullable=False),
        sa.Column("end_lng", sa.Float, nullable=False),
        sa.Column("end_address", sa.String(500), nullable=False),
        sa.Column("distance_km", sa.Float, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*RIDE_STATUSES, name="ridestatus"),
            nullable=False,
        ),
        sa.Column("pm_approved", sa.Boolean, nullable=True),
        sa.Column("pm_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pm_approved_by", sa.String(64), nullable=True),
        sa.Column("admin_approved", sa.Boolean, nullable=True),
        sa.Column("admin_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_approved_by", sa.String(64), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("driver_id", sa.String(64), nullable=True),
        sa.Column("vehicle_id", sa.String(64), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("distance_km >= 0", name="ck_rides_distance_non_negative"),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_requester", "rides", ["requester_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_distance", "rides", ["distance_km"])


def downgrade() -> None:
    op.drop_table("rides")
    op.execute("DROP TYPE IF EXISTS ridestatus")
