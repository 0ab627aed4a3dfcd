"""Initial schema: tables, bookings, holds, idempotency ledger, tenant policies.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    is_postgres = op.get_bind().dialect.name == "postgresql"

    # Restaurant tables
    op.create_table(
        "restaurant_tables",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("section", sa.String(50), nullable=False, server_default=sa.text("'Main'")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        # Bumped by every write that claims a window; serialises writers per table
        sa.Column("lock_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "name", name="uq_restaurant_table_name"),
        sa.CheckConstraint("capacity >= 1", name="check_table_capacity_positive"),
    )
    op.create_index("ix_restaurant_tables_tenant_id", "restaurant_tables", ["tenant_id"])
    # Availability ranking: WHERE tenant_id = ? AND active AND capacity >= ?
    op.create_index(
        "ix_restaurant_tables_tenant_active_capacity",
        "restaurant_tables",
        ["tenant_id", "active", "capacity"],
    )

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("table_id", sa.String(36), sa.ForeignKey("restaurant_tables.id"), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("guest_name", sa.String(100), nullable=False),
        sa.Column("guest_email", sa.String(100), nullable=True),
        sa.Column("guest_phone", sa.String(32), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("channel", sa.String(20), nullable=False, server_default=sa.text("'web'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "idempotency_key", name="uq_booking_tenant_idempotency_key"),
        sa.CheckConstraint("end_at > start_at", name="check_booking_window"),
        sa.CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'seated', 'completed', 'cancelled', 'no_show')",
            name="check_booking_status",
        ),
        sa.CheckConstraint("channel IN ('web', 'phone', 'walkin')", name="check_booking_channel"),
    )
    # Conflict detection reads one table's bookings around a window
    op.create_index("ix_bookings_tenant_table_start", "bookings", ["tenant_id", "table_id", "start_at"])
    op.create_index("ix_bookings_tenant_start", "bookings", ["tenant_id", "start_at"])

    if is_postgres:
        # Overlapping active windows on one table are rejected by the database
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap
            EXCLUDE USING gist (
                tenant_id WITH =,
                table_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
            ) WHERE (status IN ('confirmed', 'seated'))
            """
        )

    # Idempotency ledger
    op.create_table(
        "idempotency_records",
        sa.Column("tenant_id", sa.String(64), primary_key=True),
        sa.Column("idempotency_key", sa.String(255), primary_key=True),
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Holds (HOLD_STORE=database)
    op.create_table(
        "booking_holds",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("table_id", sa.String(36), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_booking_holds_tenant_id", "booking_holds", ["tenant_id"])
    op.create_index("ix_booking_holds_idempotency_key", "booking_holds", ["idempotency_key"])

    # Tenant policy overrides
    op.create_table(
        "tenant_booking_policies",
        sa.Column("tenant_id", sa.String(64), primary_key=True),
        sa.Column("max_party_size", sa.Integer(), nullable=True),
        sa.Column("hold_ttl_minutes", sa.Integer(), nullable=True),
        sa.Column("default_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("tenant_booking_policies")
    op.drop_table("booking_holds")
    op.drop_table("idempotency_records")
    op.drop_table("bookings")
    op.drop_table("restaurant_tables")
