"""
Initial carpool schema: routes, pickup points, time slots, blackout dates,
subscriptions, wallets, wallet transactions.

Revision ID: 001
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create initial tables."""
    # Route catalog
    op.create_table(
        "carpool_routes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("from_location", sa.String(255), nullable=False),
        sa.Column("to_location", sa.String(255), nullable=False),
        sa.Column("from_latitude", sa.Float(), nullable=True),
        sa.Column("from_longitude", sa.Float(), nullable=True),
        sa.Column("to_latitude", sa.Float(), nullable=True),
        sa.Column("to_longitude", sa.Float(), nullable=True),
        sa.Column("price_per_seat", sa.Numeric(12, 2), nullable=True),
        sa.Column("weekdays", sa.JSON(), nullable=False),
        sa.Column("estimated_distance", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), default=True, index=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "carpool_pickup_points",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("carpool_routes.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("point_type", sa.String(20), nullable=False, index=True),
        sa.Column("sequence_order", sa.Integer(), nullable=False, default=0),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("is_visible", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "carpool_time_slots",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("carpool_routes.id"), nullable=False, index=True),
        sa.Column("departure_time", sa.String(5), nullable=False),
        sa.Column("is_active", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    # NULL route_id: blackout applies to every route
    op.create_table(
        "blackout_dates",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False, index=True),
        sa.Column("end_date", sa.Date(), nullable=False, index=True),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("carpool_routes.id"), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(100), index=True, nullable=False),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("carpool_routes.id"), nullable=False, index=True),
        sa.Column("weekdays", sa.JSON(), nullable=False),
        sa.Column("time_slot_id", sa.String(64), sa.ForeignKey("carpool_time_slots.id"), nullable=False),
        sa.Column("pickup_point_id", sa.String(64), sa.ForeignKey("carpool_pickup_points.id"), nullable=False),
        sa.Column("drop_off_point_id", sa.String(64), sa.ForeignKey("carpool_pickup_points.id"), nullable=False),
        sa.Column("monthly_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, index=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    # Wallets: one per customer
    op.create_table(
        "wallets",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(100), unique=True, index=True, nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("wallet_id", sa.String(64), sa.ForeignKey("wallets.id"), nullable=False, index=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now(), index=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("wallet_transactions")
    op.drop_table("wallets")
    op.drop_table("subscriptions")
    op.drop_table("blackout_dates")
    op.drop_table("carpool_time_slots")
    op.drop_table("carpool_pickup_points")
    op.drop_table("carpool_routes")
