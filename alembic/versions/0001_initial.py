"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("student_id", sa.String(32), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("department", sa.String(128), nullable=True),
        sa.Column("level", sa.String(32), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_rides", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_spent", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_student_id", "users", ["student_id"], unique=True)
    op.create_index("ix_users_active", "users", ["is_active"], unique=False)

    op.create_table(
        "routes",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("route_name", sa.String(128), nullable=False),
        sa.Column("departure_location", sa.String(128), nullable=False),
        sa.Column("arrival_location", sa.String(128), nullable=False),
        sa.Column("estimated_time", sa.String(32), nullable=True),
        sa.Column("distance", sa.String(32), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("available_seats >= 0", name="ck_routes_seats_non_negative"),
    )
    op.create_index("ix_routes_active_name", "routes", ["is_active", "route_name"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("route_id", sa.Integer, sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("booking_code", sa.String(32), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("dropoff_location", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("number_of_seats", sa.Integer, nullable=False, server_default="1"),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED", name="bookingstatus"),
            nullable=False,
        ),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_bookings_booking_code", "bookings", ["booking_code"], unique=True)
    op.create_index("ix_bookings_user_created", "bookings", ["user_id", "created_at"], unique=False)
    op.create_index("ix_bookings_route_status", "bookings", ["route_id", "status"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("reference", sa.String(64), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tx_type", sa.Enum("FUNDING", "BOOKING", "REFUND", name="transactiontype"), nullable=False),
        sa.Column("status", sa.Enum("PENDING", "COMPLETED", "FAILED", name="transactionstatus"), nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum("CARD", "BANK_TRANSFER", "USSD", "WALLET", name="paymentmethod"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_transactions_reference", "transactions", ["reference"], unique=True)
    op.create_index("ix_transactions_user_created", "transactions", ["user_id", "created_at"], unique=False)
    op.create_index("ix_transactions_type_status", "transactions", ["tx_type", "status"], unique=False)


def downgrade():
    op.drop_table("transactions")
    op.drop_table("bookings")
    op.drop_table("routes")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS paymentmethod")
    op.execute("DROP TYPE IF EXISTS transactionstatus")
    op.execute("DROP TYPE IF EXISTS transactiontype")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
