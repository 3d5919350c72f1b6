"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "photographers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("specialty", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "addons",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("applicable_categories", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_whatsapp", sa.String(length=32), nullable=False),
        sa.Column("customer_category", sa.String(length=40), nullable=False),
        sa.Column("customer_service_id", sa.String(length=64), nullable=True),
        sa.Column("booking_date", sa.String(length=32), nullable=False),
        sa.Column("booking_notes", sa.Text(), nullable=True),
        sa.Column("booking_location_link", sa.String(length=500), nullable=True),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "photographer_id", sa.String(length=36),
            sa.ForeignKey("photographers.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('Active','Cancelled','Rescheduled','Completed')", name="ck_bookings_status"
        ),
    )
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"], unique=False)
    op.create_index("ix_bookings_photographer_id", "bookings", ["photographer_id"], unique=False)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(length=200), nullable=True),
        sa.Column("proof_filename", sa.String(length=255), nullable=True),
        sa.Column("proof_base64", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"], unique=False)

    op.create_table(
        "booking_addons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("addon_id", sa.String(length=36), sa.ForeignKey("addons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("addon_name", sa.String(length=120), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price_at_booking", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("booking_id", "addon_id", name="uq_booking_addons_booking_addon"),
    )
    op.create_index("ix_booking_addons_booking_id", "booking_addons", ["booking_id"], unique=False)
    op.create_index("ix_booking_addons_addon_id", "booking_addons", ["addon_id"], unique=False)

    op.create_table(
        "reschedule_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("old_date", sa.String(length=32), nullable=False),
        sa.Column("new_date", sa.String(length=32), nullable=False),
        sa.Column("rescheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_reschedule_history_booking_id", "reschedule_history", ["booking_id"], unique=False)

    op.create_table(
        "coupons",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("discount_type", sa.String(length=12), nullable=False),
        sa.Column("discount_value", sa.Float(), nullable=False),
        sa.Column("min_purchase", sa.Integer(), nullable=True),
        sa.Column("max_discount", sa.Integer(), nullable=True),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("discount_type IN ('percentage','fixed')", name="ck_coupons_discount_type"),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)

    op.create_table(
        "coupon_usage",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("coupon_id", sa.String(length=36), sa.ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_whatsapp", sa.String(length=32), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False),
        sa.Column("order_total", sa.Integer(), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_coupon_usage_coupon_id", "coupon_usage", ["coupon_id"], unique=False)
    op.create_index("ix_coupon_usage_booking_id", "coupon_usage", ["booking_id"], unique=False)


def downgrade() -> None:
    op.drop_table("coupon_usage")
    op.drop_table("coupons")
    op.drop_table("reschedule_history")
    op.drop_table("booking_addons")
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("addons")
    op.drop_table("photographers")
