"""booking price breakdown columns

Bookings created before this revision keep NULLs here; the finance service
reconstructs their breakdown from the add-on snapshots.

Revision ID: 0002_booking_price_breakdown
Revises: 0001_initial
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0002_booking_price_breakdown"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

def upgrade() -> None:
    with op.batch_alter_table("bookings") as batch:
        batch.add_column(sa.Column("service_base_price", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("base_discount", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("addons_total", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("coupon_discount", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("coupon_code", sa.String(length=40), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("bookings") as batch:
        batch.drop_column("coupon_code")
        batch.drop_column("coupon_discount")
        batch.drop_column("addons_total")
        batch.drop_column("base_discount")
        batch.drop_column("service_base_price")
