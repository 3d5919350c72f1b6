from sqlalchemy import String, Integer, Float, DateTime, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("discount_type IN ('percentage','fixed')", name="ck_coupons_discount_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(40), unique=True, index=True)  # stored upper-case
    discount_type: Mapped[str] = mapped_column(String(12))  # percentage|fixed
    discount_value: Mapped[float] = mapped_column(Float)
    min_purchase: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_discount: Mapped[int | None] = mapped_column(Integer, nullable=True)  # caps percentage discounts
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class CouponUsage(Base):
    """Append-only redemption log."""

    __tablename__ = "coupon_usage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coupon_id: Mapped[str] = mapped_column(String(36), ForeignKey("coupons.id", ondelete="CASCADE"), index=True)
    booking_id: Mapped[str] = mapped_column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    customer_name: Mapped[str] = mapped_column(String(100))
    customer_whatsapp: Mapped[str] = mapped_column(String(32))
    discount_amount: Mapped[int] = mapped_column(Integer)
    order_total: Mapped[int] = mapped_column(Integer)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
