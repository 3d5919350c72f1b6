from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("status IN ('Active','Cancelled','Rescheduled','Completed')", name="ck_bookings_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    status: Mapped[str] = mapped_column(String(20), default="Active", index=True)  # Active, Cancelled, Rescheduled, Completed

    customer_name: Mapped[str] = mapped_column(String(100))
    customer_whatsapp: Mapped[str] = mapped_column(String(32))
    customer_category: Mapped[str] = mapped_column(String(40))
    customer_service_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    booking_date: Mapped[str] = mapped_column(String(32), index=True)  # YYYY-MM-DDTHH:MM
    booking_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    booking_location_link: Mapped[str | None] = mapped_column(String(500), nullable=True)

    total_price: Mapped[int] = mapped_column(Integer, default=0)

    # Price breakdown; NULL on legacy bookings
    service_base_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    base_discount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    addons_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coupon_discount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coupon_code: Mapped[str | None] = mapped_column(String(40), nullable=True)

    photographer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("photographers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    payments = relationship(
        "Payment", back_populates="booking", cascade="all, delete-orphan",
        passive_deletes=True, order_by="Payment.id",
    )
    addons = relationship(
        "BookingAddon", back_populates="booking", cascade="all, delete-orphan",
        passive_deletes=True, order_by="BookingAddon.addon_name",
    )
    reschedule_history = relationship(
        "RescheduleHistory", back_populates="booking", cascade="all, delete-orphan",
        passive_deletes=True, order_by="RescheduleHistory.id",
    )
    photographer = relationship("Photographer")
