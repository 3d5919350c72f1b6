import json
from sqlalchemy import String, Integer, DateTime, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base

class Addon(Base):
    __tablename__ = "addons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    price: Mapped[int] = mapped_column(Integer)
    applicable_categories: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON list; NULL = all categories
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def categories(self) -> list[str]:
        if not self.applicable_categories:
            return []
        try:
            return [str(c) for c in json.loads(self.applicable_categories)]
        except (json.JSONDecodeError, TypeError):
            return []

    def applies_to(self, category: str) -> bool:
        cats = self.categories
        return not cats or category in cats


class BookingAddon(Base):
    """Add-on attached to a booking. Name and price are snapshots taken at booking time."""

    __tablename__ = "booking_addons"
    __table_args__ = (
        UniqueConstraint("booking_id", "addon_id", name="uq_booking_addons_booking_addon"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[str] = mapped_column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    addon_id: Mapped[str] = mapped_column(String(36), ForeignKey("addons.id", ondelete="CASCADE"), index=True)
    addon_name: Mapped[str] = mapped_column(String(120))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    price_at_booking: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="addons")
