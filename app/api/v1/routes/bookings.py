from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, get_locks, require_roles
from app.models.booking import Booking
from app.schemas.booking import BookingCreate, BookingPatch, PaymentIn, PhotographerAssignIn, RescheduleIn, StatusIn
from app.services import booking_service
from app.services.file_lock import FileLock
from app.services.finance_service import calculate_finance, get_or_reconstruct_breakdown
from app.services.normalize import normalize_status

router = APIRouter(tags=["bookings"])

STAFF = require_roles("admin", "staff")


def booking_out(b: Booking) -> dict:
    return {
        "id": b.id,
        "createdAt": b.created_at.isoformat() if b.created_at else None,
        "updatedAt": b.updated_at.isoformat() if b.updated_at else None,
        "status": normalize_status(b.status).value,
        "customer": {
            "name": b.customer_name,
            "whatsapp": b.customer_whatsapp,
            "category": b.customer_category,
            "serviceId": b.customer_service_id,
        },
        "booking": {
            "date": b.booking_date,
            "notes": b.booking_notes or "",
            "locationLink": b.booking_location_link or "",
        },
        "finance": {
            "totalPrice": b.total_price,
            "payments": [
                {"id": p.id, "date": p.date, "amount": p.amount, "note": p.note or "", "proofFilename": p.proof_filename}
                for p in b.payments
            ],
            "servicePrice": b.service_base_price,
            "baseDiscount": b.base_discount,
            "addonsTotal": b.addons_total,
            "couponDiscount": b.coupon_discount,
            "couponCode": b.coupon_code,
        },
        "photographerId": b.photographer_id,
        "addons": [
            {"addonId": a.addon_id, "name": a.addon_name, "quantity": a.quantity, "priceAtBooking": a.price_at_booking}
            for a in b.addons
        ],
        "rescheduleHistory": [
            {
                "oldDate": h.old_date,
                "newDate": h.new_date,
                "rescheduledAt": h.rescheduled_at.isoformat() if h.rescheduled_at else None,
                "reason": h.reason,
            }
            for h in b.reschedule_history
        ],
    }


@router.get("/bookings")
def list_bookings(start: str | None = None, end: str | None = None, status: str | None = None,
                  q: str | None = None, page: int = 1, limit: int = 50,
                  db: Session = Depends(get_db),
                  me: Principal = Depends(STAFF)):
    if q:
        items = booking_service.search_bookings(db, q, limit=min(limit, 200))
        return {"total": len(items), "page": 1, "items": [booking_out(b) for b in items]}
    items, total = booking_service.list_bookings(db, start, end, status, page, limit)
    return {"total": total, "page": max(page, 1), "items": [booking_out(b) for b in items]}


@router.get("/bookings/slots/check")
def check_slot(date: str, excludeId: str | None = None,
               db: Session = Depends(get_db),
               me: Principal = Depends(STAFF)):
    return {"date": date, "available": booking_service.is_slot_available(db, date, exclude_id=excludeId)}


@router.post("/bookings", status_code=201)
def create_booking(body: BookingCreate,
                   db: Session = Depends(get_db),
                   locks: FileLock = Depends(get_locks),
                   me: Principal = Depends(STAFF)):
    b = booking_service.create_booking(db, locks, body, actor=me.subject)
    return booking_out(b)


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: str, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return booking_out(booking_service.get_booking(db, booking_id))


@router.patch("/bookings/{booking_id}")
def update_booking(booking_id: str, body: BookingPatch,
                   db: Session = Depends(get_db),
                   locks: FileLock = Depends(get_locks),
                   me: Principal = Depends(STAFF)):
    return booking_out(booking_service.update_booking(db, locks, booking_id, body, actor=me.subject))


@router.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str,
                   db: Session = Depends(get_db),
                   locks: FileLock = Depends(get_locks),
                   me: Principal = Depends(STAFF)):
    booking_service.delete_booking(db, locks, booking_id, actor=me.subject, forbid_completed=True)
    return {"ok": True, "id": booking_id}


@router.post("/bookings/{booking_id}/status")
def set_status(booking_id: str, body: StatusIn,
               db: Session = Depends(get_db),
               locks: FileLock = Depends(get_locks),
               me: Principal = Depends(STAFF)):
    return booking_out(booking_service.set_status(db, locks, booking_id, body.status, actor=me.subject))


@router.post("/bookings/{booking_id}/payments")
def add_payment(booking_id: str, body: PaymentIn,
                db: Session = Depends(get_db),
                locks: FileLock = Depends(get_locks),
                me: Principal = Depends(STAFF)):
    b = booking_service.add_payment(db, locks, booking_id, body, actor=me.subject)
    return {"booking": booking_out(b), "finance": calculate_finance(b).as_dict()}


@router.post("/bookings/{booking_id}/reschedule")
def reschedule(booking_id: str, body: RescheduleIn,
               db: Session = Depends(get_db),
               locks: FileLock = Depends(get_locks),
               me: Principal = Depends(STAFF)):
    b = booking_service.reschedule_booking(db, locks, booking_id, body.newDate, body.reason, actor=me.subject)
    return booking_out(b)


@router.post("/bookings/{booking_id}/photographer")
def assign_photographer(booking_id: str, body: PhotographerAssignIn,
                        db: Session = Depends(get_db),
                        locks: FileLock = Depends(get_locks),
                        me: Principal = Depends(STAFF)):
    b = booking_service.assign_photographer(db, locks, booking_id, body.photographerId, actor=me.subject)
    return booking_out(b)


@router.get("/bookings/{booking_id}/finance")
def booking_finance(booking_id: str, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    b = booking_service.get_booking(db, booking_id)
    return {
        "id": b.id,
        "finance": calculate_finance(b).as_dict(),
        "breakdown": get_or_reconstruct_breakdown(b).as_dict(),
    }
