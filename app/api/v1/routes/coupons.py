from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, require_roles
from app.models.coupon import Coupon
from app.schemas.coupon import CouponIn, CouponPatch, CouponValidateIn
from app.services import coupon_service

router = APIRouter(tags=["coupons"])


def coupon_out(c: Coupon) -> dict:
    return {
        "id": c.id,
        "code": c.code,
        "discountType": c.discount_type,
        "discountValue": c.discount_value,
        "minPurchase": c.min_purchase,
        "maxDiscount": c.max_discount,
        "usageLimit": c.usage_limit,
        "usageCount": c.usage_count,
        "validFrom": c.valid_from.isoformat() if c.valid_from else None,
        "validUntil": c.valid_until.isoformat() if c.valid_until else None,
        "isActive": c.is_active,
        "description": c.description,
    }


@router.post("/coupons/validate")
def validate_coupon(body: CouponValidateIn, db: Session = Depends(get_db)):
    check = coupon_service.validate(db, body.code, body.orderTotal)
    if not check.valid:
        return {"valid": False, "error": check.error}
    return {
        "valid": True,
        "discountAmount": check.discount_amount,
        "finalTotal": body.orderTotal - check.discount_amount,
        "coupon": {
            "code": check.coupon.code,
            "discountType": check.coupon.discount_type,
            "discountValue": check.coupon.discount_value,
            "description": check.coupon.description,
        },
    }


@router.get("/coupons/suggestions")
def coupon_suggestions(orderTotal: int = 0, db: Session = Depends(get_db)):
    items = []
    for c in coupon_service.suggestions(db, orderTotal):
        items.append({
            "code": c.code,
            "discountType": c.discount_type,
            "discountValue": c.discount_value,
            "description": c.description,
            "estimatedDiscount": coupon_service.compute_discount(c, orderTotal),
        })
    return {"items": items}


@router.get("/coupons/usage")
def coupon_usage(couponId: str | None = None, limit: int = 200,
                 db: Session = Depends(get_db),
                 me: Principal = Depends(require_roles("admin", "staff"))):
    rows = coupon_service.usage_history(db, couponId, limit=min(limit, 1000))
    return {"items": [
        {
            "couponId": u.coupon_id,
            "code": code,
            "bookingId": u.booking_id,
            "customerName": u.customer_name,
            "customerWhatsapp": u.customer_whatsapp,
            "discountAmount": u.discount_amount,
            "orderTotal": u.order_total,
            "usedAt": u.used_at.isoformat() if u.used_at else None,
        }
        for u, code in rows
    ]}


@router.get("/coupons")
def list_coupons(activeOnly: bool = False,
                 db: Session = Depends(get_db),
                 me: Principal = Depends(require_roles("admin", "staff"))):
    return {"items": [coupon_out(c) for c in coupon_service.list_coupons(db, active_only=activeOnly)]}


@router.post("/coupons", status_code=201)
def create_coupon(body: CouponIn, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    return coupon_out(coupon_service.create_coupon(db, body, actor=me.subject))


@router.patch("/coupons/{coupon_id}")
def update_coupon(coupon_id: str, body: CouponPatch,
                  db: Session = Depends(get_db),
                  me: Principal = Depends(require_roles("admin"))):
    return coupon_out(coupon_service.update_coupon(db, coupon_id, body, actor=me.subject))


@router.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    coupon_service.delete_coupon(db, coupon_id, actor=me.subject)
    return {"ok": True, "id": coupon_id}
