from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, require_roles
from app.models.payment_method import PaymentMethod
from app.schemas.payment_method import PaymentMethodIn, PaymentMethodPatch
from app.services import payment_method_service

router = APIRouter(tags=["payment-methods"])

STAFF = require_roles("admin", "staff")


def payment_method_out(m: PaymentMethod) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "providerName": m.provider_name,
        "accountName": m.account_name,
        "accountNumber": m.account_number,
        "qrisImageUrl": m.qris_image_url,
        "isActive": m.is_active,
        "displayOrder": m.display_order,
    }


@router.get("/payment-methods/active")
def active_payment_methods(db: Session = Depends(get_db)):
    # public: customers see where to transfer
    return {"items": [payment_method_out(m) for m in payment_method_service.list_payment_methods(db, active_only=True)]}

@router.get("/payment-methods")
def list_payment_methods(db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return {"items": [payment_method_out(m) for m in payment_method_service.list_payment_methods(db)]}

@router.post("/payment-methods", status_code=201)
def create_payment_method(body: PaymentMethodIn, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    return payment_method_out(payment_method_service.create_payment_method(db, body, actor=me.subject))

@router.patch("/payment-methods/{method_id}")
def update_payment_method(method_id: str, body: PaymentMethodPatch,
                          db: Session = Depends(get_db),
                          me: Principal = Depends(require_roles("admin"))):
    return payment_method_out(payment_method_service.update_payment_method(db, method_id, body, actor=me.subject))

@router.delete("/payment-methods/{method_id}")
def delete_payment_method(method_id: str, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    payment_method_service.delete_payment_method(db, method_id, actor=me.subject)
    return {"ok": True, "id": method_id}
