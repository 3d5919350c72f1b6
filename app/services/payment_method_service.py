import uuid
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.session import transaction
from app.models.payment_method import PaymentMethod
from app.schemas.payment_method import PaymentMethodIn, PaymentMethodPatch
from app.services.audit_service import log_audit

_PATCH_COLUMNS = {
    "name": "name",
    "providerName": "provider_name",
    "accountName": "account_name",
    "accountNumber": "account_number",
    "qrisImageUrl": "qris_image_url",
    "isActive": "is_active",
    "displayOrder": "display_order",
}
# the only column that may be cleared
_NULLABLE = {"qrisImageUrl"}


def list_payment_methods(db: Session, active_only: bool = False) -> list[PaymentMethod]:
    stmt = select(PaymentMethod)
    if active_only:
        stmt = stmt.where(PaymentMethod.is_active.is_(True))
    stmt = stmt.order_by(PaymentMethod.display_order.asc(), PaymentMethod.created_at.desc())
    return list(db.execute(stmt).scalars().all())

def get_payment_method(db: Session, method_id: str) -> PaymentMethod:
    m = db.get(PaymentMethod, method_id)
    if not m:
        raise NotFoundError("Payment method not found", payment_method_id=method_id)
    return m

def create_payment_method(db: Session, data: PaymentMethodIn, actor: str) -> PaymentMethod:
    m = PaymentMethod(
        id=str(uuid.uuid4()),
        name=data.name.strip(),
        provider_name=data.providerName.strip(),
        account_name=data.accountName.strip(),
        account_number=data.accountNumber.strip(),
        qris_image_url=data.qrisImageUrl or None,
        is_active=data.isActive,
        display_order=data.displayOrder,
    )
    with transaction(db, "payment_method.create"):
        db.add(m)
        log_audit(db, actor, "payment_method.create", "payment_method", m.id, {
            "name": m.name,
            "provider": m.provider_name,
        })
    return m

def update_payment_method(db: Session, method_id: str, data: PaymentMethodPatch, actor: str) -> PaymentMethod:
    m = get_payment_method(db, method_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "payment_method.update", payment_method_id=method_id):
        for field, column in _PATCH_COLUMNS.items():
            if field not in changes:
                continue
            value = changes[field]
            if field in _NULLABLE:
                setattr(m, column, value or None)
            elif value is not None:
                setattr(m, column, value.strip() if isinstance(value, str) else value)
        log_audit(db, actor, "payment_method.update", "payment_method", m.id, {"fields": sorted(changes)})
    return m

def delete_payment_method(db: Session, method_id: str, actor: str) -> None:
    m = get_payment_method(db, method_id)
    with transaction(db, "payment_method.delete", payment_method_id=method_id):
        db.delete(m)
        log_audit(db, actor, "payment_method.delete", "payment_method", method_id, {"name": m.name})
