import json
import uuid
from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.session import transaction
from app.models.addon import Addon, BookingAddon
from app.models.booking import Booking
from app.models.photographer import Photographer
from app.schemas.catalog import AddonIn, AddonPatch, PhotographerIn, PhotographerPatch
from app.services.audit_service import log_audit
from app.services.normalize import validate_category


def list_photographers(db: Session, active_only: bool = False) -> list[Photographer]:
    stmt = select(Photographer)
    if active_only:
        stmt = stmt.where(Photographer.is_active.is_(True))
    return list(db.execute(stmt.order_by(Photographer.name)).scalars().all())

def get_photographer(db: Session, photographer_id: str) -> Photographer:
    p = db.get(Photographer, photographer_id)
    if not p:
        raise NotFoundError("Photographer not found", photographer_id=photographer_id)
    return p

def create_photographer(db: Session, data: PhotographerIn, actor: str) -> Photographer:
    p = Photographer(
        id=str(uuid.uuid4()),
        name=data.name.strip(),
        phone=data.phone,
        specialty=data.specialty,
        is_active=data.isActive,
    )
    with transaction(db, "photographer.create"):
        db.add(p)
        log_audit(db, actor, "photographer.create", "photographer", p.id, {"name": p.name})
    return p

def update_photographer(db: Session, photographer_id: str, data: PhotographerPatch, actor: str) -> Photographer:
    p = get_photographer(db, photographer_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "photographer.update", photographer_id=photographer_id):
        if changes.get("name") is not None:
            p.name = changes["name"].strip()
        if "phone" in changes:
            p.phone = changes["phone"]
        if "specialty" in changes:
            p.specialty = changes["specialty"]
        if changes.get("isActive") is not None:
            p.is_active = changes["isActive"]
        log_audit(db, actor, "photographer.update", "photographer", p.id, {"fields": sorted(changes)})
    return p

def delete_photographer(db: Session, photographer_id: str, actor: str) -> None:
    """Delete a photographer. Their bookings stay, unassigned."""
    p = get_photographer(db, photographer_id)
    with transaction(db, "photographer.delete", photographer_id=photographer_id):
        released = db.execute(
            update(Booking).where(Booking.photographer_id == photographer_id).values(photographer_id=None)
            .execution_options(synchronize_session="fetch")
        ).rowcount
        db.delete(p)
        log_audit(db, actor, "photographer.delete", "photographer", photographer_id, {"unassigned_bookings": released})


def list_addons(db: Session, active_only: bool = False, category: str | None = None) -> list[Addon]:
    stmt = select(Addon)
    if active_only:
        stmt = stmt.where(Addon.is_active.is_(True))
    addons = list(db.execute(stmt.order_by(Addon.name)).scalars().all())
    if category:
        addons = [a for a in addons if a.applies_to(category)]
    return addons

def get_addon(db: Session, addon_id: str) -> Addon:
    a = db.get(Addon, addon_id)
    if not a:
        raise NotFoundError("Add-on not found", addon_id=addon_id)
    return a

def _categories_json(categories: list[str]) -> str | None:
    cats = [validate_category(c) for c in categories]
    return json.dumps(cats, ensure_ascii=False) if cats else None

def create_addon(db: Session, data: AddonIn, actor: str) -> Addon:
    a = Addon(
        id=str(uuid.uuid4()),
        name=data.name.strip(),
        price=data.price,
        applicable_categories=_categories_json(data.applicableCategories),
        is_active=data.isActive,
    )
    with transaction(db, "addon.create"):
        db.add(a)
        log_audit(db, actor, "addon.create", "addon", a.id, {"name": a.name, "price": a.price})
    return a

def update_addon(db: Session, addon_id: str, data: AddonPatch, actor: str) -> Addon:
    """Catalog edits never touch booking snapshots."""
    a = get_addon(db, addon_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "addon.update", addon_id=addon_id):
        if changes.get("name") is not None:
            a.name = changes["name"].strip()
        if changes.get("price") is not None:
            a.price = changes["price"]
        if "applicableCategories" in changes:
            a.applicable_categories = _categories_json(changes["applicableCategories"] or [])
        if changes.get("isActive") is not None:
            a.is_active = changes["isActive"]
        log_audit(db, actor, "addon.update", "addon", a.id, {"fields": sorted(changes)})
    return a

def delete_addon(db: Session, addon_id: str, actor: str) -> None:
    a = get_addon(db, addon_id)
    with transaction(db, "addon.delete", addon_id=addon_id):
        removed = db.execute(
            delete(BookingAddon).where(BookingAddon.addon_id == addon_id)
            .execution_options(synchronize_session="fetch")
        ).rowcount
        db.delete(a)
        log_audit(db, actor, "addon.delete", "addon", addon_id, {"removed_booking_lines": removed})
