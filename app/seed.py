import json
import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.config import settings
from app.db.session import Database
from app.models.addon import Addon
from app.models.coupon import Coupon
from app.models.payment_method import PaymentMethod
from app.models.photographer import Photographer

logger = logging.getLogger(__name__)

PHOTOGRAPHERS = [
    ("Budi Santoso", "081234567801", "Wedding & Prewedding"),
    ("Sari Wulandari", "081234567802", "Studio Portrait"),
]

ADDONS = [
    ("Extra 10 edited photos", 150000, []),
    ("Printed album 20x30", 450000, ["Wedding", "Prewedding Bronze", "Prewedding Silver", "Prewedding Gold"]),
    ("Extra hour on location", 300000, ["Outdoor", "Outdoor / On Location", "Wedding"]),
    ("Additional person", 50000, ["Indoor", "Indoor Studio", "Family", "Self Photo", "Pas Foto"]),
]

COUPONS = [
    # code, type, value, min_purchase, max_discount, description
    ("WELCOME10", "percentage", 10, 500000, 100000, "10% off for new customers"),
    ("HEMAT50K", "fixed", 50000, 300000, None, "Rp 50.000 off"),
]

PAYMENT_METHODS = [
    # name, provider, account name, account number
    ("BCA Transfer", "BCA", "Studio Foto", "0000000001"),
    ("Mandiri Transfer", "Mandiri", "Studio Foto", "0000000002"),
]


def ensure_photographer(db: Session, name: str, phone: str, specialty: str):
    if db.execute(select(Photographer.id).where(Photographer.name == name)).first():
        return
    db.add(Photographer(id=str(uuid.uuid4()), name=name, phone=phone, specialty=specialty, is_active=True))


def ensure_addon(db: Session, name: str, price: int, categories: list[str]):
    if db.execute(select(Addon.id).where(Addon.name == name)).first():
        return
    db.add(Addon(
        id=str(uuid.uuid4()),
        name=name,
        price=price,
        applicable_categories=json.dumps(categories) if categories else None,
        is_active=True,
    ))


def ensure_coupon(db: Session, code: str, kind: str, value: float, min_purchase, max_discount, description: str):
    if db.execute(select(Coupon.id).where(Coupon.code == code)).first():
        return
    db.add(Coupon(
        id=str(uuid.uuid4()),
        code=code,
        discount_type=kind,
        discount_value=value,
        min_purchase=min_purchase,
        max_discount=max_discount,
        usage_count=0,
        is_active=True,
        description=description,
    ))


def ensure_payment_methods(db: Session):
    # only an empty table gets defaults; admins may have removed them on purpose
    if db.execute(select(PaymentMethod.id)).first():
        return
    for order, (name, provider, account_name, account_number) in enumerate(PAYMENT_METHODS):
        db.add(PaymentMethod(
            id=str(uuid.uuid4()),
            name=name,
            provider_name=provider,
            account_name=account_name,
            account_number=account_number,
            is_active=True,
            display_order=order,
        ))


def run(db: Session | None = None):
    owned = None
    if db is None:
        owned = Database(settings.DATABASE_URL).init()
        db = owned.session()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM photographers LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("seed_skipped", extra={"extra": {"reason": "missing_tables"}})
            return

        for name, phone, specialty in PHOTOGRAPHERS:
            ensure_photographer(db, name, phone, specialty)
        for name, price, categories in ADDONS:
            ensure_addon(db, name, price, categories)
        if settings.ENV != "production":
            for row in COUPONS:
                ensure_coupon(db, *row)
            ensure_payment_methods(db)
        db.commit()
        logger.info("seed_done")
    finally:
        db.close()
        if owned is not None:
            owned.dispose()
