"""Payment-proof images on disk, plus the one-off move off inline base64."""
import base64
import binascii
import logging
import os
import re
import time
import uuid
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ValidationError
from app.db.session import transaction
from app.models.payment import Payment
from app.services.file_lock import FileLock

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)


def decode_data_uri(data_uri: str, max_bytes: int | None = None) -> tuple[str, bytes]:
    max_bytes = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    m = _DATA_URI.match(data_uri or "")
    if not m:
        raise ValidationError("Invalid base64 image data")
    mime = m.group("mime").lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"Unsupported image type: {mime}", mime=mime)
    try:
        payload = base64.b64decode(m.group("data"), validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 image data")
    if len(payload) > max_bytes:
        raise ValidationError("Image exceeds upload size limit", size=len(payload), limit=max_bytes)
    return mime, payload


def save_base64_image(data_uri: str, booking_id: str, payment_index: int, locks: FileLock,
                      upload_dir: str | None = None) -> str:
    """Write the image and return its path relative to the upload dir."""
    upload_dir = upload_dir or settings.UPLOAD_DIR
    mime, payload = decode_data_uri(data_uri)

    month = datetime.now(timezone.utc).strftime("%Y-%m")
    name = f"{booking_id}_{payment_index}_{int(time.time() * 1000)}_{uuid.uuid4().hex}{ALLOWED_MIME_TYPES[mime]}"
    relative = f"{month}/{name}"
    target_dir = os.path.join(upload_dir, month)

    with locks.hold(f"upload:{booking_id}:{payment_index}"):
        os.makedirs(target_dir, exist_ok=True)
        with open(os.path.join(target_dir, name), "wb") as f:
            f.write(payload)

    logger.info("payment_proof_saved", extra={"extra": {"booking_id": booking_id, "file": relative, "bytes": len(payload)}})
    return relative


def migrate_inline_proofs(db: Session, locks: FileLock, upload_dir: str | None = None) -> dict[str, int]:
    """Move every inline ``data:image`` proof to a file. Each payment commits on its own."""
    stats = {"success": 0, "failed": 0, "skipped": 0}
    payments = db.execute(
        select(Payment).where(Payment.proof_base64.is_not(None)).order_by(Payment.booking_id, Payment.id)
    ).scalars().all()

    index_by_booking: dict[str, int] = {}
    for p in payments:
        idx = index_by_booking.get(p.booking_id, 0)
        index_by_booking[p.booking_id] = idx + 1

        if not (p.proof_base64 or "").startswith("data:image"):
            stats["skipped"] += 1
            continue
        try:
            relative = save_base64_image(p.proof_base64, p.booking_id, idx, locks, upload_dir=upload_dir)
        except (ValidationError, OSError) as exc:
            stats["failed"] += 1
            logger.warning("payment_proof_migration_failed", extra={"extra": {
                "payment_id": p.id, "booking_id": p.booking_id, "error": str(exc),
            }})
            continue
        with transaction(db, "payment.migrate_proof", payment_id=p.id, booking_id=p.booking_id):
            p.proof_filename = relative
            p.proof_base64 = None
        stats["success"] += 1

    logger.info("payment_proof_migration_done", extra={"extra": stats})
    return stats
