"""Lead CRM: prospects, their contact log, and conversion into bookings."""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.session import transaction
from app.models.booking import Booking
from app.models.lead import Lead, LeadInteraction
from app.schemas.booking import BookingCreate
from app.schemas.lead import InteractionIn, LeadConvertIn, LeadIn, LeadPatch
from app.services import booking_service
from app.services.audit_service import log_audit
from app.services.file_lock import FileLock
from app.services.finance_service import OPEN_END, OPEN_START, parse_range

logger = logging.getLogger(__name__)

# leads that no longer need a follow-up
CLOSED_STATUSES = ("Converted", "Lost")

_PATCH_COLUMNS = {
    "name": "name",
    "whatsapp": "whatsapp",
    "email": "email",
    "status": "status",
    "source": "source",
    "notes": "notes",
    "assignedTo": "assigned_to",
}
_NOT_NULL_PATCH = {"name", "whatsapp", "status", "source"}


def lead_lock_key(lead_id: str) -> str:
    return f"lead:{lead_id}"


def _ensure_unique_whatsapp(db: Session, whatsapp: str, exclude_id: str | None = None) -> None:
    stmt = select(Lead.id).where(Lead.whatsapp == whatsapp)
    if exclude_id:
        stmt = stmt.where(Lead.id != exclude_id)
    if db.execute(stmt).first():
        raise ConflictError("Lead with this WhatsApp number already exists", whatsapp=whatsapp)


def list_leads(
    db: Session,
    status: str | None = None,
    source: str | None = None,
    assigned_to: str | None = None,
    search: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Lead], int]:
    """Filtered page of leads, newest first."""
    stmt = select(Lead)
    if status:
        stmt = stmt.where(Lead.status == status)
    if source:
        stmt = stmt.where(Lead.source == source)
    if assigned_to:
        stmt = stmt.where(Lead.assigned_to == assigned_to)
    if search and search.strip():
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Lead.name.ilike(like), Lead.whatsapp.ilike(like), Lead.email.ilike(like)))
    if start_date or end_date:
        lo, hi = parse_range(start_date or OPEN_START, end_date or OPEN_END)
        stmt = stmt.where(
            Lead.created_at >= datetime.fromisoformat(lo).replace(tzinfo=timezone.utc),
            Lead.created_at < datetime.fromisoformat(hi).replace(tzinfo=timezone.utc),
        )

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    page = max(page, 1)
    limit = min(max(limit, 1), 500)
    rows = db.execute(
        stmt.order_by(Lead.created_at.desc()).offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return list(rows), total


def get_lead(db: Session, lead_id: str, fresh: bool = False) -> Lead:
    stmt = select(Lead).where(Lead.id == lead_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    lead = db.execute(stmt).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found", lead_id=lead_id)
    return lead


def create_lead(db: Session, data: LeadIn, actor: str) -> Lead:
    whatsapp = data.whatsapp.strip()
    _ensure_unique_whatsapp(db, whatsapp)
    lead = Lead(
        id=str(uuid.uuid4()),
        name=data.name.strip(),
        whatsapp=whatsapp,
        email=data.email,
        status=data.status,
        source=data.source,
        notes=data.notes,
        assigned_to=data.assignedTo,
        next_follow_up=data.nextFollowUp.isoformat() if data.nextFollowUp else None,
    )
    with transaction(db, "lead.create"):
        db.add(lead)
        log_audit(db, actor, "lead.create", "lead", lead.id, {"name": lead.name, "source": lead.source})
    logger.info("lead_created", extra={"extra": {"lead_id": lead.id, "source": lead.source}})
    return lead


def update_lead(db: Session, lead_id: str, data: LeadPatch, actor: str) -> Lead:
    lead = get_lead(db, lead_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "lead.update", lead_id=lead_id):
        if changes.get("whatsapp") is not None:
            changes["whatsapp"] = changes["whatsapp"].strip()
            _ensure_unique_whatsapp(db, changes["whatsapp"], exclude_id=lead.id)
        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()
        for field, column in _PATCH_COLUMNS.items():
            if field not in changes:
                continue
            if changes[field] is None and field in _NOT_NULL_PATCH:
                continue
            setattr(lead, column, changes[field])
        if "nextFollowUp" in changes:
            follow_up = changes["nextFollowUp"]
            lead.next_follow_up = follow_up.isoformat() if follow_up else None
        log_audit(db, actor, "lead.update", "lead", lead.id, {"fields": sorted(changes)})
    return lead


def set_lead_status(db: Session, lead_id: str, status: str, actor: str) -> Lead:
    lead = get_lead(db, lead_id)
    previous = lead.status
    with transaction(db, "lead.set_status", lead_id=lead_id):
        lead.status = status
        log_audit(db, actor, "lead.set_status", "lead", lead.id, {"from": previous, "to": status})
    return lead


def delete_lead(db: Session, lead_id: str, actor: str) -> None:
    """Delete a lead and its contact log. A booking made from it stays."""
    lead = get_lead(db, lead_id)
    with transaction(db, "lead.delete", lead_id=lead_id):
        db.delete(lead)
        log_audit(db, actor, "lead.delete", "lead", lead_id, {"name": lead.name})


def lead_stats(db: Session, today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    by_status = db.execute(select(Lead.status, func.count()).group_by(Lead.status)).all()
    by_source = db.execute(select(Lead.source, func.count()).group_by(Lead.source)).all()
    total = db.execute(select(func.count()).select_from(Lead)).scalar_one()
    needs_follow_up = db.execute(
        select(func.count()).select_from(Lead).where(
            Lead.next_follow_up.is_not(None),
            Lead.next_follow_up <= today.isoformat(),
            Lead.status.not_in(CLOSED_STATUSES),
        )
    ).scalar_one()
    return {
        "total": total,
        "byStatus": {status: count for status, count in by_status},
        "bySource": {source: count for source, count in by_source},
        "needsFollowUp": needs_follow_up,
    }


def add_interaction(db: Session, lead_id: str, data: InteractionIn, actor: str) -> LeadInteraction:
    lead = get_lead(db, lead_id)
    now = datetime.now(timezone.utc)
    interaction = LeadInteraction(
        id=str(uuid.uuid4()),
        lead_id=lead.id,
        interaction_type=data.interactionType,
        content=data.content,
        created_by=actor,
        created_at=now,
    )
    with transaction(db, "lead.add_interaction", lead_id=lead_id):
        db.add(interaction)
        # internal notes are not contact
        if data.interactionType != "Note":
            lead.last_contacted_at = now
    return interaction


def list_interactions(db: Session, lead_id: str) -> list[LeadInteraction]:
    get_lead(db, lead_id)
    stmt = (
        select(LeadInteraction)
        .where(LeadInteraction.lead_id == lead_id)
        .order_by(LeadInteraction.created_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def _default_booking_date(lead: Lead, today: date) -> str:
    day = lead.next_follow_up or (today + timedelta(days=7)).isoformat()
    return f"{day}T10:00"


def convert_lead(
    db: Session, locks: FileLock, lead_id: str, data: LeadConvertIn, actor: str, today: date | None = None
) -> tuple[Lead, Booking]:
    """Turn a Won lead into an Active booking and mark the lead Converted.

    The lead lock is held across both writes so a lead is converted at most once.
    """
    with locks.hold(lead_lock_key(lead_id)):
        lead = get_lead(db, lead_id, fresh=True)
        if lead.status != "Won":
            raise ValidationError('Only leads with status "Won" can be converted to bookings', lead_id=lead_id)
        if lead.booking_id:
            raise ValidationError("This lead has already been converted to a booking", lead_id=lead_id)

        notes = f"Converted from lead: {lead.id}"
        if lead.notes:
            notes = f"{notes}\n{lead.notes}"
        draft = BookingCreate(
            customerName=lead.name,
            customerWhatsapp=lead.whatsapp,
            category=data.category,
            serviceId=data.serviceId,
            bookingDate=data.bookingDate or _default_booking_date(lead, today or date.today()),
            notes=notes[:500],
            totalPrice=data.totalPrice,
        )
        booking = booking_service.create_booking(db, locks, draft, actor=actor)

        with transaction(db, "lead.convert", lead_id=lead_id, booking_id=booking.id):
            lead.status = "Converted"
            lead.booking_id = booking.id
            lead.converted_at = datetime.now(timezone.utc)
            log_audit(db, actor, "lead.convert", "lead", lead.id, {"booking_id": booking.id})

    logger.info("lead_converted", extra={"extra": {"lead_id": lead_id, "booking_id": booking.id}})
    return lead, booking
