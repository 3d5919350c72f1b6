from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, get_locks, require_roles
from app.api.v1.routes.bookings import booking_out
from app.models.lead import Lead, LeadInteraction
from app.schemas.lead import InteractionIn, LeadConvertIn, LeadIn, LeadPatch, LeadStatusIn
from app.services import lead_service
from app.services.file_lock import FileLock

router = APIRouter(tags=["leads"])

STAFF = require_roles("admin", "staff")


def _iso(value):
    return value.isoformat() if value else None

def lead_out(lead: Lead) -> dict:
    return {
        "id": lead.id,
        "name": lead.name,
        "whatsapp": lead.whatsapp,
        "email": lead.email,
        "status": lead.status,
        "source": lead.source,
        "notes": lead.notes,
        "assignedTo": lead.assigned_to,
        "nextFollowUp": lead.next_follow_up,
        "bookingId": lead.booking_id,
        "convertedAt": _iso(lead.converted_at),
        "lastContactedAt": _iso(lead.last_contacted_at),
        "createdAt": _iso(lead.created_at),
        "updatedAt": _iso(lead.updated_at),
    }

def interaction_out(i: LeadInteraction) -> dict:
    return {
        "id": i.id,
        "leadId": i.lead_id,
        "interactionType": i.interaction_type,
        "content": i.content,
        "createdBy": i.created_by,
        "createdAt": _iso(i.created_at),
    }


@router.get("/leads")
def list_leads(status: str | None = None, source: str | None = None, assignedTo: str | None = None,
               q: str | None = None, start: str | None = None, end: str | None = None,
               page: int = 1, limit: int = 50,
               db: Session = Depends(get_db),
               me: Principal = Depends(STAFF)):
    items, total = lead_service.list_leads(db, status, source, assignedTo, q, start, end, page, limit)
    return {"total": total, "page": max(page, 1), "items": [lead_out(x) for x in items]}

@router.get("/leads/stats")
def lead_stats(db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return lead_service.lead_stats(db)

@router.post("/leads", status_code=201)
def create_lead(body: LeadIn, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return lead_out(lead_service.create_lead(db, body, actor=me.subject))

@router.get("/leads/{lead_id}")
def get_lead(lead_id: str, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return lead_out(lead_service.get_lead(db, lead_id))

@router.patch("/leads/{lead_id}")
def update_lead(lead_id: str, body: LeadPatch, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return lead_out(lead_service.update_lead(db, lead_id, body, actor=me.subject))

@router.delete("/leads/{lead_id}")
def delete_lead(lead_id: str, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    lead_service.delete_lead(db, lead_id, actor=me.subject)
    return {"ok": True, "id": lead_id}

@router.post("/leads/{lead_id}/status")
def set_lead_status(lead_id: str, body: LeadStatusIn, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return lead_out(lead_service.set_lead_status(db, lead_id, body.status, actor=me.subject))


@router.get("/leads/{lead_id}/interactions")
def list_interactions(lead_id: str, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return {"items": [interaction_out(i) for i in lead_service.list_interactions(db, lead_id)]}

@router.post("/leads/{lead_id}/interactions", status_code=201)
def add_interaction(lead_id: str, body: InteractionIn, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return interaction_out(lead_service.add_interaction(db, lead_id, body, actor=me.subject))


@router.post("/leads/{lead_id}/convert")
def convert_lead(lead_id: str, body: LeadConvertIn,
                 db: Session = Depends(get_db),
                 locks: FileLock = Depends(get_locks),
                 me: Principal = Depends(STAFF)):
    lead, booking = lead_service.convert_lead(db, locks, lead_id, body, actor=me.subject)
    return {"lead": lead_out(lead), "booking": booking_out(booking)}
