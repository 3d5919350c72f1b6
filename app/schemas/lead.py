import datetime as dt
from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional

from app.schemas.booking import WHATSAPP_PATTERN

LeadStatus = Literal["New", "Contacted", "Follow Up", "Won", "Lost", "Converted"]
LeadSource = Literal[
    "Meta Ads", "Organic", "Referral", "Instagram", "WhatsApp", "Phone Call", "Website Form", "Other",
]
InteractionType = Literal["WhatsApp", "Phone", "Email", "Note"]

class LeadIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    whatsapp: str = Field(min_length=8, max_length=20, pattern=WHATSAPP_PATTERN)
    email: Optional[EmailStr] = None
    status: LeadStatus = "New"
    source: LeadSource
    notes: Optional[str] = Field(default=None, max_length=2000)
    assignedTo: Optional[str] = Field(default=None, max_length=100)
    nextFollowUp: Optional[dt.date] = None

class LeadPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    whatsapp: Optional[str] = Field(default=None, min_length=8, max_length=20, pattern=WHATSAPP_PATTERN)
    email: Optional[EmailStr] = None
    status: Optional[LeadStatus] = None
    source: Optional[LeadSource] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    assignedTo: Optional[str] = Field(default=None, max_length=100)
    nextFollowUp: Optional[dt.date] = None

class LeadStatusIn(BaseModel):
    status: LeadStatus

class InteractionIn(BaseModel):
    interactionType: InteractionType
    content: Optional[str] = Field(default=None, max_length=2000)

class LeadConvertIn(BaseModel):
    category: str
    bookingDate: Optional[str] = None  # defaults to the follow-up date, else a week out
    totalPrice: int = Field(default=0, ge=0)
    serviceId: Optional[str] = None
