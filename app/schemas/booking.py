from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

WHATSAPP_PATTERN = r"^[0-9+\-\s()]+$"


def _check_link(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if v and not (v.startswith("http://") or v.startswith("https://")):
        raise ValueError("locationLink must be a URL or empty")
    return v


class PaymentIn(BaseModel):
    date: str
    amount: int = Field(ge=0)
    note: Optional[str] = Field(default="", max_length=200)
    proofFilename: Optional[str] = None
    proofBase64: Optional[str] = None

class AddonLineIn(BaseModel):
    addonId: str
    quantity: int = Field(default=1, ge=1)
    priceAtBooking: Optional[int] = Field(default=None, ge=0)  # defaults to the catalog price

class BookingCreate(BaseModel):
    customerName: str = Field(min_length=1, max_length=100)
    customerWhatsapp: str = Field(min_length=8, max_length=20, pattern=WHATSAPP_PATTERN)
    category: str
    serviceId: Optional[str] = None
    bookingDate: str
    notes: Optional[str] = Field(default="", max_length=500)
    locationLink: Optional[str] = ""
    status: str = "Active"
    totalPrice: int = Field(default=0, ge=0)
    payments: List[PaymentIn] = []
    addons: List[AddonLineIn] = []
    photographerId: Optional[str] = None

    servicePrice: Optional[int] = Field(default=None, ge=0)
    baseDiscount: Optional[int] = Field(default=None, ge=0)
    addonsTotal: Optional[int] = Field(default=None, ge=0)
    couponDiscount: Optional[int] = Field(default=None, ge=0)
    couponCode: Optional[str] = None

    @field_validator("customerName")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customerName is required")
        return v

    @field_validator("locationLink")
    @classmethod
    def _link(cls, v):
        return _check_link(v)

class BookingPatch(BaseModel):
    customerName: Optional[str] = Field(default=None, min_length=1, max_length=100)
    customerWhatsapp: Optional[str] = Field(default=None, min_length=8, max_length=20, pattern=WHATSAPP_PATTERN)
    category: Optional[str] = None
    serviceId: Optional[str] = None
    bookingDate: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    locationLink: Optional[str] = None
    status: Optional[str] = None
    totalPrice: Optional[int] = Field(default=None, ge=0)
    payments: Optional[List[PaymentIn]] = None  # replaces the stored ledger
    addons: Optional[List[AddonLineIn]] = None  # replaces the stored add-ons
    photographerId: Optional[str] = None

    servicePrice: Optional[int] = Field(default=None, ge=0)
    baseDiscount: Optional[int] = Field(default=None, ge=0)
    addonsTotal: Optional[int] = Field(default=None, ge=0)
    couponDiscount: Optional[int] = Field(default=None, ge=0)
    couponCode: Optional[str] = None

    @field_validator("locationLink")
    @classmethod
    def _link(cls, v):
        return _check_link(v)

class StatusIn(BaseModel):
    status: str

class RescheduleIn(BaseModel):
    newDate: str
    reason: Optional[str] = Field(default=None, max_length=500)

class PhotographerAssignIn(BaseModel):
    photographerId: Optional[str] = None
