from datetime import datetime
from pydantic import BaseModel, Field
from typing import Literal, Optional

class CouponIn(BaseModel):
    code: str = Field(min_length=1, max_length=40)
    discountType: Literal["percentage", "fixed"]
    discountValue: float = Field(gt=0)
    minPurchase: Optional[int] = Field(default=None, ge=0)
    maxDiscount: Optional[int] = Field(default=None, ge=0)
    usageLimit: Optional[int] = Field(default=None, ge=0)
    validFrom: Optional[datetime] = None
    validUntil: Optional[datetime] = None
    isActive: bool = True
    description: Optional[str] = Field(default=None, max_length=255)

class CouponPatch(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=40)
    discountType: Optional[Literal["percentage", "fixed"]] = None
    discountValue: Optional[float] = Field(default=None, gt=0)
    minPurchase: Optional[int] = Field(default=None, ge=0)
    maxDiscount: Optional[int] = Field(default=None, ge=0)
    usageLimit: Optional[int] = Field(default=None, ge=0)
    validFrom: Optional[datetime] = None
    validUntil: Optional[datetime] = None
    isActive: Optional[bool] = None
    description: Optional[str] = Field(default=None, max_length=255)

class CouponValidateIn(BaseModel):
    code: str
    orderTotal: int = Field(ge=0)
