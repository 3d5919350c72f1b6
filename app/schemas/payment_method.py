from pydantic import BaseModel, Field
from typing import Optional

class PaymentMethodIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    providerName: str = Field(min_length=1, max_length=100)
    accountName: str = Field(min_length=1, max_length=100)
    accountNumber: str = Field(min_length=1, max_length=50)
    qrisImageUrl: Optional[str] = Field(default=None, max_length=500)
    isActive: bool = True
    displayOrder: int = 0

class PaymentMethodPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    providerName: Optional[str] = Field(default=None, min_length=1, max_length=100)
    accountName: Optional[str] = Field(default=None, min_length=1, max_length=100)
    accountNumber: Optional[str] = Field(default=None, min_length=1, max_length=50)
    qrisImageUrl: Optional[str] = Field(default=None, max_length=500)
    isActive: Optional[bool] = None
    displayOrder: Optional[int] = None
