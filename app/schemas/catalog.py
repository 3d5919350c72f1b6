from pydantic import BaseModel, Field
from typing import List, Optional

class PhotographerIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    specialty: Optional[str] = Field(default=None, max_length=100)
    isActive: bool = True

class PhotographerPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    specialty: Optional[str] = Field(default=None, max_length=100)
    isActive: Optional[bool] = None

class AddonIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    price: int = Field(ge=0)
    applicableCategories: List[str] = []  # empty = every category
    isActive: bool = True

class AddonPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    price: Optional[int] = Field(default=None, ge=0)
    applicableCategories: Optional[List[str]] = None
    isActive: Optional[bool] = None
