import datetime as dt
from pydantic import BaseModel, Field
from typing import Literal, Optional

ExpenseCategory = Literal["operational", "equipment", "marketing", "salary", "other"]

class ExpenseIn(BaseModel):
    date: dt.date
    category: ExpenseCategory
    description: str = Field(default="", max_length=500)
    amount: int = Field(ge=0)

class ExpensePatch(BaseModel):
    date: Optional[dt.date] = None
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = Field(default=None, max_length=500)
    amount: Optional[int] = Field(default=None, ge=0)
