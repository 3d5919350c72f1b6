from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, require_roles
from app.models.expense import Expense
from app.schemas.expense import ExpenseIn, ExpensePatch
from app.services import expense_service
from app.services.finance_service import finance_summary

router = APIRouter(tags=["finance"])

STAFF = require_roles("admin", "staff")


def expense_out(e: Expense) -> dict:
    return {
        "id": e.id,
        "date": e.date,
        "category": e.category,
        "description": e.description,
        "amount": e.amount,
        "createdBy": e.created_by,
        "createdAt": e.created_at.isoformat() if e.created_at else None,
    }


@router.get("/expenses")
def list_expenses(start: str | None = None, end: str | None = None,
                  db: Session = Depends(get_db),
                  me: Principal = Depends(STAFF)):
    items = expense_service.list_expenses(db, start, end)
    body = {"items": [expense_out(e) for e in items], "total": sum(e.amount for e in items)}
    if start and end:
        body["byCategory"] = expense_service.summary_by_category(db, start, end)
    return body

@router.post("/expenses", status_code=201)
def create_expense(body: ExpenseIn, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return expense_out(expense_service.create_expense(db, body, actor=me.subject))

@router.patch("/expenses/{expense_id}")
def update_expense(expense_id: str, body: ExpensePatch, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return expense_out(expense_service.update_expense(db, expense_id, body, actor=me.subject))

@router.delete("/expenses/{expense_id}")
def delete_expense(expense_id: str, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    expense_service.delete_expense(db, expense_id, actor=me.subject)
    return {"ok": True, "id": expense_id}


@router.get("/finance/summary")
def summary(start: str | None = None, end: str | None = None, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    return finance_summary(db, start, end)
