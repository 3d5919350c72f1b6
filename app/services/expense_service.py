import uuid
from datetime import date
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.session import transaction
from app.models.expense import Expense
from app.schemas.expense import ExpenseIn, ExpensePatch
from app.services.audit_service import log_audit
from app.services.finance_service import parse_range


def list_expenses(db: Session, start: str | date | None = None, end: str | date | None = None) -> list[Expense]:
    stmt = select(Expense)
    if start and end:
        lo, hi = parse_range(start, end)
        stmt = stmt.where(Expense.date >= lo, Expense.date < hi)
    return list(db.execute(stmt.order_by(Expense.date.desc(), Expense.created_at.desc())).scalars().all())

def get_expense(db: Session, expense_id: str) -> Expense:
    e = db.get(Expense, expense_id)
    if not e:
        raise NotFoundError("Expense not found", expense_id=expense_id)
    return e

def create_expense(db: Session, data: ExpenseIn, actor: str) -> Expense:
    e = Expense(
        id=str(uuid.uuid4()),
        date=data.date.isoformat(),
        category=data.category,
        description=data.description,
        amount=data.amount,
        created_by=actor,
    )
    with transaction(db, "expense.create"):
        db.add(e)
        log_audit(db, actor, "expense.create", "expense", e.id, {"amount": e.amount, "category": e.category})
    return e

def update_expense(db: Session, expense_id: str, data: ExpensePatch, actor: str) -> Expense:
    e = get_expense(db, expense_id)
    changes = data.model_dump(exclude_unset=True)
    with transaction(db, "expense.update", expense_id=expense_id):
        if changes.get("date") is not None:
            e.date = changes["date"].isoformat()
        if changes.get("category") is not None:
            e.category = changes["category"]
        if changes.get("description") is not None:
            e.description = changes["description"]
        if changes.get("amount") is not None:
            e.amount = changes["amount"]
        log_audit(db, actor, "expense.update", "expense", e.id, {"fields": sorted(changes)})
    return e

def delete_expense(db: Session, expense_id: str, actor: str) -> None:
    e = get_expense(db, expense_id)
    with transaction(db, "expense.delete", expense_id=expense_id):
        db.delete(e)
        log_audit(db, actor, "expense.delete", "expense", expense_id, {"amount": e.amount})

def summary_by_category(db: Session, start: str | date, end: str | date) -> dict[str, int]:
    lo, hi = parse_range(start, end)
    rows = db.execute(
        select(Expense.category, func.coalesce(func.sum(Expense.amount), 0))
        .where(Expense.date >= lo, Expense.date < hi)
        .group_by(Expense.category)
    ).all()
    return {category: int(total) for category, total in rows}
