from __future__ import annotations

from typing import Optional

from kawa.db import DateLike, date_range_where, q, x
from kawa.errors import NotFound, ValidationError
from kawa.logger import log
from kawa.models import Expense, InterestPayment, Loss
from kawa.utils import money, parse_date


def _required_text(value: Optional[str], field: str) -> str:
    s = str(value or "").strip()
    if not s:
        raise ValidationError(f"{field} is required.")
    return s


# -------------------------
# Expenses
# -------------------------

def _row_to_expense(r) -> Expense:
    return Expense(
        id=int(r["id"]),
        name=str(r["name"]),
        amount=int(r["amount"]),
        expense_date=parse_date(r["expense_date"], "Expense date"),
        notes=r["notes"],
    )


def list_expenses(conn, date_from: DateLike = None, date_to: DateLike = None) -> list[Expense]:
    where, params = date_range_where("expense_date", date_from, date_to)
    rows = q(conn, f"SELECT * FROM expenses{where} ORDER BY expense_date, id", params)
    return [_row_to_expense(r) for r in rows]


def create_expense(conn, *, name: str, amount: int, expense_date: DateLike, notes: Optional[str] = None) -> Expense:
    expense_id = x(
        conn,
        "INSERT INTO expenses (name, amount, expense_date, notes) VALUES (?, ?, ?, ?)",
        (
            _required_text(name, "Name"),
            money(amount, "Amount", required=True),
            parse_date(expense_date, "Expense date").isoformat(),
            notes,
        ),
    )
    log.info(f"Recorded expense {name}: {amount}")
    return _row_to_expense(q(conn, "SELECT * FROM expenses WHERE id=?", (expense_id,))[0])


# -------------------------
# Interest payments
# -------------------------

def _row_to_interest(r) -> InterestPayment:
    return InterestPayment(
        id=int(r["id"]),
        name=str(r["name"]),
        amount=int(r["amount"]),
        source=str(r["source"]),
        payment_date=parse_date(r["payment_date"], "Payment date"),
        creditor=r["creditor"],
        notes=r["notes"],
    )


def list_interests(conn, date_from: DateLike = None, date_to: DateLike = None) -> list[InterestPayment]:
    where, params = date_range_where("payment_date", date_from, date_to)
    rows = q(conn, f"SELECT * FROM interest_payments{where} ORDER BY payment_date, id", params)
    return [_row_to_interest(r) for r in rows]


def create_interest(
    conn,
    *,
    name: str,
    amount: int,
    source: str,
    payment_date: DateLike,
    creditor: Optional[str] = None,
    notes: Optional[str] = None,
) -> InterestPayment:
    interest_id = x(
        conn,
        """
        INSERT INTO interest_payments (name, amount, source, creditor, payment_date, notes)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            _required_text(name, "Name"),
            money(amount, "Amount", required=True),
            _required_text(source, "Source"),
            creditor,
            parse_date(payment_date, "Payment date").isoformat(),
            notes,
        ),
    )
    log.info(f"Recorded interest payment {name} ({source}): {amount}")
    return _row_to_interest(q(conn, "SELECT * FROM interest_payments WHERE id=?", (interest_id,))[0])


# -------------------------
# Losses
# -------------------------

def _row_to_loss(r) -> Loss:
    return Loss(
        id=int(r["id"]),
        name=str(r["name"]),
        amount=int(r["amount"]),
        reason=str(r["reason"]),
        loss_date=parse_date(r["loss_date"], "Loss date"),
        order_id=r["order_id"],
        notes=r["notes"],
    )


def list_losses(conn, date_from: DateLike = None, date_to: DateLike = None) -> list[Loss]:
    where, params = date_range_where("loss_date", date_from, date_to)
    rows = q(conn, f"SELECT * FROM losses{where} ORDER BY loss_date, id", params)
    return [_row_to_loss(r) for r in rows]


def create_loss(
    conn,
    *,
    name: str,
    amount: int,
    reason: str,
    loss_date: DateLike,
    order_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Loss:
    if order_id is not None and not q(conn, "SELECT 1 FROM orders WHERE id=?", (int(order_id),)):
        raise NotFound(f"Order {order_id} not found.")

    loss_id = x(
        conn,
        """
        INSERT INTO losses (name, amount, reason, loss_date, order_id, notes)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            _required_text(name, "Name"),
            money(amount, "Amount", required=True),
            _required_text(reason, "Reason"),
            parse_date(loss_date, "Loss date").isoformat(),
            int(order_id) if order_id is not None else None,
            notes,
        ),
    )
    log.info(f"Recorded loss {name} ({reason}): {amount}")
    return _row_to_loss(q(conn, "SELECT * FROM losses WHERE id=?", (loss_id,))[0])
