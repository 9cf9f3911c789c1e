from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from kawa.db import DateLike, date_range_where, q, x
from kawa.errors import NotFound, ValidationError
from kawa.logger import log
from kawa.models import ORDER_STATUSES, PAYMENT_METHODS, Order, OrderItem
from kawa.services.products import get_product
from kawa.utils import money, parse_ts


def _normalize_payment_method(payment_method: Optional[str]) -> Optional[str]:
    if not payment_method:
        return None
    pm = str(payment_method).strip().lower()
    if pm in PAYMENT_METHODS:
        return pm
    raise ValidationError(f"Invalid payment method. Use one of: {', '.join(PAYMENT_METHODS)}.")


def _normalize_status(status: Optional[str]) -> str:
    s = str(status or "paid").strip().lower()
    if s in ORDER_STATUSES:
        return s
    raise ValidationError(f"Invalid order status. Use one of: {', '.join(ORDER_STATUSES)}.")


def _generate_order_number(conn, *, created_at: datetime) -> str:
    """
    ORD-{YYYYMMDD}-{NNN}
    """
    prefix = f"ORD-{created_at.strftime('%Y%m%d')}-"
    rows = q(conn, "SELECT order_number FROM orders WHERE order_number LIKE ?", (prefix + "%",))
    seqs = [int(r["order_number"][len(prefix):]) for r in rows if r["order_number"][len(prefix):].isdigit()]
    return f"{prefix}{max(seqs, default=0) + 1:03d}"


def _list_order_items(conn, order_id: int) -> tuple[OrderItem, ...]:
    rows = q(conn, "SELECT * FROM order_items WHERE order_id=? ORDER BY id", (int(order_id),))
    return tuple(
        OrderItem(
            product_id=r["product_id"],
            product_name=str(r["product_name"]),
            product_price=int(r["product_price"]),
            quantity=int(r["quantity"]),
            product_cost=int(r["product_cost"]),
        )
        for r in rows
    )


def _row_to_order(conn, r) -> Order:
    return Order(
        id=int(r["id"]),
        order_number=str(r["order_number"]),
        created_at=parse_ts(r["created_at"]),
        total=int(r["total"]),
        profit=int(r["profit"]),
        status=str(r["status"]),
        subtotal=int(r["subtotal"]),
        shipping_cost=int(r["shipping_cost"]),
        discount=int(r["discount"]),
        total_cost=int(r["total_cost"]),
        payment_method=r["payment_method"],
        payment_fee=int(r["payment_fee"]),
        items=_list_order_items(conn, int(r["id"])),
    )


def get_order(conn, order_id: int) -> Order:
    rows = q(conn, "SELECT * FROM orders WHERE id=?", (int(order_id),))
    if not rows:
        raise NotFound(f"Order {order_id} not found.")
    return _row_to_order(conn, rows[0])


def list_orders(conn, date_from: DateLike = None, date_to: DateLike = None) -> list[Order]:
    where, params = date_range_where("substr(created_at, 1, 10)", date_from, date_to)
    rows = q(conn, f"SELECT * FROM orders{where} ORDER BY created_at, id", params)
    return [_row_to_order(conn, r) for r in rows]


def create_order(
    conn,
    *,
    items: Iterable[OrderItem],
    status: str = "paid",
    shipping_cost: int = 0,
    discount: int = 0,
    payment_method: Optional[str] = None,
    payment_fee: int = 0,
    created_at: Optional[datetime] = None,
    order_number: Optional[str] = None,
) -> Order:
    """
    Record a finalized sale.

    subtotal = sum(price * qty); total = subtotal + shipping - discount
    profit   = subtotal - discount - total_cost (shipping is passed through)

    Every product on a non-cancelled order is marked sold (in_stock = 0).
    """
    items = list(items)
    if not items:
        raise ValidationError("At least one order item is required.")
    for it in items:
        if int(it.quantity) <= 0:
            raise ValidationError("Quantity must be > 0.")
        if it.product_id is not None:
            get_product(conn, int(it.product_id))

    status = _normalize_status(status)
    payment_method = _normalize_payment_method(payment_method)
    shipping = money(shipping_cost, "Shipping cost") or 0
    disc = money(discount, "Discount") or 0
    fee = money(payment_fee, "Payment fee") or 0
    created_at = created_at or datetime.now(timezone.utc).replace(microsecond=0)

    subtotal = sum(int(it.subtotal) for it in items)
    total_cost = sum(int(it.product_cost) * int(it.quantity) for it in items)
    total = subtotal + shipping - disc
    profit = subtotal - disc - total_cost

    order_number = (order_number or "").strip()
    if not order_number:
        order_number = _generate_order_number(conn, created_at=created_at)
    elif q(conn, "SELECT 1 FROM orders WHERE order_number=?", (order_number,)):
        raise ValidationError(f"Order number {order_number} already exists.")

    order_id = x(
        conn,
        """
        INSERT INTO orders (
            order_number, status, subtotal, shipping_cost, discount,
            total, total_cost, profit, payment_method, payment_fee, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            order_number,
            status,
            subtotal,
            shipping,
            disc,
            total,
            total_cost,
            profit,
            payment_method,
            fee,
            created_at.isoformat(),
        ),
    )

    for it in items:
        x(
            conn,
            """
            INSERT INTO order_items (order_id, product_id, product_name, product_price, product_cost, quantity, subtotal)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(order_id),
                int(it.product_id) if it.product_id is not None else None,
                str(it.product_name),
                int(it.product_price),
                int(it.product_cost),
                int(it.quantity),
                int(it.subtotal),
            ),
        )
        if status != "cancelled" and it.product_id is not None:
            x(conn, "UPDATE products SET in_stock=0 WHERE id=?", (int(it.product_id),))

    log.info(f"Recorded order {order_number}: total={total}, profit={profit}")
    return get_order(conn, order_id)
