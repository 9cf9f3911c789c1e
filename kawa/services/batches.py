from __future__ import annotations

from typing import Iterable, Optional

from kawa.db import q, x
from kawa.errors import NotFound, SoldItemsProtected, ValidationError
from kawa.logger import log
from kawa.models import BATCH_STATUSES, STATUS_TIMESTAMPS, Batch, BatchInput, BatchItem, BatchItemInput
from kawa.services.allocation import batch_total_cost
from kawa.services.products import get_product, row_to_product
from kawa.utils import iso_now, money, parse_date, parse_ts


def _row_to_item(r) -> BatchItem:
    return BatchItem(
        id=int(r["id"]),
        batch_id=int(r["batch_id"]),
        product=row_to_product(r, prefix="p_"),
        quantity=int(r["quantity"]),
        unit_cost=int(r["unit_cost"]),
    )


def _list_batch_items(conn, batch_id: int) -> tuple[BatchItem, ...]:
    rows = q(
        conn,
        """
        SELECT bi.*,
               p.id AS p_id, p.name AS p_name, p.price AS p_price, p.cost AS p_cost,
               p.in_stock AS p_in_stock, p.category AS p_category
        FROM batch_items bi
        JOIN products p ON p.id = bi.product_id
        WHERE bi.batch_id=?
        ORDER BY bi.id
        """,
        (int(batch_id),),
    )
    return tuple(_row_to_item(r) for r in rows)


def _row_to_batch(conn, r) -> Batch:
    return Batch(
        id=int(r["id"]),
        batch_number=str(r["batch_number"]),
        purchase_date=parse_date(r["purchase_date"], "Purchase date"),
        purchase_total_cost=int(r["purchase_total_cost"]),
        shipping_cost=r["shipping_cost"],
        customs_fees=r["customs_fees"],
        additional_fees=r["additional_fees"],
        status=str(r["status"]),
        mailbox_tracking=r["mailbox_tracking"],
        notes=r["notes"],
        arrived_mailbox_at=parse_ts(r["arrived_mailbox_at"]),
        shipped_to_colombia_at=parse_ts(r["shipped_to_colombia_at"]),
        delivered_at=parse_ts(r["delivered_at"]),
        items=_list_batch_items(conn, int(r["id"])),
    )


def list_batches(conn, status: Optional[str] = None) -> list[Batch]:
    if status is not None:
        _validate_status(status)
        rows = q(conn, "SELECT * FROM batches WHERE status=? ORDER BY purchase_date DESC, id DESC", (status,))
    else:
        rows = q(conn, "SELECT * FROM batches ORDER BY purchase_date DESC, id DESC")
    return [_row_to_batch(conn, r) for r in rows]


def get_batch(conn, batch_id: int) -> Batch:
    rows = q(conn, "SELECT * FROM batches WHERE id=?", (int(batch_id),))
    if not rows:
        raise NotFound(f"Batch {batch_id} not found.")
    return _row_to_batch(conn, rows[0])


def _validate_status(status: str) -> str:
    s = str(status).strip().lower()
    if s not in BATCH_STATUSES:
        raise ValidationError(f"Invalid status '{status}'. Use one of: {', '.join(BATCH_STATUSES)}.")
    return s


def _validate_items(conn, items: Iterable[BatchItemInput]) -> list[BatchItemInput]:
    out: list[BatchItemInput] = []
    for it in items:
        try:
            qty = int(it.quantity)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a whole number.")
        if qty <= 0:
            raise ValidationError("Quantity must be > 0.")
        unit_cost = money(it.unit_cost, "Unit cost", required=True)
        get_product(conn, int(it.product_id))
        out.append(BatchItemInput(product_id=int(it.product_id), quantity=qty, unit_cost=unit_cost))
    return out


def _insert_items(conn, batch_id: int, items: list[BatchItemInput]) -> None:
    now = iso_now()
    for it in items:
        x(
            conn,
            """
            INSERT INTO batch_items (batch_id, product_id, quantity, unit_cost, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (int(batch_id), int(it.product_id), int(it.quantity), int(it.unit_cost), now),
        )


def _generate_batch_number(conn, *, purchase_date: str) -> str:
    """
    Consistent system number:
      LOTE-{YYYY}-{NNN}

    Example:
      LOTE-2026-001
    """
    year = str(purchase_date)[:4]
    prefix = f"LOTE-{year}-"

    rows = q(conn, "SELECT batch_number FROM batches WHERE batch_number LIKE ?", (prefix + "%",))
    seqs = [int(r["batch_number"][len(prefix):]) for r in rows if r["batch_number"][len(prefix):].isdigit()]
    seq = max(seqs, default=0) + 1

    return f"{prefix}{seq:03d}"


def _store_total_cost(conn, batch_id: int) -> None:
    r = q(
        conn,
        "SELECT purchase_total_cost, shipping_cost, customs_fees, additional_fees FROM batches WHERE id=?",
        (int(batch_id),),
    )[0]
    total = batch_total_cost(r["purchase_total_cost"], r["shipping_cost"], r["customs_fees"], r["additional_fees"])
    x(conn, "UPDATE batches SET total_cost=?, updated_at=? WHERE id=?", (int(total), iso_now(), int(batch_id)))


def create_batch(conn, data: BatchInput) -> Batch:
    purchase_date = parse_date(data.purchase_date, "Purchase date").isoformat()
    purchase = money(data.purchase_total_cost, "Purchase total cost", required=True)
    shipping = money(data.shipping_cost, "Shipping cost")
    customs = money(data.customs_fees, "Customs fees")
    additional = money(data.additional_fees, "Additional fees")
    items = _validate_items(conn, data.items)
    if not items:
        raise ValidationError("At least one item is required.")

    batch_number = (data.batch_number or "").strip()
    if not batch_number:
        batch_number = _generate_batch_number(conn, purchase_date=purchase_date)
    elif q(conn, "SELECT 1 FROM batches WHERE batch_number=?", (batch_number,)):
        raise ValidationError(f"Batch number {batch_number} already exists.")

    now = iso_now()
    batch_id = x(
        conn,
        """
        INSERT INTO batches (
            batch_number, purchase_date,
            purchase_total_cost, shipping_cost, customs_fees, additional_fees, total_cost,
            status, mailbox_tracking, notes, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, 'ordered', ?, ?, ?, ?)
        """,
        (
            batch_number,
            purchase_date,
            purchase,
            shipping,
            customs,
            additional,
            batch_total_cost(purchase, shipping, customs, additional),
            data.mailbox_tracking,
            data.notes,
            now,
            now,
        ),
    )
    _insert_items(conn, batch_id, items)

    log.info(f"Created batch {batch_number} with {len(items)} item(s)")
    return get_batch(conn, batch_id)


def update_batch(
    conn,
    batch_id: int,
    *,
    purchase_total_cost: Optional[int] = None,
    shipping_cost: Optional[int] = None,
    customs_fees: Optional[int] = None,
    additional_fees: Optional[int] = None,
    mailbox_tracking: Optional[str] = None,
    notes: Optional[str] = None,
) -> Batch:
    """Partial update: fields left as None keep their stored value."""
    get_batch(conn, batch_id)

    fields = {
        "purchase_total_cost": money(purchase_total_cost, "Purchase total cost"),
        "shipping_cost": money(shipping_cost, "Shipping cost"),
        "customs_fees": money(customs_fees, "Customs fees"),
        "additional_fees": money(additional_fees, "Additional fees"),
        "mailbox_tracking": mailbox_tracking,
        "notes": notes,
    }
    fields = {k: v for k, v in fields.items() if v is not None}
    if fields:
        assignments = ", ".join(f"{k}=?" for k in fields)
        x(conn, f"UPDATE batches SET {assignments} WHERE id=?", (*fields.values(), int(batch_id)))
    _store_total_cost(conn, batch_id)

    return get_batch(conn, batch_id)


def update_batch_status(
    conn,
    batch_id: int,
    status: str,
    *,
    customs_fees: Optional[int] = None,
    additional_fees: Optional[int] = None,
    mailbox_tracking: Optional[str] = None,
) -> Batch:
    """
    Any of the six statuses may be set; there is no enforced order.
    Entering in_mailbox / in_transit / delivered stamps its lifecycle
    timestamp once. Fee changes recompute the batch total.
    """
    status = _validate_status(status)
    batch = get_batch(conn, batch_id)

    fields = {
        "status": status,
        "customs_fees": money(customs_fees, "Customs fees"),
        "additional_fees": money(additional_fees, "Additional fees"),
        "mailbox_tracking": mailbox_tracking,
    }
    ts_col = STATUS_TIMESTAMPS.get(status)
    if ts_col and getattr(batch, ts_col) is None:
        fields[ts_col] = iso_now()

    fields = {k: v for k, v in fields.items() if v is not None}
    assignments = ", ".join(f"{k}=?" for k in fields)
    x(conn, f"UPDATE batches SET {assignments} WHERE id=?", (*fields.values(), int(batch_id)))
    _store_total_cost(conn, batch_id)

    log.info(f"Batch {batch.batch_number}: {batch.status} -> {status}")
    return get_batch(conn, batch_id)


def _guard_sold(items: Iterable[BatchItem], *, force: bool, batch_number: str) -> None:
    sold = [it.id for it in items if it.sold]
    if not sold:
        return
    if not force:
        log.warning(f"Batch {batch_number}: refused to remove sold item(s) {sold}")
        raise SoldItemsProtected(sold)
    log.warning(f"Batch {batch_number}: force-removing sold item(s) {sold}; existing orders are left as-is")


def delete_batch(conn, batch_id: int, *, force: bool = False) -> None:
    batch = get_batch(conn, batch_id)
    _guard_sold(batch.items, force=force, batch_number=batch.batch_number)
    x(conn, "DELETE FROM batches WHERE id=?", (int(batch_id),))
    log.info(f"Deleted batch {batch.batch_number}")


def add_items(conn, batch_id: int, items: Iterable[BatchItemInput]) -> Batch:
    batch = get_batch(conn, batch_id)
    items = _validate_items(conn, items)
    if not items:
        raise ValidationError("At least one item is required.")
    _insert_items(conn, batch_id, items)
    x(conn, "UPDATE batches SET updated_at=? WHERE id=?", (iso_now(), int(batch_id)))
    log.info(f"Batch {batch.batch_number}: added {len(items)} item(s)")
    return get_batch(conn, batch_id)


def _get_item(batch: Batch, item_id: int) -> BatchItem:
    for it in batch.items:
        if it.id == int(item_id):
            return it
    raise NotFound(f"Item {item_id} not found in batch {batch.batch_number}.")


def remove_items(conn, batch_id: int, item_ids: Iterable[int], *, force: bool = False) -> Batch:
    """
    Remove lines from a batch.

    Lines whose product already sold are refused with SoldItemsProtected
    unless force=True. Forced removal never touches recorded orders.
    """
    batch = get_batch(conn, batch_id)
    targets = [_get_item(batch, int(i)) for i in item_ids]
    _guard_sold(targets, force=force, batch_number=batch.batch_number)

    for it in targets:
        x(conn, "DELETE FROM batch_items WHERE id=? AND batch_id=?", (int(it.id), int(batch_id)))
    x(conn, "UPDATE batches SET updated_at=? WHERE id=?", (iso_now(), int(batch_id)))

    log.info(f"Batch {batch.batch_number}: removed {len(targets)} item(s)")
    return get_batch(conn, batch_id)


def update_item_quantity(conn, batch_id: int, item_id: int, quantity: int) -> Batch:
    batch = get_batch(conn, batch_id)
    item = _get_item(batch, item_id)
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number.")
    if qty <= 0:
        raise ValidationError("Quantity must be > 0.")

    x(conn, "UPDATE batch_items SET quantity=? WHERE id=?", (qty, int(item.id)))
    x(conn, "UPDATE batches SET updated_at=? WHERE id=?", (iso_now(), int(batch_id)))
    return get_batch(conn, batch_id)


def move_item(
    conn,
    from_batch_id: int,
    item_id: int,
    to_batch_id: int,
    *,
    unit_cost: Optional[int] = None,
) -> tuple[Batch, Batch]:
    """
    Re-home a line into another batch, optionally re-pricing its unit cost.
    Returns fresh (source, destination) snapshots.
    """
    if int(from_batch_id) == int(to_batch_id):
        raise ValidationError("Source and destination batch must differ.")
    source = get_batch(conn, from_batch_id)
    dest = get_batch(conn, to_batch_id)
    item = _get_item(source, item_id)
    new_cost = money(unit_cost, "Unit cost")

    x(
        conn,
        "UPDATE batch_items SET batch_id=?, unit_cost=? WHERE id=?",
        (int(to_batch_id), int(new_cost if new_cost is not None else item.unit_cost), int(item.id)),
    )
    now = iso_now()
    x(conn, "UPDATE batches SET updated_at=? WHERE id IN (?, ?)", (now, int(from_batch_id), int(to_batch_id)))

    log.info(f"Moved item {item.id} from {source.batch_number} to {dest.batch_number}")
    return get_batch(conn, from_batch_id), get_batch(conn, to_batch_id)
