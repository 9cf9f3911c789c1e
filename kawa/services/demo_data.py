from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from kawa.db import ensure_schema
from kawa.models import BatchInput, BatchItemInput, OrderItem
from kawa.services.batches import create_batch, update_batch_status
from kawa.services.orders import create_order
from kawa.services.outflows import create_expense, create_interest, create_loss
from kawa.services.products import create_product


DEFAULT_PRODUCTS = [
    # (name, category, unit_cost, price)
    ("Pastillas de freno delanteras", "Frenos", 45_000, 95_000),
    ("Kit de arrastre 428", "Transmision", 180_000, 320_000),
    ("Filtro de aire", "Motor", 30_000, 65_000),
    ("Bujia iridium", "Motor", 25_000, 55_000),
    ("Espejo retrovisor", "Carroceria", 40_000, 85_000),
    ("Manigueta de clutch", "Controles", 35_000, 70_000),
]

DEMO_STATUSES = ["delivered", "completed", "in_transit", "customs"]


def wipe_all(conn) -> None:
    # Keep schema, delete data (order matters for FKs).
    for t in ["losses", "order_items", "orders", "batch_items", "batches", "expenses", "interest_payments", "products"]:
        conn.execute(f"DELETE FROM {t};")
    conn.commit()


def load_demo_data(conn, *, seed: int = 7, year: Optional[int] = None) -> None:
    """
    Four import batches spread over the year, a handful of orders that sell
    some of their products, and operating outflows.
    """
    rng = random.Random(seed)
    ensure_schema(conn)
    year = int(year or date.today().year)

    for i, status in enumerate(DEMO_STATUSES):
        purchase_date = date(year, 1 + i * 3, 5)
        items = []
        for name, category, unit_cost, price in rng.sample(DEFAULT_PRODUCTS, 3):
            product = create_product(conn, name=name, price=price, category=category)
            items.append(BatchItemInput(product_id=product.id, quantity=rng.randint(1, 4), unit_cost=unit_cost))

        purchase = sum(it.quantity * it.unit_cost for it in items)
        batch = create_batch(
            conn,
            BatchInput(
                purchase_date=purchase_date,
                purchase_total_cost=purchase,
                shipping_cost=rng.choice([60_000, 90_000, 120_000]),
                customs_fees=rng.choice([0, 35_000, 50_000]),
                notes="Demo import batch",
                items=items,
            ),
        )
        update_batch_status(conn, batch.id, status)

        # Sell the first line of delivered/completed batches
        if status in {"delivered", "completed"}:
            it = batch.items[0]
            create_order(
                conn,
                items=[
                    OrderItem(
                        product_id=it.product.id,
                        product_name=it.product.name,
                        product_price=it.product.price,
                        quantity=it.quantity,
                        product_cost=it.unit_cost,
                    )
                ],
                payment_method=rng.choice(["transfer", "cash", "online"]),
                created_at=datetime(year, purchase_date.month, 1, 12, tzinfo=timezone.utc) + timedelta(days=40),
            )

    for month in range(1, 13, 2):
        create_expense(conn, name="Hosting tienda", amount=80_000, expense_date=date(year, month, 10))
    create_interest(
        conn,
        name="Intereses tarjeta",
        amount=150_000,
        source="tarjeta_credito",
        creditor="Banco",
        payment_date=date(year, 3, 15),
    )
    create_loss(conn, name="Pieza danada en envio", amount=45_000, reason="dano_envio", loss_date=date(year, 6, 20))
