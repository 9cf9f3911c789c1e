from __future__ import annotations

from typing import Optional

from kawa.db import q, x
from kawa.errors import NotFound, ValidationError
from kawa.logger import log
from kawa.models import Product
from kawa.utils import money


def row_to_product(r, prefix: str = "") -> Product:
    return Product(
        id=int(r[f"{prefix}id"]),
        name=str(r[f"{prefix}name"]),
        price=int(r[f"{prefix}price"]),
        cost=r[f"{prefix}cost"],
        in_stock=bool(r[f"{prefix}in_stock"]),
        category=r[f"{prefix}category"],
    )


def get_product(conn, product_id: int) -> Product:
    rows = q(conn, "SELECT * FROM products WHERE id=?", (int(product_id),))
    if not rows:
        raise NotFound(f"Product {product_id} not found.")
    return row_to_product(rows[0])


def list_products(conn, in_stock: Optional[bool] = None) -> list[Product]:
    if in_stock is None:
        rows = q(conn, "SELECT * FROM products ORDER BY name, id")
    else:
        rows = q(conn, "SELECT * FROM products WHERE in_stock=? ORDER BY name, id", (1 if in_stock else 0,))
    return [row_to_product(r) for r in rows]


def create_product(
    conn,
    *,
    name: str,
    price: int,
    cost: Optional[int] = None,
    in_stock: bool = True,
    category: Optional[str] = None,
) -> Product:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Product name is required.")
    try:
        price = int(round(float(price)))
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number.")

    product_id = x(
        conn,
        "INSERT INTO products (name, price, cost, in_stock, category) VALUES (?, ?, ?, ?, ?)",
        (name, price, money(cost, "Cost"), 1 if in_stock else 0, category),
    )
    return get_product(conn, product_id)


def set_in_stock(conn, product_id: int, in_stock: bool) -> Product:
    get_product(conn, product_id)
    x(conn, "UPDATE products SET in_stock=? WHERE id=?", (1 if in_stock else 0, int(product_id)))
    return get_product(conn, product_id)


def update_price(conn, product_id: int, price: int) -> Product:
    """Change the listed selling price; potential metrics follow on the next read."""
    product = get_product(conn, product_id)
    try:
        price = int(round(float(price)))
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number.")
    x(conn, "UPDATE products SET price=? WHERE id=?", (price, int(product_id)))
    log.info(f"Product {product.name}: price {product.price} -> {price}")
    return get_product(conn, product_id)
