from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

BATCH_STATUSES = ("ordered", "in_mailbox", "in_transit", "customs", "delivered", "completed")

# Lifecycle timestamp stamped the first time a batch enters the status.
STATUS_TIMESTAMPS = {
    "in_mailbox": "arrived_mailbox_at",
    "in_transit": "shipped_to_colombia_at",
    "delivered": "delivered_at",
}

ORDER_STATUSES = ("pending", "payment_pending", "paid", "processing", "shipped", "delivered", "cancelled")
PAYMENT_METHODS = ("transfer", "cash", "online")


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: int
    cost: Optional[int] = None
    in_stock: bool = True
    category: Optional[str] = None


@dataclass(frozen=True)
class BatchItem:
    id: int
    batch_id: int
    product: Product
    quantity: int
    unit_cost: int

    @property
    def product_id(self) -> int:
        return self.product.id

    @property
    def sold(self) -> bool:
        # Sale state is a single product-level flag: the whole line is sold or not.
        return not self.product.in_stock


@dataclass(frozen=True)
class Batch:
    id: int
    batch_number: str
    purchase_date: date
    purchase_total_cost: Optional[int]
    shipping_cost: Optional[int] = None
    customs_fees: Optional[int] = None
    additional_fees: Optional[int] = None
    status: str = "ordered"
    mailbox_tracking: Optional[str] = None
    notes: Optional[str] = None
    arrived_mailbox_at: Optional[datetime] = None
    shipped_to_colombia_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    items: tuple[BatchItem, ...] = ()


@dataclass
class BatchItemInput:
    product_id: int
    quantity: int
    unit_cost: int


@dataclass
class BatchInput:
    purchase_date: date
    purchase_total_cost: int
    items: list[BatchItemInput] = field(default_factory=list)
    batch_number: Optional[str] = None
    shipping_cost: Optional[int] = None
    customs_fees: Optional[int] = None
    additional_fees: Optional[int] = None
    mailbox_tracking: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: int
    name: str
    amount: int
    expense_date: date
    notes: Optional[str] = None


@dataclass(frozen=True)
class InterestPayment:
    id: int
    name: str
    amount: int
    source: str
    payment_date: date
    creditor: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Loss:
    id: int
    name: str
    amount: int
    reason: str
    loss_date: date
    order_id: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class OrderItem:
    product_id: Optional[int]
    product_name: str
    product_price: int
    quantity: int
    product_cost: int = 0

    @property
    def subtotal(self) -> int:
        return self.product_price * self.quantity


@dataclass(frozen=True)
class Order:
    id: int
    order_number: str
    created_at: datetime
    total: int
    profit: int
    status: str = "paid"
    subtotal: int = 0
    shipping_cost: int = 0
    discount: int = 0
    total_cost: int = 0
    payment_method: Optional[str] = None
    payment_fee: int = 0
    items: tuple[OrderItem, ...] = ()

    @property
    def counts_as_sale(self) -> bool:
        return self.status != "cancelled"
