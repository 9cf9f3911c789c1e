from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from kawa.logger import log
from kawa.models import Batch
from kawa.utils import money, safe_div


@dataclass(frozen=True)
class AllocatedItem:
    item_id: int
    product_id: int
    quantity: int
    unit_cost: int
    cost_price: float  # landed unit cost

    @property
    def line_purchase_cost(self) -> int:
        return self.quantity * self.unit_cost

    @property
    def line_landed_cost(self) -> float:
        return self.quantity * self.cost_price


@dataclass(frozen=True)
class BatchAllocation:
    total_cost: int
    total_product_cost: int
    total_shipping_and_fees: int
    items: tuple[AllocatedItem, ...]

    def cost_price(self, item_id: int) -> float:
        for it in self.items:
            if it.item_id == item_id:
                return it.cost_price
        raise KeyError(item_id)


def batch_total_cost(
    purchase_total_cost: Optional[int],
    shipping_cost: Optional[int] = None,
    customs_fees: Optional[int] = None,
    additional_fees: Optional[int] = None,
) -> int:
    purchase = money(purchase_total_cost, "Purchase total cost", required=True)
    shipping = money(shipping_cost, "Shipping cost") or 0
    customs = money(customs_fees, "Customs fees") or 0
    additional = money(additional_fees, "Additional fees") or 0
    return purchase + shipping + customs + additional


def landed_unit_cost(unit_cost: float, quantity: int, fees: float, total_product_cost: float) -> float:
    """
    Purchase unit cost plus this line's pro-rata share of shipping, customs and fees.

    The share is proportional to the line's purchase value (quantity * unit_cost)
    and is spread back over its units. A zero total_product_cost gives a zero share.
    """
    line_value = quantity * unit_cost
    share = safe_div(line_value, total_product_cost)
    return float(unit_cost) + safe_div(fees * share, quantity)


def allocate(batch: Batch) -> BatchAllocation:
    total_cost = batch_total_cost(
        batch.purchase_total_cost,
        batch.shipping_cost,
        batch.customs_fees,
        batch.additional_fees,
    )
    # Item unit costs drive per-item costing; purchase_total_cost drives the
    # batch total. The two are allowed to diverge.
    total_product_cost = sum(int(it.quantity) * int(it.unit_cost) for it in batch.items)
    fees = total_cost - int(batch.purchase_total_cost)

    items = tuple(
        AllocatedItem(
            item_id=int(it.id),
            product_id=int(it.product_id),
            quantity=int(it.quantity),
            unit_cost=int(it.unit_cost),
            cost_price=landed_unit_cost(it.unit_cost, it.quantity, fees, total_product_cost),
        )
        for it in batch.items
    )

    gap = purchase_cost_gap(batch, total_product_cost)
    if gap:
        log.debug(f"Batch {batch.batch_number}: purchase_total_cost differs from item costs by {gap}")

    return BatchAllocation(
        total_cost=int(total_cost),
        total_product_cost=int(total_product_cost),
        total_shipping_and_fees=int(fees),
        items=items,
    )


def purchase_cost_gap(batch: Batch, total_product_cost: Optional[int] = None) -> int:
    """purchase_total_cost minus the sum of item purchase values. Informational only."""
    if total_product_cost is None:
        total_product_cost = sum(int(it.quantity) * int(it.unit_cost) for it in batch.items)
    return int(batch.purchase_total_cost or 0) - int(total_product_cost)
