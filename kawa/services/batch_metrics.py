from __future__ import annotations

from dataclasses import dataclass

from kawa.models import Batch
from kawa.services.allocation import BatchAllocation, allocate
from kawa.services.profitability import ItemMetrics, evaluate_item
from kawa.utils import pct


@dataclass(frozen=True)
class BatchReport:
    """
    Item-level figures rolled up for one batch.

    Two views are kept side by side:
      - potential: every unit sells at the current listed price
      - actual: only lines whose product is no longer in stock

    real_profit nets actual revenue against the WHOLE batch cost, so it stays
    negative until enough units sell to cover the landed cost.
    """

    batch: Batch
    allocation: BatchAllocation
    items: dict[int, ItemMetrics]

    total_units: int
    total_potential_revenue: int
    total_potential_profit: float
    roi_percentage: float
    average_margin_percentage: float

    total_sold_units: int
    remaining_units: int
    total_actual_revenue: int
    real_profit: int
    actual_roi: float
    completion_percentage: float

    @property
    def total_cost(self) -> int:
        return self.allocation.total_cost

    @property
    def product_ids(self) -> set[int]:
        return {int(it.product_id) for it in self.batch.items}

    def summary(self) -> dict:
        return {
            "total_items": len(self.batch.items),
            "total_units": self.total_units,
            "total_product_cost": self.allocation.total_product_cost,
            "total_shipping_and_fees": self.allocation.total_shipping_and_fees,
            "total_investment": self.total_cost,
            "total_potential_revenue": self.total_potential_revenue,
            "total_potential_profit": self.total_potential_profit,
            "average_margin_percentage": self.average_margin_percentage,
            "roi_percentage": self.roi_percentage,
        }

    def metrics(self) -> dict:
        return {
            "total_products": self.total_units,
            "total_sold": self.total_sold_units,
            "remaining": self.remaining_units,
            "completion_percentage": self.completion_percentage,
            "revenue": self.total_actual_revenue,
            "profit": self.real_profit,
            "roi": self.actual_roi,
        }


def summarize_batch(batch: Batch) -> BatchReport:
    allocation = allocate(batch)

    items: dict[int, ItemMetrics] = {}
    for it, alloc in zip(batch.items, allocation.items):
        items[int(it.id)] = evaluate_item(
            cost_price=alloc.cost_price,
            price=it.product.price,
            quantity=it.quantity,
            sold=it.sold,
        )

    total_potential_revenue = sum(m.potential_revenue for m in items.values())
    total_potential_profit = sum(m.potential_profit for m in items.values())

    total_sold_units = sum(m.quantity for m in items.values() if m.sold)
    remaining_units = sum(m.quantity for m in items.values() if not m.sold)
    total_actual_revenue = sum(m.actual_revenue for m in items.values())
    real_profit = total_actual_revenue - allocation.total_cost

    return BatchReport(
        batch=batch,
        allocation=allocation,
        items=items,
        total_units=total_sold_units + remaining_units,
        total_potential_revenue=int(total_potential_revenue),
        total_potential_profit=float(total_potential_profit),
        roi_percentage=pct(total_potential_profit, allocation.total_cost),
        average_margin_percentage=pct(total_potential_profit, total_potential_revenue),
        total_sold_units=int(total_sold_units),
        remaining_units=int(remaining_units),
        total_actual_revenue=int(total_actual_revenue),
        real_profit=int(real_profit),
        actual_roi=pct(real_profit, allocation.total_cost),
        completion_percentage=pct(total_sold_units, total_sold_units + remaining_units),
    )
