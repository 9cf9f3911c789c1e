from __future__ import annotations

from dataclasses import dataclass

from kawa.utils import pct


@dataclass(frozen=True)
class ItemMetrics:
    selling_price: int
    cost_price: float
    quantity: int
    sold: bool
    profit_per_unit: float
    margin_percentage: float
    potential_profit: float

    @property
    def potential_revenue(self) -> int:
        return self.selling_price * self.quantity

    @property
    def actual_revenue(self) -> int:
        return self.potential_revenue if self.sold else 0


def evaluate_item(cost_price: float, price: int, quantity: int, sold: bool) -> ItemMetrics:
    """
    Per-unit profit and margin at the current selling price.

    potential_profit treats the whole line as sellable whether or not it has sold.
    Negative prices or costs are not rejected; they flow through as losses.
    """
    profit_per_unit = float(price) - float(cost_price)
    return ItemMetrics(
        selling_price=int(price),
        cost_price=float(cost_price),
        quantity=int(quantity),
        sold=bool(sold),
        profit_per_unit=profit_per_unit,
        margin_percentage=pct(profit_per_unit, price),
        potential_profit=profit_per_unit * int(quantity),
    )
