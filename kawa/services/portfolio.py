from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union

from kawa.models import BATCH_STATUSES, Batch, Expense, InterestPayment, Loss, Order
from kawa.services.batch_metrics import BatchReport, summarize_batch
from kawa.utils import pct


def _as_report(b: Union[Batch, BatchReport]) -> BatchReport:
    return b if isinstance(b, BatchReport) else summarize_batch(b)


def group_outflows(records: Iterable, key: str) -> list[dict]:
    """
    Group outflow records by a tag attribute (source / reason).
    Largest total first, ties broken by tag.
    """
    groups: dict[str, dict] = {}
    for r in records:
        tag = str(getattr(r, key) or "other").strip() or "other"
        g = groups.setdefault(tag, {key: tag, "total": 0, "count": 0})
        g["total"] += int(r.amount)
        g["count"] += 1
    return sorted(groups.values(), key=lambda g: (-g["total"], g[key]))


def outflow_totals(
    expenses: Sequence[Expense],
    interests: Sequence[InterestPayment],
    losses: Sequence[Loss],
) -> dict:
    exp_total = sum(int(e.amount) for e in expenses)
    int_total = sum(int(i.amount) for i in interests)
    loss_total = sum(int(l.amount) for l in losses)
    return {
        "expenses": exp_total,
        "interests": int_total,
        "losses": loss_total,
        "total": exp_total + int_total + loss_total,
    }


def realized_orders(orders: Iterable[Order], total_outflows: int) -> dict:
    """
    Order-level realized figures. Cancelled orders are excluded.
    net_profit = gross_profit - payment_fees - total_outflows
    """
    sales = [o for o in orders if o.counts_as_sale]
    revenue = sum(int(o.total) for o in sales)
    gross_profit = sum(int(o.profit) for o in sales)
    fees = sum(int(o.payment_fee) for o in sales)
    net_profit = gross_profit - fees - int(total_outflows)
    return {
        "orders": len(sales),
        "revenue": revenue,
        "gross_profit": gross_profit,
        "payment_fees": fees,
        "net_profit": net_profit,
        "net_margin": pct(net_profit, revenue),
    }


def summarize_portfolio(
    batches: Iterable[Union[Batch, BatchReport]],
    expenses: Sequence[Expense] = (),
    interests: Sequence[InterestPayment] = (),
    losses: Sequence[Loss] = (),
    orders: Optional[Iterable[Order]] = None,
) -> dict:
    """
    Fleet-wide rollup of batch reports plus batch-external outflows.

    No cost allocation happens here: every batch figure comes from
    summarize_batch. Note the fleet real_profit nets actual revenue against
    outflows, unlike the per-batch real_profit which nets against batch cost.
    """
    reports = [_as_report(b) for b in batches]

    product_ids: set[int] = set()
    for r in reports:
        product_ids |= r.product_ids

    by_status = {s: 0 for s in BATCH_STATUSES}
    for r in reports:
        by_status[r.batch.status] = by_status.get(r.batch.status, 0) + 1

    total_units = sum(r.total_units for r in reports)

    # ---- raw cost components ----
    total_investment = sum(r.total_cost for r in reports)
    financial = {
        "total_investment": total_investment,
        "total_purchase_cost": sum(int(r.batch.purchase_total_cost or 0) for r in reports),
        "total_shipping_cost": sum(int(r.batch.shipping_cost or 0) for r in reports),
        "total_customs_fees": sum(int(r.batch.customs_fees or 0) for r in reports),
        "total_additional_fees": sum(int(r.batch.additional_fees or 0) for r in reports),
    }

    outflows = outflow_totals(expenses, interests, losses)
    total_outflows = outflows["total"]

    # ---- potential ----
    total_potential_revenue = sum(r.total_potential_revenue for r in reports)
    total_potential_profit = sum(r.total_potential_profit for r in reports)
    total_potential_profit_net = total_potential_profit - total_outflows

    # ---- actual ----
    total_sold_units = sum(r.total_sold_units for r in reports)
    remaining_units = sum(r.remaining_units for r in reports)
    total_actual_revenue = sum(r.total_actual_revenue for r in reports)
    real_profit = total_actual_revenue - total_outflows

    summary = {
        "overview": {
            "total_batches": len(reports),
            "active_batches": sum(1 for r in reports if r.batch.status != "completed"),
            "completed_batches": by_status.get("completed", 0),
            "total_products_count": len(product_ids),
            "total_units": total_units,
        },
        "financial": financial,
        "potential": {
            "total_potential_revenue": total_potential_revenue,
            # weighted by cost, not a mean of per-batch ROI
            "average_roi": pct(total_potential_profit, total_investment),
            "total_potential_profit": total_potential_profit,
            "total_potential_profit_net": total_potential_profit_net,
            "net_roi": pct(total_potential_profit_net, total_investment),
        },
        "actual": {
            "total_sold_units": total_sold_units,
            "remaining_units": remaining_units,
            "total_actual_revenue": total_actual_revenue,
            "total_outflows": total_outflows,
            "real_profit": real_profit,
            "sales_margin": pct(real_profit, total_actual_revenue),
            "profit_vs_investment": real_profit - total_investment,
            "actual_roi": pct(real_profit, total_investment),
            "completion_percentage": pct(total_sold_units, total_sold_units + remaining_units),
        },
        "expenses": {"total": outflows["expenses"], "count": len(expenses)},
        "interests": {
            "total": outflows["interests"],
            "count": len(interests),
            "by_source": group_outflows(interests, "source"),
        },
        "losses": {
            "total": outflows["losses"],
            "count": len(losses),
            "by_reason": group_outflows(losses, "reason"),
        },
        "outflows_summary": {
            **outflows,
            "expenses_count": len(expenses),
            "interests_count": len(interests),
            "losses_count": len(losses),
            "total_count": len(expenses) + len(interests) + len(losses),
        },
        "by_status": by_status,
    }

    if orders is not None:
        summary["realized"] = realized_orders(orders, total_outflows)

    return summary
