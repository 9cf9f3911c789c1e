"""
Monthly and annual financial reporting.

Orders are bucketed by created_at, outflows by their own date field
(expense_date / payment_date / loss_date) and batch investment by
purchase_date. Definitions match the portfolio rollup so that the twelve
months add up exactly to the annual figures:

    outflows.total = expenses + interests + losses + payment_fees
    net_profit     = gross_profit - outflows.total

Cancelled orders never count toward revenue or profit.
"""
from __future__ import annotations

import calendar
from datetime import date
from typing import Callable, Iterable, Sequence

import pandas as pd

from kawa.logger import log
from kawa.models import PAYMENT_METHODS, Batch, Expense, InterestPayment, Loss, Order
from kawa.services.allocation import batch_total_cost
from kawa.services.batch_metrics import summarize_batch
from kawa.services.portfolio import group_outflows, outflow_totals, realized_orders
from kawa.utils import pct, safe_div

MONTHS = range(1, 13)
TOP_PRODUCTS_LIMIT = 10


def _in_year(records: Iterable, date_attr: str, year: int) -> list:
    return [r for r in records if getattr(r, date_attr).year == int(year)]


def _monthly(records: Sequence, date_attr: str, columns: dict[str, Callable]) -> pd.DataFrame:
    """Sum the given columns per calendar month; always twelve rows indexed 1..12."""
    rows = [
        {"month": getattr(r, date_attr).month, **{c: fn(r) for c, fn in columns.items()}}
        for r in records
    ]
    df = pd.DataFrame(rows, columns=["month", *columns])
    out = df.groupby("month")[list(columns)].sum()
    return out.reindex(MONTHS, fill_value=0)


def monthly_summary(
    year: int,
    orders: Iterable[Order] = (),
    expenses: Iterable[Expense] = (),
    interests: Iterable[InterestPayment] = (),
    losses: Iterable[Loss] = (),
    batches: Iterable[Batch] = (),
) -> dict:
    sales = [o for o in _in_year(orders, "created_at", year) if o.counts_as_sale]

    inc = _monthly(
        sales,
        "created_at",
        {
            "revenue": lambda o: int(o.total),
            "orders_count": lambda o: 1,
            "gross_profit": lambda o: int(o.profit),
            "payment_fees": lambda o: int(o.payment_fee),
        },
    )
    exp = _monthly(_in_year(expenses, "expense_date", year), "expense_date", {"expenses": lambda e: int(e.amount)})
    intr = _monthly(_in_year(interests, "payment_date", year), "payment_date", {"interests": lambda i: int(i.amount)})
    lss = _monthly(_in_year(losses, "loss_date", year), "loss_date", {"losses": lambda l: int(l.amount)})
    inv = _monthly(
        _in_year(batches, "purchase_date", year),
        "purchase_date",
        {
            "investment": lambda b: batch_total_cost(
                b.purchase_total_cost, b.shipping_cost, b.customs_fees, b.additional_fees
            ),
            "batches": lambda b: 1,
        },
    )

    df = pd.concat([inc, exp, intr, lss, inv], axis=1).fillna(0).astype("int64")
    df["outflows_total"] = df["expenses"] + df["interests"] + df["losses"] + df["payment_fees"]
    df["net_profit"] = df["gross_profit"] - df["outflows_total"]

    months = []
    for m, row in df.iterrows():
        revenue = int(row["revenue"])
        net_profit = int(row["net_profit"])
        months.append(
            {
                "month": int(m),
                "month_name": calendar.month_name[int(m)],
                "revenue": revenue,
                "orders_count": int(row["orders_count"]),
                "gross_profit": int(row["gross_profit"]),
                "outflows": {
                    "expenses": int(row["expenses"]),
                    "interests": int(row["interests"]),
                    "losses": int(row["losses"]),
                    "payment_fees": int(row["payment_fees"]),
                    "total": int(row["outflows_total"]),
                },
                "net_profit": net_profit,
                "net_margin": pct(net_profit, revenue),
                "investment": {"total": int(row["investment"]), "batches": int(row["batches"])},
            }
        )

    totals = df.sum()
    annual = {
        "total_revenue": int(totals["revenue"]),
        "total_orders": int(totals["orders_count"]),
        "total_gross_profit": int(totals["gross_profit"]),
        "total_outflows": int(totals["outflows_total"]),
        "total_net_profit": int(totals["net_profit"]),
        "total_investment": int(totals["investment"]),
        "total_expenses": int(totals["expenses"]),
        "total_interests": int(totals["interests"]),
        "total_losses": int(totals["losses"]),
        "total_payment_fees": int(totals["payment_fees"]),
    }

    log.info(f"Monthly summary {year}: revenue={annual['total_revenue']}, net_profit={annual['total_net_profit']}")
    return {"year": int(year), "months": months, "annual": annual}


def _by_payment_method(sales: Sequence[Order]) -> dict:
    out = {m: {"orders": 0, "revenue": 0, "fees": 0, "net": 0} for m in PAYMENT_METHODS}
    for o in sales:
        key = o.payment_method or "unknown"
        row = out.setdefault(key, {"orders": 0, "revenue": 0, "fees": 0, "net": 0})
        row["orders"] += 1
        row["revenue"] += int(o.total)
        row["fees"] += int(o.payment_fee)
        row["net"] = row["revenue"] - row["fees"]
    return out


def top_products(sales: Sequence[Order], limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    rows = [
        {
            "product_id": it.product_id,
            "product_name": it.product_name,
            "quantity_sold": int(it.quantity),
            "revenue": int(it.subtotal),
        }
        for o in sales
        for it in o.items
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    # Orders can outlive their product row, so group on the name snapshot.
    grouped = (
        df.groupby("product_name")
        .agg(product_id=("product_id", "first"), quantity_sold=("quantity_sold", "sum"), revenue=("revenue", "sum"))
        .reset_index()
        .sort_values(["quantity_sold", "revenue", "product_name"], ascending=[False, False, True])
        .head(int(limit))
    )
    return [
        {
            "product_id": None if pd.isna(r["product_id"]) else int(r["product_id"]),
            "product_name": str(r["product_name"]),
            "quantity_sold": int(r["quantity_sold"]),
            "revenue": int(r["revenue"]),
        }
        for r in grouped.to_dict("records")
    ]


def annual_summary(
    year: int,
    orders: Iterable[Order] = (),
    expenses: Iterable[Expense] = (),
    interests: Iterable[InterestPayment] = (),
    losses: Iterable[Loss] = (),
    batches: Iterable[Batch] = (),
) -> dict:
    """
    Full-year financial statement: income, outflows, batch investment and
    profitability for one calendar year.
    """
    year_orders = _in_year(orders, "created_at", year)
    sales = [o for o in year_orders if o.counts_as_sale]
    year_expenses = _in_year(expenses, "expense_date", year)
    year_interests = _in_year(interests, "payment_date", year)
    year_losses = _in_year(losses, "loss_date", year)
    reports = [summarize_batch(b) for b in _in_year(batches, "purchase_date", year)]

    outflows = outflow_totals(year_expenses, year_interests, year_losses)
    realized = realized_orders(sales, outflows["total"])
    payment_fees = realized["payment_fees"]
    total_outflows = outflows["total"] + payment_fees

    by_status: dict[str, int] = {}
    for o in year_orders:
        by_status[o.status] = by_status.get(o.status, 0) + 1

    investment = {
        "total": sum(r.total_cost for r in reports),
        "purchase_cost": sum(int(r.batch.purchase_total_cost or 0) for r in reports),
        "shipping_cost": sum(int(r.batch.shipping_cost or 0) for r in reports),
        "customs_fees": sum(int(r.batch.customs_fees or 0) for r in reports),
        "additional_fees": sum(int(r.batch.additional_fees or 0) for r in reports),
        "batches_count": len(reports),
        "units_purchased": sum(r.total_units for r in reports),
        "potential_revenue": sum(r.total_potential_revenue for r in reports),
        "potential_profit": sum(r.total_potential_profit for r in reports),
    }

    revenue = realized["revenue"]
    net_profit = realized["net_profit"]
    avg_order_value = safe_div(revenue, realized["orders"])

    return {
        "year": int(year),
        "period": {"from": date(int(year), 1, 1).isoformat(), "to": date(int(year), 12, 31).isoformat()},
        "summary": {
            "total_revenue": revenue,
            "total_outflows": total_outflows,
            "net_profit": net_profit,
            "net_margin": pct(net_profit, revenue),
            "total_orders": realized["orders"],
            "avg_order_value": avg_order_value,
            "total_investment": investment["total"],
        },
        "income": {
            "total_revenue": revenue,
            "total_orders": realized["orders"],
            "avg_order_value": avg_order_value,
            "gross_profit": realized["gross_profit"],
            "by_payment_method": _by_payment_method(sales),
            "by_status": by_status,
        },
        "outflows": {
            "total": total_outflows,
            "expenses": {"total": outflows["expenses"], "count": len(year_expenses), "items": year_expenses},
            "interests": {
                "total": outflows["interests"],
                "count": len(year_interests),
                "by_source": group_outflows(year_interests, "source"),
                "items": year_interests,
            },
            "losses": {
                "total": outflows["losses"],
                "count": len(year_losses),
                "by_reason": group_outflows(year_losses, "reason"),
                "items": year_losses,
            },
            "payment_fees": {"total": payment_fees},
        },
        "investment": investment,
        "profitability": {
            "gross_profit": realized["gross_profit"],
            "payment_fees": payment_fees,
            "expenses": outflows["expenses"],
            "interests": outflows["interests"],
            "losses": outflows["losses"],
            "net_profit": net_profit,
            "net_margin": pct(net_profit, revenue),
            "roi": pct(net_profit, investment["total"]),
        },
        "top_products": top_products(sales),
    }
