from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from kawa.models import Expense, InterestPayment, Loss
from kawa.services.batch_metrics import BatchReport
from kawa.utils import format_pct

BATCH_COLUMNS = [
    "batch_number",
    "status",
    "purchase_date",
    "total_cost",
    "units",
    "sold",
    "completion",
    "potential_revenue",
    "potential_profit",
    "roi",
    "actual_revenue",
    "real_profit",
]

OUTFLOW_COLUMNS = ["date", "category", "name", "tag", "amount"]


def batch_table(reports: Iterable[BatchReport], precision: int = 2) -> pd.DataFrame:
    """One row per batch; ratios rendered as percentage strings."""
    rows = [
        {
            "batch_number": r.batch.batch_number,
            "status": r.batch.status,
            "purchase_date": r.batch.purchase_date.isoformat(),
            "total_cost": r.total_cost,
            "units": r.total_units,
            "sold": r.total_sold_units,
            "completion": format_pct(r.completion_percentage, precision),
            "potential_revenue": r.total_potential_revenue,
            "potential_profit": round(r.total_potential_profit),
            "roi": format_pct(r.roi_percentage, precision),
            "actual_revenue": r.total_actual_revenue,
            "real_profit": r.real_profit,
        }
        for r in reports
    ]
    return pd.DataFrame(rows, columns=BATCH_COLUMNS)


def monthly_table(monthly: dict, precision: int = 2) -> pd.DataFrame:
    rows = [
        {
            "month": m["month_name"],
            "revenue": m["revenue"],
            "orders": m["orders_count"],
            "gross_profit": m["gross_profit"],
            "outflows": m["outflows"]["total"],
            "net_profit": m["net_profit"],
            "net_margin": format_pct(m["net_margin"], precision),
            "investment": m["investment"]["total"],
        }
        for m in monthly["months"]
    ]
    return pd.DataFrame(rows).set_index("month")


def outflow_table(
    expenses: Sequence[Expense] = (),
    interests: Sequence[InterestPayment] = (),
    losses: Sequence[Loss] = (),
) -> pd.DataFrame:
    """All batch-external outflows in one dated ledger, oldest first."""
    rows = (
        [{"date": e.expense_date, "category": "expense", "name": e.name, "tag": None, "amount": e.amount} for e in expenses]
        + [{"date": i.payment_date, "category": "interest", "name": i.name, "tag": i.source, "amount": i.amount} for i in interests]
        + [{"date": l.loss_date, "category": "loss", "name": l.name, "tag": l.reason, "amount": l.amount} for l in losses]
    )
    df = pd.DataFrame(rows, columns=OUTFLOW_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(["date", "category"], kind="stable").reset_index(drop=True)
