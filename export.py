"""CSV download of the monthly report view."""

from datetime import date
from typing import Iterable, Optional

import pandas as pd

from reports import MonthlyAggregate

EXPORT_COLUMNS = ["Month", "Income", "Expense", "Net"]
EXPORT_MIME_TYPE = "text/csv"


def monthly_frame(monthly: Iterable[MonthlyAggregate]) -> pd.DataFrame:
    rows = [
        {
            "Month": m.month,
            "Income": float(m.income),
            "Expense": float(m.expense),
            "Net": float(m.income - m.expense),
        }
        for m in monthly
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def monthly_csv(monthly: Iterable[MonthlyAggregate]) -> str:
    """Header row plus one row per month, in the order given."""
    # Month labels and amounts never contain commas or quotes
    return monthly_frame(monthly).to_csv(index=False, lineterminator="\n", float_format="%.2f")


def export_filename(today: Optional[date] = None) -> str:
    return f"financial-report-{(today or date.today()).isoformat()}.csv"
