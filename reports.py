"""
reports.py
----------
Aggregation of the user's transactions into the views shown on the
dashboard and reports pages: monthly income/expense over a trailing
six-month window, expense totals per category and overall totals.

Everything here is recomputed from a fresh fetch; nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from data_client import CancelToken, DataClient, fetch_concurrently
from errors import DataAccessError
from logger import get_logger

log = get_logger("reports")

WINDOW_MONTHS = 6
MONTH_LABEL_FORMAT = "%b %Y"
DEFAULT_CATEGORY_COLOR = "#3B82F6"
RECENT_TRANSACTIONS_LIMIT = 10


@dataclass
class MonthlyAggregate:
    month: str
    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


@dataclass
class CategoryAggregate:
    name: str
    value: float
    color: str


@dataclass
class GlobalStats:
    total_income: float = 0.0
    total_expense: float = 0.0

    @property
    def net_balance(self) -> float:
        return self.total_income - self.total_expense


@dataclass
class Report:
    monthly: List[MonthlyAggregate] = field(default_factory=list)
    categories: List[CategoryAggregate] = field(default_factory=list)
    stats: GlobalStats = field(default_factory=GlobalStats)


@dataclass
class DashboardStats:
    total_balance: float = 0.0
    income: float = 0.0
    expenses: float = 0.0


@dataclass
class Dashboard:
    wallets: List[dict] = field(default_factory=list)
    recent_transactions: List[dict] = field(default_factory=list)
    stats: DashboardStats = field(default_factory=DashboardStats)


def transactions_frame(transactions: Iterable[dict]) -> pd.DataFrame:
    """Flatten transaction rows (as returned by the data client) into a DataFrame."""
    rows = []
    for t in transactions:
        category = t.get("category") or None
        rows.append({
            "Date": t.get("date"),
            "Type": t.get("type"),
            "Amount": t.get("amount"),
            "Category": category.get("name") if category else None,
            "Color": (category.get("color") or None) if category else None,
        })

    df = pd.DataFrame(rows, columns=["Date", "Type", "Amount", "Category", "Color"])
    df["Amount"] = pd.to_numeric(df["Amount"], errors="coerce").fillna(0.0).astype(float)
    df["Date"] = pd.to_datetime(df["Date"], errors="coerce")
    df["Month"] = df["Date"].dt.to_period("M").astype(str)
    return df


def month_window(today: Optional[date] = None, months: int = WINDOW_MONTHS) -> pd.PeriodIndex:
    """The ``months`` calendar months ending with today's month, oldest first."""
    current = pd.Timestamp(today or date.today()).to_period("M")
    return pd.period_range(end=current, periods=months, freq="M")


def monthly_totals(transactions: Iterable[dict], today: Optional[date] = None) -> List[MonthlyAggregate]:
    """Per-month income/expense for the trailing window.

    Always returns one bucket per month of the window; transactions dated
    outside it are ignored.
    """
    window = month_window(today)
    df = transactions_frame(transactions)
    sums = df.groupby(["Month", "Type"])["Amount"].sum()

    buckets = []
    for period in window:
        key = str(period)
        buckets.append(MonthlyAggregate(
            month=period.strftime(MONTH_LABEL_FORMAT),
            income=float(sums.get((key, "income"), 0.0)),
            expense=float(sums.get((key, "expense"), 0.0)),
        ))
    return buckets


def category_totals(transactions: Iterable[dict]) -> List[CategoryAggregate]:
    """Expense totals per category name, in first-seen order.

    Income rows and rows without a category are left out. Categories that
    share a name land in the same bucket and keep the first color seen.
    """
    df = transactions_frame(transactions)
    spend = df[(df["Type"] == "expense") & df["Category"].notna()].copy()
    if spend.empty:
        return []

    spend["Color"] = spend["Color"].fillna(DEFAULT_CATEGORY_COLOR)
    by_cat = spend.groupby("Category", sort=False).agg(value=("Amount", "sum"), color=("Color", "first"))
    return [
        CategoryAggregate(name=str(name), value=float(row["value"]), color=str(row["color"]))
        for name, row in by_cat.iterrows()
    ]


def global_stats(transactions: Iterable[dict]) -> GlobalStats:
    df = transactions_frame(transactions)
    return GlobalStats(
        total_income=float(df.loc[df["Type"] == "income", "Amount"].sum()),
        total_expense=float(df.loc[df["Type"] == "expense", "Amount"].sum()),
    )


def dashboard_stats(wallets: Iterable[dict], transactions: Iterable[dict]) -> DashboardStats:
    total_balance = sum(float(w.get("balance") or 0) for w in wallets)
    totals = global_stats(transactions)
    return DashboardStats(
        total_balance=total_balance,
        income=totals.total_income,
        expenses=totals.total_expense,
    )


def build_report(transactions: List[dict], today: Optional[date] = None) -> Report:
    return Report(
        monthly=monthly_totals(transactions, today),
        categories=category_totals(transactions),
        stats=global_stats(transactions),
    )


def load_report(
    client: DataClient,
    session,
    today: Optional[date] = None,
    cancel: Optional[CancelToken] = None,
) -> Report:
    """Fetch the user's transactions (oldest first) and aggregate them.

    A failed fetch is logged and yields an empty report.
    """
    try:
        [transactions] = fetch_concurrently(
            [lambda: client.select("transactions", filters={"user_id": session.user_id}, order_by="date")],
            cancel,
        )
    except DataAccessError:
        log.exception("Error fetching report data")
        return Report()
    return build_report(transactions, today)


def load_dashboard(client: DataClient, session, cancel: Optional[CancelToken] = None) -> Dashboard:
    """Wallets, the latest transactions and headline totals, fetched together.

    Any failing query fails the whole load, which then falls back to an
    empty dashboard.
    """
    mine = {"user_id": session.user_id}
    try:
        wallets, recent, amounts = fetch_concurrently(
            [
                lambda: client.select("wallets", filters=mine, order_by="created_at"),
                lambda: client.select(
                    "transactions", filters=mine, order_by="date", descending=True,
                    limit=RECENT_TRANSACTIONS_LIMIT,
                ),
                lambda: client.select("transactions", filters=mine, columns=("type", "amount")),
            ],
            cancel,
        )
    except DataAccessError:
        log.exception("Error fetching dashboard data")
        return Dashboard()

    return Dashboard(wallets=wallets, recent_transactions=recent, stats=dashboard_stats(wallets, amounts))
