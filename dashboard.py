# dashboard.py: KPI row and plotly charts for the dashboard and reports pages

from typing import List

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from formatting import format_currency
from reports import CategoryAggregate, MonthlyAggregate

INCOME_COLOR = "#10B981"
EXPENSE_COLOR = "#EF4444"
NET_COLOR = "#3B82F6"


def _kpis(values, currency: str = "BRL", locale: str = "pt-BR"):
    """
    Displays one metric per (label, amount) pair in a single row.
    """
    cols = st.columns(len(values))
    for col, (label, amount) in zip(cols, values):
        col.metric(label, format_currency(amount, currency, locale))


def monthly_frame(monthly: List[MonthlyAggregate]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Month": m.month, "Income": m.income, "Expense": m.expense, "Net": m.net} for m in monthly],
        columns=["Month", "Income", "Expense", "Net"],
    )


def income_vs_expense_monthly(monthly: List[MonthlyAggregate]):
    """
    Bar chart of Income vs Expenses per month.
    """
    df = monthly_frame(monthly)

    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["Month"], y=df["Income"], name="Income", marker_color=INCOME_COLOR))
    fig.add_trace(go.Bar(x=df["Month"], y=df["Expense"], name="Expenses", marker_color=EXPENSE_COLOR))

    fig.update_layout(barmode="group", title="Monthly Overview", height=400)
    return fig


def cat_spend(categories: List[CategoryAggregate]):
    """
    Donut chart of spending by category, each slice in its category color.
    """
    by_cat = pd.DataFrame(
        [{"Category": c.name, "Amount": c.value, "Color": c.color} for c in categories],
        columns=["Category", "Amount", "Color"],
    )

    fig = px.pie(
        by_cat,
        values="Amount",
        names="Category",
        hole=0.4,
        title="Expenses by Category",
        color="Category",
        color_discrete_map=dict(zip(by_cat["Category"], by_cat["Color"])),
    )
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def net_trend(monthly: List[MonthlyAggregate]):
    """
    Line chart of income, expenses and net per month.
    """
    df = monthly_frame(monthly)

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=df["Month"], y=df["Income"], name="Income", mode="lines+markers", line=dict(color=INCOME_COLOR)))
    fig.add_trace(go.Scatter(x=df["Month"], y=df["Expense"], name="Expenses", mode="lines+markers", line=dict(color=EXPENSE_COLOR)))
    fig.add_trace(go.Scatter(x=df["Month"], y=df["Net"], name="Net", mode="lines+markers", line=dict(color=NET_COLOR, dash="dot")))
    fig.update_layout(title="Trend Analysis", height=350)
    return fig
