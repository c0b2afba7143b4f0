"""
analytics.py
------------
Period summaries, daily income/expense series and expense breakdowns.

Amounts are aggregated as integer cents in pandas frames and converted to
dollars only when the response models are built.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from currency import to_major_units
from database import Transaction, TransactionType
from date_ranges import DateRange
from schemas import (
    BreakdownItem,
    ChartData,
    ChartPoint,
    DateRangeOut,
    ExpenseBreakdownData,
    PercentageChange,
    PreviousValues,
    SavingRate,
    SummaryData,
)
from transaction_store import transactions_in_range

TOP_CATEGORY_COUNT = 3
OTHERS_BUCKET = "others"
FRAME_COLUMNS = ["date", "type", "amount", "category"]


def transactions_to_df(
    db: Session,
    user_id: int,
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    txn_type: Optional[TransactionType] = None,
) -> pd.DataFrame:
    rows = (
        transactions_in_range(db, user_id, date_from, date_to, txn_type)
        .with_entities(Transaction.date, Transaction.type, Transaction.amount, Transaction.category)
        .all()
    )
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "date": row.date,
                "type": TransactionType(row.type).value,
                "amount": abs(int(row.amount)),
                "category": row.category,
            }
            for row in rows
        ]
    )
    df["date"] = pd.to_datetime(df["date"])
    return df


def _totals(df: pd.DataFrame) -> Tuple[int, int]:
    """Income and expense totals in cents, both non-negative."""
    if df.empty:
        return 0, 0
    by_type = df.groupby("type")["amount"].sum()
    income = int(by_type.get(TransactionType.INCOME.value, 0))
    expenses = int(by_type.get(TransactionType.EXPENSE.value, 0))
    return income, expenses


def percentage_change(previous: float, current: float) -> float:
    """
    Relative change from ``previous`` to ``current`` in percent.

    Both zero gives 0, a zero baseline with any other current value gives 100,
    otherwise the delta is divided by ``abs(previous)`` so a move from -50 to
    +50 reads as +200% rather than -200%.
    """
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return round((current - previous) / abs(previous) * 100, 2)


def previous_period(date_range: DateRange) -> Tuple[datetime, datetime]:
    """Comparable window right before ``date_range``; yearly presets shift one calendar year."""
    if date_range.is_all_time:
        raise ValueError("All-time ranges have no previous period")

    if date_range.is_yearly:
        shift = relativedelta(years=1)
        return date_range.date_from - shift, date_range.date_to - shift

    period_days = (date_range.date_to - date_range.date_from).days + 1
    shift = relativedelta(days=period_days)
    return date_range.date_from - shift, date_range.date_to - shift


def _range_out(date_range: DateRange) -> DateRangeOut:
    return DateRangeOut(
        date_from=date_range.date_from,
        date_to=date_range.date_to,
        value=date_range.value,
        label=date_range.label,
    )


def compute_summary(db: Session, user_id: int, date_range: DateRange) -> SummaryData:
    df = transactions_to_df(db, user_id, date_range.date_from, date_range.date_to)
    income, expenses = _totals(df)
    balance = income - expenses

    savings_rate = (income - expenses) / income * 100 if income > 0 else 0.0
    expense_ratio = expenses / income * 100 if income > 0 else 0.0

    change = PercentageChange()
    if not date_range.is_all_time:
        prev_from, prev_to = previous_period(date_range)
        prev_income, prev_expenses = _totals(transactions_to_df(db, user_id, prev_from, prev_to))
        prev_balance = prev_income - prev_expenses

        change = PercentageChange(
            income=percentage_change(prev_income, income),
            expenses=percentage_change(prev_expenses, expenses),
            balance=percentage_change(prev_balance, balance),
            prev_period_from=prev_from,
            prev_period_to=prev_to,
            previous_values=PreviousValues(
                income_amount=to_major_units(prev_income),
                expense_amount=to_major_units(prev_expenses),
                balance_amount=to_major_units(prev_balance),
            ),
        )

    return SummaryData(
        available_balance=to_major_units(balance),
        total_income=to_major_units(income),
        total_expenses=to_major_units(expenses),
        saving_rate=SavingRate(percentage=round(savings_rate, 2), expense_ratio=round(expense_ratio, 2)),
        transaction_count=len(df),
        percentage_change=change,
        preset=_range_out(date_range),
    )


def compute_chart(db: Session, user_id: int, date_range: DateRange) -> ChartData:
    """Per-day income and expense sums, oldest day first."""
    df = transactions_to_df(db, user_id, date_range.date_from, date_range.date_to)
    if df.empty:
        return ChartData(chart_data=[], total_income_count=0, total_expense_count=0, preset=_range_out(date_range))

    df["day"] = df["date"].dt.strftime("%Y-%m-%d")
    daily = (
        df.pivot_table(index="day", columns="type", values="amount", aggfunc="sum", fill_value=0)
        .reindex(columns=[TransactionType.INCOME.value, TransactionType.EXPENSE.value], fill_value=0)
        .sort_index()
    )

    points = [
        ChartPoint(
            date=day,
            income=to_major_units(int(row[TransactionType.INCOME.value])),
            expenses=to_major_units(int(row[TransactionType.EXPENSE.value])),
        )
        for day, row in daily.iterrows()
    ]
    counts = df["type"].value_counts()

    return ChartData(
        chart_data=points,
        total_income_count=int(counts.get(TransactionType.INCOME.value, 0)),
        total_expense_count=int(counts.get(TransactionType.EXPENSE.value, 0)),
        preset=_range_out(date_range),
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_expense_breakdown(db: Session, user_id: int, date_range: DateRange) -> ExpenseBreakdownData:
    """Top three expense categories by spend plus an ``others`` bucket for the rest."""
    df = transactions_to_df(db, user_id, date_range.date_from, date_range.date_to, TransactionType.EXPENSE)
    if df.empty:
        return ExpenseBreakdownData(total_spent=0.0, breakdown=[], preset=_range_out(date_range))

    by_category = df.groupby("category")["amount"].sum().reset_index()
    by_category = by_category.sort_values(["amount", "category"], ascending=[False, True])

    buckets = [(row.category, int(row.amount)) for row in by_category.head(TOP_CATEGORY_COUNT).itertuples()]
    others = int(by_category["amount"].iloc[TOP_CATEGORY_COUNT:].sum())
    if others > 0:
        buckets.append((OTHERS_BUCKET, others))

    total_spent = sum(value for _, value in buckets)
    breakdown = [
        BreakdownItem(
            name=name,
            value=to_major_units(value),
            percentage=_round_half_up(value / total_spent * 100) if total_spent > 0 else 0,
        )
        for name, value in buckets
    ]
    return ExpenseBreakdownData(total_spent=to_major_units(total_spent), breakdown=breakdown, preset=_range_out(date_range))
