"""Calendar bucketing shared by the dashboard, analytics and budget reads.

Period keys sort lexicographically in chronological order:

* ``day``   -> ``YYYY-MM-DD``
* ``week``  -> ``YYYY-MM-W<k>``: the month of the Sunday that starts the week,
  with ``k = ceil((day_of_month - day_of_week) / 7)`` and Sunday as day 0.
  This is a week-of-month ordinal, not an ISO week number; early-month
  dates whose week started in the previous month land in ``W0`` of that
  previous month.
* ``month`` -> ``YYYY-MM``
"""

import math
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

GROUP_BY_OPTIONS = ("day", "week", "month")
UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_COLOR = "#9CA3AF"


def sunday_week_start(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_key(txn_date: date, group_by: str = "month") -> str:
    if group_by == "month":
        return txn_date.isoformat()[:7]
    if group_by == "week":
        day_of_week = (txn_date.weekday() + 1) % 7
        week_of_month = math.ceil((txn_date.day - day_of_week) / 7)
        return f"{sunday_week_start(txn_date).isoformat()[:7]}-W{week_of_month}"
    if group_by == "day":
        return txn_date.isoformat()
    raise ValueError(f"groupBy must be one of: {', '.join(GROUP_BY_OPTIONS)}")


def income_expense_by_period(rows: Iterable, group_by: str = "month") -> List[Dict]:
    """Sum income and expense per bucket.

    ``rows`` are objects with ``txn_date``, ``type`` and ``amount`` attributes.
    """
    buckets: Dict[str, Dict[str, Decimal]] = defaultdict(
        lambda: {"income": Decimal("0"), "expense": Decimal("0")}
    )
    for row in rows:
        bucket = buckets[period_key(row.txn_date, group_by)]
        amount = Decimal(row.amount or 0)
        if row.type == "income":
            bucket["income"] += amount
        else:
            bucket["expense"] += amount

    return [
        {
            "period": key,
            "income": bucket["income"],
            "expense": bucket["expense"],
            "net": bucket["income"] - bucket["expense"],
        }
        for key, bucket in sorted(buckets.items())
    ]


def category_spend_by_period(rows: Iterable, group_by: str = "month") -> List[Dict]:
    """Sum amounts per bucket and category name.

    ``rows`` carry ``txn_date``, ``amount``, ``category_name`` and
    ``category_color``; missing categories fall into "Uncategorized".
    """
    buckets: Dict[str, Dict[str, Dict]] = defaultdict(dict)
    for row in rows:
        name = row.category_name or UNCATEGORIZED_NAME
        categories = buckets[period_key(row.txn_date, group_by)]
        if name not in categories:
            categories[name] = {
                "name": name,
                "color": row.category_color or UNCATEGORIZED_COLOR,
                "amount": Decimal("0"),
            }
        categories[name]["amount"] += Decimal(row.amount or 0)

    return [
        {"period": key, "categories": list(categories.values())}
        for key, categories in sorted(buckets.items())
    ]


def budget_window(
    period: str,
    today: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[Optional[date], Optional[date]]:
    if period == "monthly":
        start = today.replace(day=1)
        return start, start + relativedelta(months=1) - timedelta(days=1)
    if period == "weekly":
        start = sunday_week_start(today)
        return start, start + timedelta(days=6)
    return start_date, end_date


def previous_budget_window(period: str, today: date) -> Optional[Tuple[date, date]]:
    if period == "monthly":
        current_start = today.replace(day=1)
        return current_start - relativedelta(months=1), current_start - timedelta(days=1)
    if period == "weekly":
        start = sunday_week_start(today) - timedelta(days=7)
        return start, start + timedelta(days=6)
    return None
