from datetime import datetime, timedelta

from core.config import settings
from core.errors import InvalidPlan


def _lookup(table: dict, plan: str | None) -> int:
    key = (plan or "").strip().lower()
    if key not in table:
        raise InvalidPlan(f"Invalid plan. Choose: {', '.join(table)}")
    return table[key]


def normalize_plan(plan: str | None) -> str:
    _lookup(settings.PLAN_PRICES, plan)
    return plan.strip().lower()


def plan_amount(plan: str) -> int:
    """Price of ``plan`` in KES."""
    return _lookup(settings.PLAN_PRICES, plan)


def plan_duration_days(plan: str) -> int:
    return _lookup(settings.PLAN_DURATIONS, plan)


def plan_due_date(plan: str, now: datetime) -> datetime:
    return now + timedelta(days=plan_duration_days(plan))
