from __future__ import annotations

import math
import re
from datetime import date

MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def validate_month(month: str) -> bool:
    if not MONTH_RE.match(month or ""):
        return False
    return 1 <= int(month[5:]) <= 12


def current_month() -> str:
    today = date.today()
    return f"{today.year}-{today.month:02d}"


def shift_month(month: str, offset: int) -> str:
    year, mon = (int(part) for part in month.split("-"))
    index = year * 12 + (mon - 1) + offset
    return f"{index // 12}-{index % 12 + 1:02d}"


def month_display(month: str) -> str:
    year, mon = (int(part) for part in month.split("-"))
    return f"{MONTH_NAMES[mon - 1]} {year}"


def parse_bill(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        bill = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return bill if math.isfinite(bill) else None


def monthly_income(biweekly_paycheck: float) -> float:
    return biweekly_paycheck * 26 / 12


def calculate_finance_stats(
    entries: list[dict],
    month: str,
    entered_bill: float | None,
    *,
    biweekly_paycheck: float,
    rent: float,
    savings: float,
    credit_card_limit: float,
) -> dict:
    current = next((entry for entry in entries if entry["month"] == month), None)
    if current is not None and current["creditCardBill"]:
        bill = current["creditCardBill"]
    else:
        bill = entered_bill or 0

    total_expenses = rent + bill + savings
    previous = sorted(
        (entry for entry in entries if entry["month"] < month),
        key=lambda entry: entry["month"],
        reverse=True,
    )
    trend = bill - previous[0]["creditCardBill"] if previous else 0

    return {
        "currentBillAmount": bill,
        "remainingBudget": credit_card_limit - bill,
        "totalExpenses": total_expenses,
        "monthlyIncome": monthly_income(biweekly_paycheck),
        "remainingIncome": monthly_income(biweekly_paycheck) - total_expenses,
        "trend": trend,
        "isOverBudget": bill > credit_card_limit,
        "budgetProgress": bill / credit_card_limit * 100 if credit_card_limit else 0,
    }
