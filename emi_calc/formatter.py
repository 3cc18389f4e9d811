"""Output helpers for the EMI calculator.

This module turns engine results into the shapes its consumers need: a
summary dictionary, flat per-period records for spreadsheet-style export and
simple tabular text for the terminal.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from .data_models import (
    AmortizationEntry,
    AmortizationResult,
    EligibilityResult,
    LoanComparison,
    LoanRequest,
    YearlySummary,
)
from .utils import add_months, period_date

SCHEDULE_COLUMNS = ["period", "date", "principal", "interest", "total_payment", "balance", "moratorium"]


def schedule_records(
    schedule: Iterable[AmortizationEntry], start: Optional[date] = None
) -> List[Dict[str, object]]:
    """Flatten schedule entries into JSON/CSV friendly dictionaries.

    ``total_payment`` is derived from the principal and interest columns.
    The ``date`` column is only present when ``start`` is given.
    """
    records = []
    for entry in schedule:
        record: Dict[str, object] = {"period": entry.period}
        if start is not None:
            record["date"] = period_date(start, entry.period).strftime("%Y-%m")
        record.update(
            {
                "principal": float(entry.principal_paid),
                "interest": float(entry.interest_paid),
                "total_payment": float(entry.total_payment),
                "balance": float(entry.balance),
                "moratorium": entry.is_moratorium,
            }
        )
        records.append(record)
    return records


def build_summary(request: LoanRequest, result: AmortizationResult, start: date) -> Dict[str, object]:
    """Aggregate metrics for a computed loan.

    ``months_saved`` counts the scheduled periods that prepayments made
    unnecessary.
    """
    schedule = result.schedule
    last_period = schedule[-1].period if schedule else 0
    payments_made = sum(1 for s in schedule if not s.is_moratorium)
    return {
        "principal": float(request.principal),
        "periodic_payment": float(result.periodic_payment),
        "total_interest": float(result.total_interest),
        "total_paid": float(result.total_paid),
        "total_prepaid": float(result.total_prepaid),
        "capitalized_interest": float(result.capitalized_interest),
        "moratorium_applied": result.moratorium_applied,
        "tenure_months": int(request.tenure_months),
        "payments_made": payments_made,
        "months_saved": int(request.tenure_months) - last_period,
        "original_end_date": add_months(start, int(request.tenure_months) - 1).strftime("%Y-%m"),
        "new_end_date": period_date(start, max(last_period, 1)).strftime("%Y-%m"),
    }


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {summary['principal']:.2f}")
    print(f"Monthly EMI        : {summary['periodic_payment']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    if summary.get("capitalized_interest"):
        print(f"Capitalized        : {summary['capitalized_interest']:.2f}")
    if summary.get("total_prepaid"):
        print(f"Total prepaid      : {summary['total_prepaid']:.2f}")
    print(f"Total paid         : {summary['total_paid']:.2f}")
    print(f"Original end date  : {summary['original_end_date']}")
    print(f"New end date       : {summary['new_end_date']}")
    print(f"Payments made      : {summary['payments_made']}")
    if summary.get("months_saved"):
        print(f"Term reduction     : {summary['months_saved']} months")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationEntry], start: date) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Month", "Date", "Principal", "Interest", "Payment", "Balance", "Moratorium"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            period_date(start, entry.period).strftime("%Y-%m"),
            f"{entry.principal_paid:.2f}",
            f"{entry.interest_paid:.2f}",
            f"{entry.total_payment:.2f}",
            f"{entry.balance:.2f}",
            "Yes" if entry.is_moratorium else "No",
        ]
        print("\t".join(row))


def print_yearly(years: Iterable[YearlySummary]) -> None:
    """Print calendar-year totals as a tab-separated table."""
    print("\t".join(["Year", "Principal", "Interest", "Balance"]))
    for y in years:
        print(f"{y.year}\t{y.principal_paid:.2f}\t{y.interest_paid:.2f}\t{y.balance:.2f}")


def print_comparison(comparison: LoanComparison) -> None:
    """Print two loan offers side by side.

    The difference column is offer 2 minus offer 1, so a negative value means
    the second offer is cheaper.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Offer1':>15s} {'Offer2':>15s} {'Difference':>15s}")
    rows = [
        ("monthly_emi", comparison.first.periodic_payment, comparison.second.periodic_payment),
        ("total_interest", comparison.first.total_interest, comparison.second.total_interest),
        ("total_paid", comparison.first.total_paid, comparison.second.total_paid),
    ]
    for key, v1, v2 in rows:
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    print("=" * 72)
    label = "Offer 1" if comparison.better == "first" else "Offer 2"
    print(f"You save {comparison.interest_savings:.2f} in interest with {label}")


def print_eligibility(result: EligibilityResult) -> None:
    """Print the eligibility estimate."""
    print(f"Disposable income  : {result.disposable_income:.2f}")
    print(f"Max loan amount    : {result.max_principal:.2f}")
    print(f"EMI at max amount  : {result.periodic_payment:.2f}")
