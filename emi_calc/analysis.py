"""Loan analyses built on top of the amortization engine.

Pure functions: requests in, dataclasses out. No I/O.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, Overflow
from typing import Iterable, List

from .data_models import (
    AmortizationEntry,
    EligibilityResult,
    LoanComparison,
    LoanRequest,
    YearlySummary,
)
from .engine import InvalidArgument, require_decimal, require_int, calculate_level_payment, compute_amortization
from .utils import period_date

ZERO = Decimal("0")


def compare_loans(first: LoanRequest, second: LoanRequest) -> LoanComparison:
    """Run both offers through the engine and report the interest difference.

    The first offer only wins when its total interest is strictly lower.
    """
    res1 = compute_amortization(first)
    res2 = compute_amortization(second)
    savings = abs(res1.total_interest - res2.total_interest)
    better = "first" if res1.total_interest < res2.total_interest else "second"
    return LoanComparison(first=res1, second=res2, interest_savings=savings, better=better)


def estimate_eligibility(
    monthly_income,
    existing_emi,
    annual_rate_percent,
    tenure_months: int,
    foir_percent=Decimal("50"),
) -> EligibilityResult:
    """Estimate the largest loan a borrower can service.

    Disposable income = monthly income x FOIR% - existing EMIs. The maximum
    principal is the present value of paying that amount every month for the
    tenure, i.e. the loan whose EMI equals the disposable income.
    """
    income = require_decimal("Monthly income", monthly_income)
    existing = require_decimal("Existing EMI", existing_emi)
    rate = require_decimal("Interest rate", annual_rate_percent)
    foir = require_decimal("FOIR", foir_percent)
    tenure = require_int("Tenure", tenure_months)
    if income < 0 or existing < 0:
        raise InvalidArgument("Income and existing EMIs cannot be negative")
    if rate < 0:
        raise InvalidArgument("Interest rate cannot be negative")
    if not ZERO <= foir <= Decimal(100):
        raise InvalidArgument("FOIR must be between 0 and 100 percent")
    if tenure <= 0:
        raise InvalidArgument("Tenure must be at least one month")

    disposable = income * foir / Decimal(100) - existing
    if disposable <= 0:
        return EligibilityResult(disposable_income=disposable, max_principal=ZERO, periodic_payment=ZERO)

    r = rate / Decimal(12) / Decimal(100)
    try:
        if r == 0:
            max_principal = disposable * Decimal(tenure)
        else:
            factor = (1 + r) ** tenure
            max_principal = disposable * (factor - 1) / (r * factor)
    except (Overflow, InvalidOperation) as exc:
        raise InvalidArgument("Income, rate and tenure are too large to compute") from exc
    return EligibilityResult(
        disposable_income=disposable,
        max_principal=max_principal,
        periodic_payment=calculate_level_payment(max_principal, r, tenure),
    )


def yearly_breakdown(schedule: Iterable[AmortizationEntry], start: date) -> List[YearlySummary]:
    """Aggregate schedule rows into calendar-year buckets.

    ``start`` is the calendar month of period 1. Each bucket's ``balance`` is
    the balance at the end of the last period falling in that year.
    """
    years: List[YearlySummary] = []
    for entry in schedule:
        year = period_date(start, entry.period).year
        if not years or years[-1].year != year:
            years.append(YearlySummary(year=year))
        bucket = years[-1]
        bucket.principal_paid += entry.principal_paid
        bucket.interest_paid += entry.interest_paid
        bucket.balance = entry.balance
    return years
