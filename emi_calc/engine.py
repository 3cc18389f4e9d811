"""Core calculation engine for the EMI calculator.

This module builds month-by-month amortization schedules for level-payment
(EMI) loans. It supports an initial moratorium whose interest is either paid
monthly or capitalized (simple or compound), and prepayments made monthly,
yearly or on a custom list of periods. Prepayments only shorten the loan: the
level payment is computed once at the start of the repayment phase and is not
re-amortized afterwards.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, Overflow, getcontext
from typing import Dict, Iterable, List, Optional, Tuple

from .data_models import (
    MORATORIUM_CAPITALIZE_COMPOUND,
    MORATORIUM_CAPITALIZE_SIMPLE,
    MORATORIUM_MODES,
    MORATORIUM_PAY,
    PREPAY_CUSTOM,
    PREPAY_MONTHLY,
    PREPAY_YEARLY,
    PREPAYMENT_FREQUENCIES,
    AmortizationEntry,
    AmortizationResult,
    CustomPrepayment,
    LoanRequest,
    Prepayment,
)
from .utils import to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# A balance at or below this amount counts as fully repaid.
ZERO_BALANCE_TOLERANCE = Decimal("0.001")

ZERO = Decimal("0")


class InvalidArgument(ValueError):
    """Raised when a loan request is outside the domain the engine accepts."""


def require_decimal(name: str, value) -> Decimal:
    try:
        number = to_decimal(value)
    except ValueError as exc:
        raise InvalidArgument(f"{name} must be a number; got {value!r}") from exc
    if not number.is_finite():
        raise InvalidArgument(f"{name} must be finite; got {value!r}")
    return number


def require_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"{name} must be an integer; got {value!r}")
    if isinstance(value, int):
        return value
    number = require_decimal(name, value)
    if number != number.to_integral_value():
        raise InvalidArgument(f"{name} must be a whole number of months; got {value!r}")
    return int(number)


def _normalize_prepayment(prepayment: Optional[Prepayment]) -> Optional[Prepayment]:
    if prepayment is None:
        return None
    frequency = (prepayment.frequency or "").lower()
    if frequency not in PREPAYMENT_FREQUENCIES:
        raise InvalidArgument(
            f"Prepayment frequency must be one of {', '.join(PREPAYMENT_FREQUENCIES)}; got {prepayment.frequency!r}"
        )
    amount = require_decimal("Prepayment amount", prepayment.amount)
    if amount < 0:
        raise InvalidArgument("Prepayment amount cannot be negative")
    custom: List[CustomPrepayment] = []
    for item in prepayment.custom_payments:
        period = require_int("Custom prepayment period", item.period)
        custom_amount = require_decimal("Custom prepayment amount", item.amount)
        if period < 1:
            raise InvalidArgument(f"Custom prepayment period must be 1 or later; got {period}")
        if custom_amount < 0:
            raise InvalidArgument("Custom prepayment amount cannot be negative")
        custom.append(CustomPrepayment(period=period, amount=custom_amount))
    return Prepayment(frequency=frequency, amount=amount, custom_payments=tuple(custom))


def validate_request(request: LoanRequest) -> LoanRequest:
    """Return a copy of ``request`` with every number converted to ``Decimal``.

    Raises
    ------
    InvalidArgument
        If any field is non-numeric, non-finite or outside its domain.
    """
    principal = require_decimal("Principal", request.principal)
    if principal <= 0:
        raise InvalidArgument("Principal must be positive")
    rate = require_decimal("Interest rate", request.annual_rate_percent)
    if rate < 0:
        raise InvalidArgument("Interest rate cannot be negative")
    tenure = require_int("Tenure", request.tenure_months)
    if tenure <= 0:
        raise InvalidArgument("Tenure must be at least one month")
    moratorium = require_int("Moratorium", request.moratorium_months)
    if moratorium < 0:
        raise InvalidArgument("Moratorium cannot be negative")
    mode = (request.moratorium_mode or "").lower()
    if mode not in MORATORIUM_MODES:
        raise InvalidArgument(
            f"Moratorium mode must be one of {', '.join(MORATORIUM_MODES)}; got {request.moratorium_mode!r}"
        )
    return LoanRequest(
        principal=principal,
        annual_rate_percent=rate,
        tenure_months=tenure,
        moratorium_months=moratorium,
        moratorium_mode=mode,
        prepayment=_normalize_prepayment(request.prepayment),
    )


def calculate_level_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the level (EMI) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. A non-positive term yields zero.

    Raises
    ------
    InvalidArgument
        If the rate and term are too large for the payment to be computed.
    """
    if term <= 0:
        return ZERO
    if rate_per_month == 0:
        return principal / Decimal(term)
    try:
        factor = (1 + rate_per_month) ** term
        return principal * (rate_per_month * factor) / (factor - 1)
    except (Overflow, InvalidOperation) as exc:
        raise InvalidArgument(
            f"Rate of {rate_per_month} per month over {term} months is too large to compute"
        ) from exc


def _prepare_custom_prepayments(payments: Iterable[CustomPrepayment]) -> Dict[int, Decimal]:
    """Sum custom prepayments by period for quick lookup."""
    mapping: Dict[int, Decimal] = {}
    for p in payments:
        mapping[p.period] = mapping.get(p.period, ZERO) + p.amount
    return mapping


def _extra_payment(prepayment: Optional[Prepayment], custom: Dict[int, Decimal], period: int) -> Decimal:
    if prepayment is None:
        return ZERO
    if prepayment.frequency == PREPAY_MONTHLY:
        return prepayment.amount
    if prepayment.frequency == PREPAY_YEARLY:
        return prepayment.amount if period % 12 == 0 else ZERO
    if prepayment.frequency == PREPAY_CUSTOM:
        return custom.get(period, ZERO)
    return ZERO


def _capitalize_accrued_interest(
    schedule: List[AmortizationEntry], balance: Decimal, accrued: Decimal
) -> Decimal:
    """Add simple moratorium interest to the balance in one step.

    The last moratorium row is replaced by a copy showing the capitalized
    balance. Returns the new balance.
    """
    balance += accrued
    if schedule:
        last = schedule[-1]
        schedule[-1] = AmortizationEntry(
            period=last.period,
            principal_paid=last.principal_paid,
            interest_paid=last.interest_paid,
            balance=balance,
            is_moratorium=last.is_moratorium,
        )
    return balance


def _run_moratorium(
    balance: Decimal, rate_per_month: Decimal, months: int, mode: str
) -> Tuple[List[AmortizationEntry], Decimal, Decimal, Decimal]:
    """Return moratorium rows, balance afterwards, interest accrued and interest paid."""
    schedule: List[AmortizationEntry] = []
    accrued = ZERO
    interest_total = ZERO
    for period in range(1, months + 1):
        interest = balance * rate_per_month
        interest_total += interest
        if mode == MORATORIUM_CAPITALIZE_SIMPLE:
            accrued += interest
        elif mode == MORATORIUM_CAPITALIZE_COMPOUND:
            balance += interest
        schedule.append(
            AmortizationEntry(
                period=period,
                principal_paid=ZERO,
                interest_paid=interest,
                balance=balance,
                is_moratorium=True,
            )
        )
    if mode == MORATORIUM_CAPITALIZE_SIMPLE and months > 0:
        balance = _capitalize_accrued_interest(schedule, balance, accrued)
    interest_paid = interest_total if mode == MORATORIUM_PAY else ZERO
    return schedule, balance, interest_total, interest_paid


def compute_amortization(request: LoanRequest) -> AmortizationResult:
    """Compute the amortization schedule and totals for a loan.

    Parameters
    ----------
    request: LoanRequest
        The loan parameters. Numbers may be ``Decimal``, ``int``, ``float``
        or numeric strings.

    Returns
    -------
    AmortizationResult
        The level payment of the repayment phase, aggregate totals and one
        schedule entry per period. The schedule ends early once prepayments
        have cleared the balance.

    Raises
    ------
    InvalidArgument
        If the request is outside the accepted domain, or its numbers are
        too large for the schedule to be computed.

    Notes
    -----
    Capitalized moratorium interest is counted in ``total_interest`` when it
    accrues and repaid later inside the principal column, so
    ``total_paid == sum(principal + interest) - capitalized_interest``.
    """
    request = validate_request(request)
    try:
        return _amortize(request)
    except (Overflow, InvalidOperation) as exc:
        raise InvalidArgument("Loan values are too large to compute") from exc


def _amortize(request: LoanRequest) -> AmortizationResult:
    rate_per_month = request.annual_rate_percent / Decimal(12) / Decimal(100)
    tenure = request.tenure_months

    active_moratorium = min(request.moratorium_months, tenure - 1)
    if active_moratorium < request.moratorium_months:
        logger.debug(
            "Moratorium of %s months clamped to %s for a %s month tenure",
            request.moratorium_months,
            active_moratorium,
            tenure,
        )

    # Phase 1: moratorium
    schedule, balance, total_interest, total_paid = _run_moratorium(
        request.principal, rate_per_month, active_moratorium, request.moratorium_mode
    )
    capitalized_interest = balance - request.principal

    # Phase 2: repayment
    remaining_tenure = tenure - active_moratorium
    level_payment = calculate_level_payment(balance, rate_per_month, remaining_tenure)
    custom = _prepare_custom_prepayments(
        request.prepayment.custom_payments if request.prepayment else ()
    )
    total_prepaid = ZERO

    for period in range(active_moratorium + 1, tenure + 1):
        if balance <= ZERO_BALANCE_TOLERANCE:
            break
        interest_payment = balance * rate_per_month
        extra = _extra_payment(request.prepayment, custom, period)
        payment = level_payment + extra
        principal_payment = payment - interest_payment

        # Clamp an overshooting payment so the balance lands exactly on zero
        if principal_payment > balance:
            principal_payment = balance
            payment = principal_payment + interest_payment
            extra = max(ZERO, payment - level_payment)
        total_prepaid += extra

        total_interest += interest_payment
        total_paid += payment
        balance = max(ZERO, balance - principal_payment)
        schedule.append(
            AmortizationEntry(
                period=period,
                principal_paid=principal_payment,
                interest_paid=interest_payment,
                balance=balance,
                is_moratorium=False,
            )
        )
        if balance <= ZERO_BALANCE_TOLERANCE:
            if period < tenure:
                logger.debug("Loan closed in period %s of %s", period, tenure)
            break

    return AmortizationResult(
        periodic_payment=level_payment,
        total_interest=total_interest,
        total_paid=total_paid,
        schedule=tuple(schedule),
        moratorium_applied=active_moratorium > 0,
        capitalized_interest=capitalized_interest,
        total_prepaid=total_prepaid,
    )
