"""Data models for the EMI calculator.

This module defines dataclasses representing the entities used by the
amortization engine: the loan request with its optional moratorium and
prepayment policy, individual schedule entries and the overall result. The
request and result types are frozen so that a single call can never mutate
what another caller holds.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

MORATORIUM_PAY = "pay"
MORATORIUM_CAPITALIZE_SIMPLE = "capitalize-simple"
MORATORIUM_CAPITALIZE_COMPOUND = "capitalize-compound"
MORATORIUM_MODES = (
    MORATORIUM_PAY,
    MORATORIUM_CAPITALIZE_SIMPLE,
    MORATORIUM_CAPITALIZE_COMPOUND,
)

PREPAY_MONTHLY = "monthly"
PREPAY_YEARLY = "yearly"
PREPAY_CUSTOM = "custom"
PREPAYMENT_FREQUENCIES = (PREPAY_MONTHLY, PREPAY_YEARLY, PREPAY_CUSTOM)


@dataclass(frozen=True)
class CustomPrepayment:
    """A one-off extra payment made in a specific period.

    Attributes
    ----------
    period: int
        The 1-based period index the amount is paid in.
    amount: Decimal
        The extra amount applied to principal in that period.
    """

    period: int
    amount: Decimal


@dataclass(frozen=True)
class Prepayment:
    """Prepayment policy applied during the repayment phase.

    ``"monthly"`` adds ``amount`` to every repayment period, ``"yearly"`` adds
    it only to periods whose index is a multiple of 12 and ``"custom"`` uses
    ``custom_payments`` instead of ``amount``.
    """

    frequency: str = PREPAY_MONTHLY  # "monthly", "yearly" or "custom"
    amount: Decimal = Decimal("0")
    custom_payments: Tuple[CustomPrepayment, ...] = ()


@dataclass(frozen=True)
class LoanRequest:
    """Inputs of a single amortization run.

    The moratorium is clamped by the engine so that at least one repayment
    period remains; callers do not need to pre-validate it.
    """

    principal: Decimal
    annual_rate_percent: Decimal  # nominal annual interest rate in percent
    tenure_months: int
    moratorium_months: int = 0
    moratorium_mode: str = MORATORIUM_CAPITALIZE_SIMPLE
    prepayment: Optional[Prepayment] = None


@dataclass(frozen=True)
class AmortizationEntry:
    """One period of the amortization schedule.

    ``balance`` is the balance at the end of the period. Moratorium rows have
    ``principal_paid`` equal to zero.
    """

    period: int
    principal_paid: Decimal
    interest_paid: Decimal
    balance: Decimal
    is_moratorium: bool = False

    @property
    def total_payment(self) -> Decimal:
        return self.principal_paid + self.interest_paid


@dataclass(frozen=True)
class AmortizationResult:
    """Outcome of :func:`emi_calc.engine.compute_amortization`.

    ``capitalized_interest`` is the moratorium interest that was added to the
    balance instead of being paid; it appears both in ``total_interest`` and,
    through the repayment rows, in the principal repaid.
    """

    periodic_payment: Decimal
    total_interest: Decimal
    total_paid: Decimal
    schedule: Tuple[AmortizationEntry, ...]
    moratorium_applied: bool
    capitalized_interest: Decimal = Decimal("0")
    total_prepaid: Decimal = Decimal("0")


@dataclass(frozen=True)
class LoanComparison:
    """Side-by-side result of two loan offers."""

    first: AmortizationResult
    second: AmortizationResult
    interest_savings: Decimal
    better: str  # "first" or "second"


@dataclass(frozen=True)
class EligibilityResult:
    """Largest loan a borrower can service and the EMI it carries."""

    disposable_income: Decimal
    max_principal: Decimal
    periodic_payment: Decimal


@dataclass
class YearlySummary:
    """Schedule rows aggregated into one calendar year."""

    year: int
    principal_paid: Decimal = Decimal("0")
    interest_paid: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
