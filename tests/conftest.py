"""Shared fixtures.

Canonical loan: 500,000 borrowed at 9.5% for 20 years (240 months), the
default offer of the EMI calculator page.
"""

from decimal import Decimal

import pytest

from emi_calc.data_models import LoanRequest


@pytest.fixture
def canonical_request() -> LoanRequest:
    return LoanRequest(
        principal=Decimal("500000"),
        annual_rate_percent=Decimal("9.5"),
        tenure_months=240,
    )


@pytest.fixture
def monthly_rate() -> Decimal:
    return Decimal("9.5") / Decimal(12) / Decimal(100)
