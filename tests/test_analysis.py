from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from emi_calc.analysis import compare_loans, estimate_eligibility, yearly_breakdown
from emi_calc.data_models import LoanRequest
from emi_calc.engine import InvalidArgument, compute_amortization

TOLERANCE = Decimal("0.000001")


class TestCompareLoans:
    def test_cheaper_second_offer(self, canonical_request):
        cheaper = replace(canonical_request, annual_rate_percent=Decimal("8.5"))
        comparison = compare_loans(canonical_request, cheaper)

        assert comparison.better == "second"
        assert comparison.interest_savings == (
            comparison.first.total_interest - comparison.second.total_interest
        )
        assert comparison.second.periodic_payment < comparison.first.periodic_payment

    def test_cheaper_first_offer(self, canonical_request):
        dearer = replace(canonical_request, annual_rate_percent=Decimal("10.5"))
        comparison = compare_loans(canonical_request, dearer)
        assert comparison.better == "first"
        assert comparison.interest_savings > 0

    def test_tie_goes_to_second(self, canonical_request):
        comparison = compare_loans(canonical_request, canonical_request)
        assert comparison.better == "second"
        assert comparison.interest_savings == Decimal("0")


class TestEligibility:
    def test_zero_rate(self):
        result = estimate_eligibility(Decimal("50000"), Decimal("5000"), Decimal("0"), 120)
        # 50000 x 50% - 5000 = 20000 a month for 120 months
        assert result.disposable_income == Decimal("20000")
        assert result.max_principal == Decimal("2400000")
        assert result.periodic_payment == Decimal("20000")

    def test_max_principal_services_disposable_income(self):
        result = estimate_eligibility(Decimal("80000"), Decimal("10000"), Decimal("9.5"), 240, Decimal("60"))
        assert result.disposable_income == Decimal("38000")

        loan = compute_amortization_for(result.max_principal)
        assert abs(loan.periodic_payment - Decimal("38000")) < TOLERANCE

    def test_overflowing_rate_rejected(self):
        with pytest.raises(InvalidArgument, match="too large"):
            estimate_eligibility(Decimal("50000"), Decimal("0"), Decimal("1e3000"), 600)

    def test_no_disposable_income(self):
        result = estimate_eligibility(Decimal("20000"), Decimal("15000"), Decimal("9.5"), 240)
        assert result.disposable_income == Decimal("-5000")
        assert result.max_principal == Decimal("0")

    @pytest.mark.parametrize(
        "args",
        [
            (Decimal("-1"), Decimal("0"), Decimal("9.5"), 240),
            (Decimal("50000"), Decimal("0"), Decimal("-1"), 240),
            (Decimal("50000"), Decimal("0"), Decimal("9.5"), 0),
            (Decimal("50000"), Decimal("0"), Decimal("9.5"), 240, Decimal("120")),
        ],
    )
    def test_rejected(self, args):
        with pytest.raises(InvalidArgument):
            estimate_eligibility(*args)


def compute_amortization_for(principal: Decimal):
    return compute_amortization(
        LoanRequest(principal=principal, annual_rate_percent=Decimal("9.5"), tenure_months=240)
    )


class TestYearlyBreakdown:
    def test_calendar_year_buckets(self, canonical_request):
        schedule = compute_amortization(canonical_request).schedule
        years = yearly_breakdown(schedule, date(2024, 7, 1))

        # July 2024 through June 2044
        assert [y.year for y in years] == list(range(2024, 2045))
        assert years[0].balance == schedule[5].balance
        assert years[-1].balance == schedule[-1].balance

    def test_totals_match_schedule(self, canonical_request):
        schedule = compute_amortization(canonical_request).schedule
        years = yearly_breakdown(schedule, date(2024, 7, 1))

        interest = sum(e.interest_paid for e in schedule)
        principal = sum(e.principal_paid for e in schedule)
        assert abs(sum(y.interest_paid for y in years) - interest) < TOLERANCE
        assert abs(sum(y.principal_paid for y in years) - principal) < TOLERANCE

    def test_empty_schedule(self):
        assert yearly_breakdown([], date(2024, 1, 1)) == []
