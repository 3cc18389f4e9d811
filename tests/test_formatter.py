from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from emi_calc.data_models import Prepayment
from emi_calc.engine import compute_amortization
from emi_calc.formatter import build_summary, schedule_records


class TestScheduleRecords:
    def test_export_shape(self, canonical_request):
        result = compute_amortization(canonical_request)
        records = schedule_records(result.schedule)

        assert len(records) == 240
        assert set(records[0]) == {"period", "principal", "interest", "total_payment", "balance", "moratorium"}
        first = records[0]
        assert first["total_payment"] == pytest.approx(first["principal"] + first["interest"])

    def test_dates_from_start_month(self, canonical_request):
        records = schedule_records(compute_amortization(canonical_request).schedule, date(2025, 11, 1))
        assert records[0]["date"] == "2025-11"
        assert records[2]["date"] == "2026-01"
        assert records[-1]["date"] == "2045-10"


class TestBuildSummary:
    def test_full_term(self, canonical_request):
        result = compute_amortization(canonical_request)
        summary = build_summary(canonical_request, result, date(2025, 1, 1))

        assert summary["payments_made"] == 240
        assert summary["months_saved"] == 0
        assert summary["original_end_date"] == "2044-12"
        assert summary["new_end_date"] == "2044-12"
        assert summary["periodic_payment"] == pytest.approx(4660.66, abs=0.01)

    def test_prepayment_shortens_term(self, canonical_request):
        request = replace(canonical_request, prepayment=Prepayment(frequency="monthly", amount=Decimal("2000")))
        result = compute_amortization(request)
        summary = build_summary(request, result, date(2025, 1, 1))

        assert summary["months_saved"] == 240 - len(result.schedule)
        assert summary["months_saved"] > 0
        assert summary["new_end_date"] < summary["original_end_date"]
        assert summary["total_prepaid"] > 0

    def test_moratorium_rows_not_counted_as_payments(self, canonical_request):
        request = replace(canonical_request, moratorium_months=12)
        summary = build_summary(request, compute_amortization(request), date(2025, 1, 1))
        assert summary["payments_made"] == 228
        assert summary["moratorium_applied"] is True
        assert summary["capitalized_interest"] > 0
