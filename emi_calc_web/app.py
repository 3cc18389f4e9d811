import csv
import io
import logging
import os
from datetime import date
from decimal import Decimal

from flask import Flask, Response, jsonify, request, url_for

from emi_calc.analysis import compare_loans, estimate_eligibility
from emi_calc.data_models import (
    MORATORIUM_CAPITALIZE_SIMPLE,
    PREPAY_CUSTOM,
    PREPAY_MONTHLY,
    CustomPrepayment,
    LoanRequest,
    Prepayment,
)
from emi_calc.engine import InvalidArgument, compute_amortization
from emi_calc.formatter import build_summary, schedule_records
from emi_calc.utils import current_month, parse_year_month, period_date

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["DEFAULT_CURRENCY"] = os.environ.get("EMI_CALC_DEFAULT_CURRENCY", "USD").upper()
app.config["PREVIEW_ROWS"] = int(os.environ.get("EMI_CALC_PREVIEW_ROWS", "120"))
app.config["LOG_LEVEL"] = os.environ.get("EMI_CALC_LOG_LEVEL", "INFO").upper()

CURRENCY_OPTIONS = {
    'USD': {'label': 'US dollar', 'symbol': '$'},
    'INR': {'label': 'Indian rupee', 'symbol': '₹'},
    'EUR': {'label': 'Euro', 'symbol': '€'},
    'GBP': {'label': 'British pound', 'symbol': '£'},
    'JPY': {'label': 'Japanese yen', 'symbol': '¥'},
    'CNY': {'label': 'Chinese yuan', 'symbol': '¥'},
    'CAD': {'label': 'Canadian dollar', 'symbol': 'CA$'},
    'AUD': {'label': 'Australian dollar', 'symbol': 'A$'},
    'AED': {'label': 'UAE dirham', 'symbol': 'AED'},
    'SGD': {'label': 'Singapore dollar', 'symbol': 'S$'},
}

REGION_TO_CURRENCY = {
    'US': 'USD', 'GB': 'GBP', 'IN': 'INR', 'EU': 'EUR', 'DE': 'EUR', 'JP': 'JPY',
    'CN': 'CNY', 'CA': 'CAD', 'AU': 'AUD', 'AE': 'AED', 'SG': 'SGD',
}

# Page defaults used when a share link leaves a field out
DEFAULT_AMOUNT = "500000"
DEFAULT_RATE = "9.5"
DEFAULT_TENURE = "20"

SHARE_PARAMS = ("amt", "rate", "ten", "tt", "sd", "mor", "mm", "pa", "pf", "curr")


def _coerce_decimal(value, default: str) -> Decimal:
    """Read a numeric form field; a missing field gets ``default``, garbage gets 0."""
    if value is None or str(value).strip() == "":
        return Decimal(default)
    try:
        number = Decimal(str(value).replace(",", "").strip())
    except ArithmeticError:
        logger.warning("Coercing malformed numeric field %r to 0", value)
        return Decimal("0")
    if not number.is_finite():
        logger.warning("Coercing non-finite numeric field %r to 0", value)
        return Decimal("0")
    return number


def _coerce_int(value, default: str) -> int:
    return int(_coerce_decimal(value, default).to_integral_value())


def _start_month(value) -> date:
    if not value:
        return current_month()
    try:
        return parse_year_month(str(value))
    except ValueError:
        logger.warning("Ignoring invalid start month %r", value)
        return current_month()


def _detect_currency(params) -> str:
    code = str(params.get("curr") or "").upper()
    if code in CURRENCY_OPTIONS:
        return code
    for language in request.accept_languages.values():
        region = language.replace("_", "-").split("-")[1:2]
        if region and region[0].upper() in REGION_TO_CURRENCY:
            return REGION_TO_CURRENCY[region[0].upper()]
    default = app.config["DEFAULT_CURRENCY"]
    return default if default in CURRENCY_OPTIONS else "USD"


def _custom_payments(items) -> tuple:
    payments = []
    for item in items or []:
        if not isinstance(item, dict):
            raise InvalidArgument(f"Custom prepayment must be an object; got {item!r}")
        payments.append(
            CustomPrepayment(
                period=_coerce_int(item.get("month"), "0"),
                amount=_coerce_decimal(item.get("amount"), "0"),
            )
        )
    return tuple(payments)


def _params_to_request(params) -> LoanRequest:
    tenure = _coerce_int(params.get("ten"), DEFAULT_TENURE)
    tenure_months = tenure if params.get("tt") == "mo" else tenure * 12
    frequency = str(params.get("pf") or PREPAY_MONTHLY).lower()
    prepayment = None
    if frequency == PREPAY_CUSTOM:
        prepayment = Prepayment(frequency=PREPAY_CUSTOM, custom_payments=_custom_payments(params.get("cp")))
    else:
        amount = _coerce_decimal(params.get("pa"), "0")
        if amount:
            prepayment = Prepayment(frequency=frequency, amount=amount)
    return LoanRequest(
        principal=_coerce_decimal(params.get("amt"), DEFAULT_AMOUNT),
        annual_rate_percent=_coerce_decimal(params.get("rate"), DEFAULT_RATE),
        tenure_months=tenure_months,
        moratorium_months=_coerce_int(params.get("mor"), "0"),
        moratorium_mode=str(params.get("mm") or MORATORIUM_CAPITALIZE_SIMPLE),
        prepayment=prepayment,
    )


def _share_url(params, currency: str) -> str:
    query = {key: params[key] for key in SHARE_PARAMS if params.get(key) not in (None, "")}
    query["curr"] = currency
    return url_for("emi", _external=True, **query)


def _schedule_for_view(records: list, summary: dict, show_full_schedule: bool) -> list:
    preview_rows = app.config["PREVIEW_ROWS"]
    if show_full_schedule or len(records) <= preview_rows:
        return records
    summary["truncated"] = len(records) - preview_rows
    return records[:preview_rows]


def _request_params() -> dict:
    if request.method == "POST":
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise InvalidArgument("Request body must be a JSON object")
        return body
    return request.args.to_dict()


@app.errorhandler(InvalidArgument)
def handle_invalid_argument(exc: InvalidArgument):
    logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.get("/health")
def health():
    return jsonify({"status": "ok"})


@app.route("/api/emi", methods=["GET", "POST"])
def emi():
    params = _request_params()
    loan = _params_to_request(params)
    result = compute_amortization(loan)
    start = _start_month(params.get("sd"))
    currency = _detect_currency(params)
    summary = build_summary(loan, result, start)
    records = schedule_records(result.schedule, start)
    show_full = str(params.get("full", "")) == "1"
    return jsonify(
        {
            "summary": summary,
            "schedule": _schedule_for_view(records, summary, show_full),
            "currency": {"code": currency, **CURRENCY_OPTIONS[currency]},
            "share_url": _share_url(params, currency),
        }
    )


@app.get("/api/emi/schedule.csv")
def emi_schedule_csv():
    params = request.args.to_dict()
    result = compute_amortization(_params_to_request(params))
    start = _start_month(params.get("sd"))
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Month", "Date", "Principal", "Interest", "Total Payment", "Balance"])
    for entry in result.schedule:
        writer.writerow(
            [
                entry.period,
                period_date(start, entry.period).strftime("%Y-%m"),
                f"{entry.principal_paid:.2f}",
                f"{entry.interest_paid:.2f}",
                f"{entry.total_payment:.2f}",
                f"{entry.balance:.2f}",
            ]
        )
    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=emi-schedule.csv"},
    )


def _offer_request(offer, default_rate: str) -> LoanRequest:
    offer = offer if isinstance(offer, dict) else {}
    return LoanRequest(
        principal=_coerce_decimal(offer.get("amount"), DEFAULT_AMOUNT),
        annual_rate_percent=_coerce_decimal(offer.get("rate"), default_rate),
        tenure_months=_coerce_int(offer.get("tenure"), DEFAULT_TENURE) * 12,
    )


def _offer_view(result) -> dict:
    return {
        "emi": float(result.periodic_payment),
        "total_interest": float(result.total_interest),
        "total_paid": float(result.total_paid),
    }


@app.post("/api/compare")
def compare():
    body = request.get_json(silent=True) or {}
    comparison = compare_loans(
        _offer_request(body.get("loan1"), "9.5"),
        _offer_request(body.get("loan2"), "8.5"),
    )
    return jsonify(
        {
            "loan1": _offer_view(comparison.first),
            "loan2": _offer_view(comparison.second),
            "interest_savings": float(comparison.interest_savings),
            "better": "loan1" if comparison.better == "first" else "loan2",
        }
    )


@app.get("/api/eligibility")
def eligibility():
    params = request.args
    result = estimate_eligibility(
        _coerce_decimal(params.get("income"), "50000"),
        _coerce_decimal(params.get("existing_emi"), "0"),
        _coerce_decimal(params.get("rate"), DEFAULT_RATE),
        _coerce_int(params.get("tenure"), DEFAULT_TENURE) * 12,
        _coerce_decimal(params.get("foir"), "50"),
    )
    return jsonify(
        {
            "disposable_income": float(result.disposable_income),
            "max_loan_amount": float(result.max_principal),
            "emi": float(result.periodic_payment),
        }
    )


if __name__ == "__main__":
    logging.basicConfig(level=app.config["LOG_LEVEL"])
    print("Starting EMI calculator API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
