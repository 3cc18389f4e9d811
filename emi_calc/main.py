"""Command-line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view summaries,
compare two loan offers or estimate how much they are eligible to borrow.
Schedules can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import shlex
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .analysis import compare_loans, estimate_eligibility, yearly_breakdown
from .data_models import (
    MORATORIUM_CAPITALIZE_SIMPLE,
    MORATORIUM_MODES,
    PREPAY_CUSTOM,
    PREPAY_MONTHLY,
    PREPAY_YEARLY,
    AmortizationResult,
    CustomPrepayment,
    LoanRequest,
    Prepayment,
)
from .engine import InvalidArgument, compute_amortization
from .formatter import (
    SCHEDULE_COLUMNS,
    build_summary,
    print_comparison,
    print_eligibility,
    print_schedule,
    print_summary,
    print_yearly,
    schedule_records,
)
from .utils import current_month, decimal_from_str, parse_year_month

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def tenure_in_months(tenure: int, unit: str) -> int:
    return tenure * 12 if unit == "years" else tenure


def parse_custom_prepayment_strings(values: Tuple[str, ...]) -> List[CustomPrepayment]:
    payments: List[CustomPrepayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(
                f"Custom prepayment must be in PERIOD:AMOUNT format; got {item}"
            )
        period_str, amt_str = parts
        try:
            period = int(period_str)
        except ValueError:
            raise click.BadParameter(f"Invalid prepayment period: {period_str}")
        if period < 1:
            raise click.BadParameter(f"Prepayment period must be 1 or later; got {period}")
        amount = decimal_from_str(str(parse_amount(amt_str)))
        payments.append(CustomPrepayment(period=period, amount=amount))
    return payments


def parse_start_date(start_date: Optional[str]) -> date:
    if not start_date:
        return current_month()
    try:
        return parse_year_month(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_request_from_options(
    principal: str,
    rate: float,
    tenure: int,
    tenure_unit: str = "months",
    moratorium: int = 0,
    moratorium_mode: str = MORATORIUM_CAPITALIZE_SIMPLE,
    prepayment: Optional[str] = None,
    prepayment_frequency: str = PREPAY_MONTHLY,
    custom_prepayment: Tuple[str, ...] = (),
) -> LoanRequest:
    principal_value = decimal_from_str(str(parse_amount(principal)))
    policy = None
    if custom_prepayment:
        if prepayment:
            raise click.BadParameter("Use either --prepayment or --custom-prepayment, not both")
        policy = Prepayment(
            frequency=PREPAY_CUSTOM,
            custom_payments=tuple(parse_custom_prepayment_strings(custom_prepayment)),
        )
    elif prepayment:
        if prepayment_frequency not in (PREPAY_MONTHLY, PREPAY_YEARLY):
            raise click.BadParameter("Prepayment frequency must be 'monthly' or 'yearly'")
        policy = Prepayment(
            frequency=prepayment_frequency,
            amount=decimal_from_str(str(parse_amount(prepayment))),
        )
    return LoanRequest(
        principal=principal_value,
        annual_rate_percent=decimal_from_str(str(rate)),
        tenure_months=tenure_in_months(tenure, tenure_unit),
        moratorium_months=moratorium,
        moratorium_mode=moratorium_mode,
        prepayment=policy,
    )


def run_engine(request: LoanRequest) -> AmortizationResult:
    logger.debug("Computing schedule for %s", request)
    try:
        return compute_amortization(request)
    except InvalidArgument as exc:
        raise click.ClickException(str(exc))


def export_to_json(path: Path, schedule: List[Dict[str, Any]], summary: Dict[str, Any]) -> None:
    """Export schedule records and summary to a JSON file."""
    data = {"summary": summary, "schedule": schedule}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[Dict[str, Any]]) -> None:
    """Export schedule records to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SCHEDULE_COLUMNS)
        writer.writeheader()
        writer.writerows(schedule)


def loan_options(func):
    """Attach the loan parameter options shared by ``schedule`` and ``summary``."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 500000 or 500k"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--tenure", "-t", "tenure", required=True, type=int, help="Loan tenure"),
        click.option(
            "--tenure-unit",
            type=click.Choice(["months", "years"]),
            default="months",
            show_default=True,
            help="Unit of --tenure",
        ),
        click.option("--start-date", "-s", "start_date", help="First payment month (YYYY-MM); defaults to this month"),
        click.option("--moratorium", type=int, default=0, show_default=True, help="Months before repayment starts"),
        click.option(
            "--moratorium-mode",
            type=click.Choice(list(MORATORIUM_MODES)),
            default=MORATORIUM_CAPITALIZE_SIMPLE,
            show_default=True,
            help="How interest accrued during the moratorium is handled",
        ),
        click.option("--prepayment", help="Extra amount paid on top of every EMI (or yearly)"),
        click.option(
            "--prepayment-frequency",
            type=click.Choice([PREPAY_MONTHLY, PREPAY_YEARLY]),
            default=PREPAY_MONTHLY,
            show_default=True,
        ),
        click.option(
            "--custom-prepayment",
            multiple=True,
            help="One-off prepayment in PERIOD:AMOUNT format, e.g. 12:50000",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """An EMI calculator with moratorium and prepayment support."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
@click.option("--yearly", is_flag=True, help="Show calendar-year totals instead of monthly rows")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    tenure: int,
    tenure_unit: str,
    start_date: Optional[str],
    moratorium: int,
    moratorium_mode: str,
    prepayment: Optional[str],
    prepayment_frequency: str,
    custom_prepayment: Tuple[str, ...],
    yearly: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    start = parse_start_date(start_date)
    request = build_request_from_options(
        principal,
        rate,
        tenure,
        tenure_unit,
        moratorium,
        moratorium_mode,
        prepayment,
        prepayment_frequency,
        custom_prepayment,
    )
    result = run_engine(request)
    summary_data = build_summary(request, result, start)
    if output:
        path = Path(output)
        records = schedule_records(result.schedule, start)
        if path.suffix.lower() == ".json":
            export_to_json(path, records, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, records)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(summary_data)
    if yearly:
        print_yearly(yearly_breakdown(result.schedule, start))
        return
    # Limit schedule length printed to avoid flooding the terminal
    if len(result.schedule) > MAX_PRINTED_ROWS:
        click.echo(
            f"Schedule has {len(result.schedule)} rows; showing first {MAX_PRINTED_ROWS} rows."
        )
        print_schedule(result.schedule[:MAX_PRINTED_ROWS], start)
    else:
        print_schedule(result.schedule, start)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: float,
    tenure: int,
    tenure_unit: str,
    start_date: Optional[str],
    moratorium: int,
    moratorium_mode: str,
    prepayment: Optional[str],
    prepayment_frequency: str,
    custom_prepayment: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    start = parse_start_date(start_date)
    request = build_request_from_options(
        principal,
        rate,
        tenure,
        tenure_unit,
        moratorium,
        moratorium_mode,
        prepayment,
        prepayment_frequency,
        custom_prepayment,
    )
    summary_data = build_summary(request, run_engine(request), start)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


def parse_scenario_opts(opts: str) -> Dict[str, Any]:
    """Convert a quoted scenario option string into request parameters."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "principal": None,
        "rate": None,
        "tenure": None,
        "tenure_unit": "months",
    }
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if i + 1 >= len(tokens):
            raise click.BadParameter(f"Option {token} in scenario needs a value")
        value = tokens[i + 1]
        try:
            if token in ("-p", "--principal"):
                params["principal"] = value
            elif token in ("-r", "--rate"):
                params["rate"] = float(value)
            elif token in ("-t", "--tenure"):
                params["tenure"] = int(value)
            elif token == "--tenure-unit":
                if value not in ("months", "years"):
                    raise click.BadParameter(f"Invalid tenure unit in scenario: {value}")
                params["tenure_unit"] = value
            else:
                raise click.BadParameter(f"Unknown option in scenario: {token}")
        except ValueError:
            raise click.BadParameter(f"Invalid value for {token} in scenario: {value}")
        i += 2
    for r in ("principal", "rate", "tenure"):
        if params[r] is None:
            raise click.BadParameter(f"Scenario missing required option {r}")
    return params


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First offer options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second offer options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loan offers.

    Offers are provided as quoted option strings, for example:

        emi-calc compare --scenario1 "-p 500k -r 9.5 -t 240" --scenario2 "-p 500k -r 8.5 -t 240"
    """
    request1 = build_request_from_options(**parse_scenario_opts(scenario1))
    request2 = build_request_from_options(**parse_scenario_opts(scenario2))
    try:
        comparison = compare_loans(request1, request2)
    except InvalidArgument as exc:
        raise click.ClickException(str(exc))
    print_comparison(comparison)


@cli.command()
@click.option("--income", required=True, help="Net monthly income")
@click.option("--existing-emi", default="0", show_default=True, help="EMIs already being paid each month")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--tenure", "-t", "tenure", required=True, type=int, help="Loan tenure")
@click.option("--tenure-unit", type=click.Choice(["months", "years"]), default="years", show_default=True)
@click.option("--foir", type=float, default=50.0, show_default=True, help="Fixed obligation to income ratio (percent)")
def eligibility(income: str, existing_emi: str, rate: float, tenure: int, tenure_unit: str, foir: float) -> None:
    """Estimate the maximum loan amount for a monthly income."""
    try:
        result = estimate_eligibility(
            decimal_from_str(str(parse_amount(income))),
            decimal_from_str(str(parse_amount(existing_emi))),
            decimal_from_str(str(rate)),
            tenure_in_months(tenure, tenure_unit),
            decimal_from_str(str(foir)),
        )
    except InvalidArgument as exc:
        raise click.ClickException(str(exc))
    print_eligibility(result)


if __name__ == "__main__":
    cli()
