"""
Command-Line Interface for CanFin.

Purpose
-------
Runs the calculators from a shell without writing Python code: each
command builds the calculator's input model from options (or a JSON
inputs file), prints a summary table and optionally writes the full
schedule as JSON.

Commands
--------
- rrif: RRIF drawdown with minimum withdrawals, tax and OAS recovery
- retirement: Household retirement income with pension splitting
- resp: RESP growth with CESG / A-CESG / CLB / QESI
- tfsa-vs-rrsp: After-tax comparison of TFSA and RRSP savings
- oas-gis: OAS, GIS and Allowance estimate with deferral scenarios
- tax: Income tax for one income
- data: Show or validate tax-year reference data

Rates are entered as percentages (``--return 5`` means 5%).

Example Usage
-------------
    # RRIF at 71 with $500k, schedule saved to JSON
    $ canfin rrif --age 71 --balance 500000 --output rrif.json

    # RESP for a newborn, $2,500/yr, Quebec
    $ canfin resp --child-age 0 --annual 2500 --province QC

    # Inputs from a file, options override file values
    $ canfin retirement --inputs household.json --retire-at 63

    # Ontario brackets for 2025
    $ canfin data show --province ON
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Type

import click
from pydantic import BaseModel, ValidationError as PydanticValidationError

from . import __version__
from .config import (
    AppSettings,
    OASGISInputs,
    RESPInputs,
    RetirementIncomeInputs,
    RRIFInputs,
    SpouseInputs,
    TFSAvsRRSPInputs,
)
from .constants import RRIF_PROJECTION_END_AGES
from .exceptions import CanFinError
from .utils import format_currency, format_percent, pct_to_fraction


def _get_console():
    """Lazy import Rich for better startup time."""
    from rich.console import Console
    return Console()


def _pct(value: Optional[float]) -> Optional[float]:
    return None if value is None else pct_to_fraction(value)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _build_inputs(
    ctx: click.Context,
    model_cls: Type[BaseModel],
    inputs_file: Optional[Path],
    **options: Any,
) -> BaseModel:
    """Merge an optional inputs file with the options given on the command line."""
    settings: AppSettings = ctx.obj["settings"]
    values: Dict[str, Any] = {}
    if inputs_file is not None:
        with open(inputs_file, "r") as f:
            values.update(json.load(f))
    values.update({k: v for k, v in options.items() if v is not None})
    values.setdefault("tax_year", settings.tax_year)
    if "province" in model_cls.model_fields:
        values.setdefault("province", settings.province)
    return model_cls.model_validate(values)


def _load_data(ctx: click.Context, year: int):
    from .reference import load_tax_year
    settings: AppSettings = ctx.obj["settings"]
    return load_tax_year(year, data_dir=settings.data_dir)


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


def _print_summary(ctx: click.Context, title: str, lines: Sequence[Tuple[str, str]]) -> None:
    """Two-column metric table, or plain ``label: value`` lines with --quiet."""
    if ctx.obj["quiet"]:
        for label, value in lines:
            if label:
                click.echo(f"{label}: {value}")
        return

    from rich.table import Table

    table = Table(title=title, show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for label, value in lines:
        table.add_row(label, value)
    ctx.obj["console"].print(table)


def _print_schedule(ctx: click.Context, title: str, header: Sequence[str],
                    rows: Iterable[Sequence[str]]) -> None:
    if ctx.obj["quiet"]:
        return

    from rich.table import Table

    table = Table(title=title, show_header=True)
    for i, name in enumerate(header):
        table.add_column(name, style="cyan" if i == 0 else None, justify="left" if i == 0 else "right")
    for row in rows:
        table.add_row(*row)
    ctx.obj["console"].print(table)


def _save(ctx: click.Context, output: Optional[Path], rows, summary, calculator: str,
          inputs: BaseModel) -> None:
    if output is None:
        return
    from .serialization import save_projection
    save_projection(output, rows, summary, calculator, inputs=inputs)
    if not ctx.obj["quiet"]:
        click.echo(f"Schedule saved to {output}")


_INPUTS_OPTION = click.option(
    "--inputs", "inputs_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with calculator inputs (options override it)"
)
_OUTPUT_OPTION = click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the full schedule to this JSON file"
)
_PROVINCE_OPTION = click.option(
    "--province", "-p",
    type=str,
    default=None,
    help="Province/territory code (default: CANFIN_PROVINCE or ON)"
)


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="canfin")
@click.option("--quiet", "-q", is_flag=True, help="Plain output, no tables")
@click.pass_context
def main(ctx: click.Context, quiet: bool) -> None:
    """
    CanFin - Canadian personal finance projections.

    Year-by-year projections of RRIF, TFSA, RRSP and RESP balances with
    federal and provincial income tax, OAS recovery and government grants.

    Use 'canfin COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = _get_console()


# ---------------------------------------------------------------------------
# rrif
# ---------------------------------------------------------------------------

@main.command()
@click.option("--age", type=int, default=None, help="Current age (55+)")
@click.option("--balance", type=float, default=None, help="RRIF balance")
@_PROVINCE_OPTION
@click.option("--return", "return_pct", type=float, default=None, help="Annual return in percent (default: 5)")
@click.option("--extra", type=float, default=None, help="Extra annual withdrawal above the minimum")
@click.option("--other-income", type=float, default=None, help="Other annual taxable income")
@click.option("--cpp", type=float, default=None, help="CPP per month")
@click.option("--oas", type=float, default=None, help="OAS per month")
@click.option("--spouse-age", type=int, default=None, help="Use a younger spouse's age for the minimum")
@click.option("--end-age", type=click.Choice([str(a) for a in RRIF_PROJECTION_END_AGES]), default=None, help="Projection horizon (default: 90)")
@click.option("--schedule/--no-schedule", default=True, help="Print the year-by-year table")
@_INPUTS_OPTION
@_OUTPUT_OPTION
@click.pass_context
def rrif(ctx: click.Context, age, balance, province, return_pct, extra, other_income, cpp, oas,
         spouse_age, end_age, schedule, inputs_file, output) -> None:
    """
    Project a RRIF drawdown.

    Example:
        canfin rrif --age 71 --balance 500000 --cpp 900 --oas 727.67
    """
    from .rrif import calculate_rrif

    try:
        inputs = _build_inputs(
            ctx, RRIFInputs, inputs_file,
            current_age=age,
            rrif_balance=balance,
            province=province,
            return_rate=_pct(return_pct),
            extra_withdrawal=extra,
            other_income=other_income,
            cpp_monthly=cpp,
            oas_monthly=oas,
            spouse_age=spouse_age,
            use_spouse_age=True if spouse_age is not None else None,
            projection_end_age=int(end_age) if end_age else None,
        )
        result = calculate_rrif(inputs, data=_load_data(ctx, inputs.tax_year))
    except (CanFinError, PydanticValidationError) as e:
        _fail(f"Error: {e}")
        return
    if result is None:
        _fail("Not enough information: RRIF needs --age (55+) and a positive --balance.")
        return

    first = result.first_year
    lines = [
        ("Minimum factor", f"{first.factor:.4f} (age {first.factor_age})"),
        ("Minimum withdrawal", format_currency(first.minimum_withdrawal)),
        ("Minimum per month", format_currency(first.minimum_monthly)),
        ("Total taxable income", format_currency(first.total_income)),
        ("Income tax", format_currency(first.tax)),
        ("OAS recovery tax", format_currency(first.oas_recovery)),
        ("After-tax income", format_currency(first.after_tax_income)),
        ("Effective rate", format_percent(first.effective_rate)),
        ("Marginal rate", format_percent(first.marginal_rate)),
        ("", ""),
    ]
    lines += [(f"Balance at {a}", format_currency(b)) for a, b in result.milestone_balances.items()]
    lines.append(("Depleted at", str(result.depletion_age) if result.depletion_age else "never"))
    _print_summary(ctx, "RRIF - first year", lines)

    if schedule:
        _print_schedule(
            ctx, "RRIF schedule",
            ["Age", "Opening", "Withdrawal", "After tax", "Growth", "Closing"],
            (
                [str(r.age), format_currency(r.opening_balance), format_currency(r.withdrawal),
                 format_currency(net), format_currency(r.gross_growth), format_currency(r.closing_balance)]
                for r, net in zip(result.rows, result.after_tax_withdrawals)
            ),
        )
    _save(ctx, output, result.rows, result.summary, "rrif", inputs)


# ---------------------------------------------------------------------------
# retirement
# ---------------------------------------------------------------------------

@main.command()
@click.option("--age", type=int, default=None, help="Current age")
@click.option("--retire-at", type=int, default=None, help="Retirement age")
@_PROVINCE_OPTION
@click.option("--rrif", "rrif_balance", type=float, default=None, help="RRSP/RRIF balance today")
@click.option("--rrif-return", type=float, default=None, help="RRIF return in percent (default: 5)")
@click.option("--tfsa", "tfsa_balance", type=float, default=None, help="TFSA balance today")
@click.option("--tfsa-return", type=float, default=None, help="TFSA return in percent (default: 5)")
@click.option("--tfsa-monthly", type=float, default=None, help="Tax-free TFSA withdrawal per month")
@click.option("--cpp", type=float, default=None, help="CPP per month")
@click.option("--cpp-start", type=int, default=None, help="CPP start age (default: 65)")
@click.option("--oas", type=float, default=None, help="OAS per month")
@click.option("--oas-start", type=int, default=None, help="OAS start age (default: 65)")
@click.option("--pension", type=float, default=None, help="Workplace pension per month")
@click.option("--other", type=float, default=None, help="Other taxable income per month")
@click.option("--inflation", type=float, default=None, help="Inflation in percent (default: 2.5)")
@click.option("--end-age", type=int, default=None, help="Last projected age (default: 95)")
@click.option("--spouse-age", type=int, default=None, help="Spouse's age today")
@click.option("--spouse-cpp", type=float, default=None, help="Spouse CPP per month")
@click.option("--spouse-oas", type=float, default=None, help="Spouse OAS per month")
@click.option("--spouse-rrif", type=float, default=None, help="Spouse RRSP/RRIF balance today")
@click.option("--spouse-pension", type=float, default=None, help="Spouse workplace pension per month")
@click.option("--schedule/--no-schedule", default=True, help="Print the year-by-year table")
@_INPUTS_OPTION
@_OUTPUT_OPTION
@click.pass_context
def retirement(ctx: click.Context, age, retire_at, province, rrif_balance, rrif_return, tfsa_balance,
               tfsa_return, tfsa_monthly, cpp, cpp_start, oas, oas_start, pension, other, inflation,
               end_age, spouse_age, spouse_cpp, spouse_oas, spouse_rrif, spouse_pension, schedule,
               inputs_file, output) -> None:
    """
    Project household retirement income.

    Example:
        canfin retirement --age 60 --retire-at 65 --rrif 400000 --cpp 900 --oas 727.67
    """
    from .retirement import calculate_retirement_income

    spouse = None
    if spouse_age is not None:
        spouse = SpouseInputs(
            age=spouse_age,
            cpp_monthly=spouse_cpp,
            oas_monthly=spouse_oas,
            rrif_balance=spouse_rrif,
            pension_monthly=spouse_pension,
        )
    try:
        inputs = _build_inputs(
            ctx, RetirementIncomeInputs, inputs_file,
            current_age=age,
            retirement_age=retire_at,
            province=province,
            rrif_balance=rrif_balance,
            rrif_return=_pct(rrif_return),
            tfsa_balance=tfsa_balance,
            tfsa_return=_pct(tfsa_return),
            tfsa_monthly_withdrawal=tfsa_monthly,
            cpp_monthly=cpp,
            cpp_start_age=cpp_start,
            oas_monthly=oas,
            oas_start_age=oas_start,
            pension_monthly=pension,
            other_monthly=other,
            inflation_rate=_pct(inflation),
            end_age=end_age,
            spouse=spouse,
        )
        result = calculate_retirement_income(inputs, data=_load_data(ctx, inputs.tax_year))
    except (CanFinError, PydanticValidationError) as e:
        _fail(f"Error: {e}")
        return
    if result is None:
        _fail("Not enough information: retirement needs --age and --retire-at (before --end-age).")
        return

    first = result.first_year
    lines = [
        ("RRIF at retirement", format_currency(result.rrif_at_retirement)),
        ("TFSA at retirement", format_currency(result.tfsa_at_retirement)),
    ]
    if result.spouse_rrif_at_retirement > 0:
        lines.append(("Spouse RRIF at retirement", format_currency(result.spouse_rrif_at_retirement)))
    lines += [
        ("", ""),
        (f"Gross income at {first.age}", format_currency(first.withdrawal + first.other_income)),
        ("Tax", format_currency(first.tax_owed)),
        ("OAS recovery", format_currency(first.clawback)),
        ("Net income per month", format_currency(result.first_year_monthly_net)),
        ("Pension split", format_currency(first.split_amount)),
    ]
    for milestone_age, row in result.milestones.items():
        if row is not None:
            lines.append((f"Net income at {milestone_age}", format_currency(row.net_income)))
    clawback_age = result.first_clawback_age
    lines.append(("First OAS clawback", str(clawback_age) if clawback_age else "none"))
    _print_summary(ctx, "Retirement income", lines)

    if schedule:
        _print_schedule(
            ctx, "Retirement schedule",
            ["Age", "Withdrawals", "Other income", "Tax", "Net", "Net (today $)", "Balance"],
            (
                [str(r.age), format_currency(r.withdrawal), format_currency(r.other_income),
                 format_currency(r.tax_owed + r.clawback), format_currency(r.net_income),
                 format_currency(r.real_net_income), format_currency(r.closing_balance)]
                for r in result.rows
            ),
        )
    _save(ctx, output, result.rows, result.summary, "retirement", inputs)


# ---------------------------------------------------------------------------
# resp
# ---------------------------------------------------------------------------

@main.command()
@click.option("--child-age", type=int, default=None, help="Beneficiary age (0-17)")
@click.option("--balance", type=float, default=None, help="Current RESP balance")
@click.option("--annual", type=float, default=None, help="Annual contribution")
@click.option("--monthly", type=float, default=None, help="Monthly contribution (used instead of --annual)")
@click.option("--return", "return_pct", type=float, default=None, help="Annual return in percent (default: 6)")
@click.option("--family-income", type=float, default=None, help="Adjusted family net income")
@_PROVINCE_OPTION
@click.option("--schedule/--no-schedule", default=True, help="Print the year-by-year table")
@_INPUTS_OPTION
@_OUTPUT_OPTION
@click.pass_context
def resp(ctx: click.Context, child_age, balance, annual, monthly, return_pct, family_income,
         province, schedule, inputs_file, output) -> None:
    """
    Project RESP growth with government grants.

    Example:
        canfin resp --child-age 0 --annual 2500 --family-income 45000
    """
    from .resp import calculate_resp

    try:
        inputs = _build_inputs(
            ctx, RESPInputs, inputs_file,
            child_age=child_age,
            current_balance=balance,
            annual_contribution=annual,
            monthly_contribution=monthly,
            use_monthly=True if monthly is not None else None,
            return_rate=_pct(return_pct),
            family_income=family_income,
            province=province,
        )
        result = calculate_resp(inputs, data=_load_data(ctx, inputs.tax_year))
    except (CanFinError, PydanticValidationError) as e:
        _fail(f"Error: {e}")
        return
    if result is None:
        _fail("Not enough information: RESP needs --child-age (0-17) and a contribution or balance.")
        return

    lines = [
        ("Years of contributions", str(result.years_left)),
        ("Annual contribution", format_currency(result.annual_contribution)),
        ("Total invested", format_currency(result.total_invested)),
    ]
    lines += [(f"  {name}", format_currency(amount)) for name, amount in result.grant_totals.items()]
    lines += [
        ("Total grants", format_currency(result.total_grants)),
        ("Investment growth", format_currency(result.total_growth)),
        ("Balance at 18", format_currency(result.final_balance)),
        ("Grant boost", format_percent(result.grant_boost)),
        ("Years of school funded", f"{result.years_funded:.1f} of {result.education_years}"),
        ("Contribution room left", format_currency(result.remaining_contribution_room)),
        ("With $2,500/yr (full CESG)", format_currency(result.max_cesg.final_balance)),
    ]
    _print_summary(ctx, "RESP projection", lines)

    if schedule:
        _print_schedule(
            ctx, "RESP schedule",
            ["Child age", "Contribution", "Grants", "Growth", "Balance"],
            (
                [str(r.age), format_currency(r.contribution), format_currency(r.grant),
                 format_currency(r.gross_growth), format_currency(r.closing_balance)]
                for r in result.rows
            ),
        )
    _save(ctx, output, result.rows, result.summary, "resp", inputs)


# ---------------------------------------------------------------------------
# tfsa-vs-rrsp
# ---------------------------------------------------------------------------

@main.command("tfsa-vs-rrsp")
@click.option("--income", type=float, default=None, help="Annual employment income")
@click.option("--contribution", type=float, default=None, help="Pre-tax dollars saved per year")
@click.option("--return", "return_pct", type=float, default=None, help="Annual return in percent (default: 7)")
@click.option("--years", type=int, default=None, help="Years of saving (default: 25)")
@click.option("--retirement-rate", type=float, default=None,
              help="Marginal rate in retirement, percent (default: estimated)")
@_PROVINCE_OPTION
@_INPUTS_OPTION
@click.pass_context
def tfsa_vs_rrsp(ctx: click.Context, income, contribution, return_pct, years, retirement_rate,
                 province, inputs_file) -> None:
    """
    Compare saving in a TFSA or an RRSP.

    Example:
        canfin tfsa-vs-rrsp --income 80000 --contribution 5000 --years 25
    """
    from .tfsa_rrsp import compare_tfsa_rrsp

    try:
        inputs = _build_inputs(
            ctx, TFSAvsRRSPInputs, inputs_file,
            annual_income=income,
            contribution=contribution,
            return_rate=_pct(return_pct),
            years=years,
            retirement_rate=_pct(retirement_rate),
            province=province,
        )
        result = compare_tfsa_rrsp(inputs, data=_load_data(ctx, inputs.tax_year))
    except (CanFinError, PydanticValidationError) as e:
        _fail(f"Error: {e}")
        return
    if result is None:
        _fail("Not enough information: needs a positive --income, --contribution, --return and --years.")
        return

    overtakes = result.rrsp_overtakes_year
    lines = [
        ("Current marginal rate", format_percent(result.current_rate)),
        ("Retirement rate", format_percent(result.retirement_rate)),
        ("", ""),
        ("TFSA after tax", format_currency(result.tfsa_after_tax)),
        ("RRSP balance", format_currency(result.rrsp_balance)),
        ("RRSP after tax", format_currency(result.rrsp_after_tax)),
        ("RRSP + reinvested refund", format_currency(result.rrsp_plus_refund)),
        ("", ""),
        ("Winner", f"{result.winner} by {format_currency(result.difference)}"),
        ("Winner with refund", f"{result.refund_winner} by {format_currency(result.difference_with_refund)}"),
        ("Break-even retirement rate", format_percent(result.break_even_rate)),
        ("RRSP ahead from year", str(overtakes) if overtakes else "never"),
    ]
    _print_summary(ctx, "TFSA vs RRSP", lines)
    _print_schedule(
        ctx, "Milestones",
        ["Year", "TFSA", "RRSP", "RRSP after tax", "RRSP + refund"],
        (
            [str(y.year), format_currency(y.tfsa_balance), format_currency(y.rrsp_balance),
             format_currency(y.rrsp_after_tax), format_currency(y.rrsp_plus_refund)]
            for y in result.milestones.values()
        ),
    )


# ---------------------------------------------------------------------------
# oas-gis
# ---------------------------------------------------------------------------

@main.command("oas-gis")
@click.option("--age", type=int, default=None, help="Current age (55-85)")
@click.option("--start-age", type=int, default=None, help="OAS start age, 65-70 (default: 65)")
@click.option("--years-in-canada", type=int, default=None, help="Years lived in Canada after 18")
@click.option("--income", type=float, default=None, help="Net income excluding OAS")
@click.option("--status", type=click.Choice(["single", "couple_both_oas", "couple_one_oas", "widowed"]),
              default=None, help="Marital status (default: single)")
@click.option("--partner-income", type=float, default=None, help="Partner's net income")
@click.option("--partner-age", type=int, default=None, help="Partner's age")
@click.option("--cpp", type=float, default=None, help="CPP per month")
@_INPUTS_OPTION
@click.pass_context
def oas_gis(ctx: click.Context, age, start_age, years_in_canada, income, status, partner_income,
            partner_age, cpp, inputs_file) -> None:
    """
    Estimate OAS, GIS and Allowance.

    Example:
        canfin oas-gis --age 65 --income 18000 --years-in-canada 40
    """
    from .benefits import estimate_oas_gis

    try:
        inputs = _build_inputs(
            ctx, OASGISInputs, inputs_file,
            current_age=age,
            start_age=start_age,
            years_in_canada=years_in_canada,
            net_income=income,
            marital_status=status,
            partner_income=partner_income,
            partner_age=partner_age,
            cpp_monthly=cpp,
        )
        result = estimate_oas_gis(inputs, data=_load_data(ctx, inputs.tax_year))
    except (CanFinError, PydanticValidationError) as e:
        _fail(f"Error: {e}")
        return
    if result is None:
        _fail("Not enough information: needs --age (55-85) and --income.")
        return

    lines = [
        ("Residency", f"{format_percent(result.proration, 0)}{' (full)' if result.is_full_oas else ''}"),
        ("Deferral boost", format_percent(result.deferral_boost)),
        ("OAS before recovery", format_currency(result.gross_oas_monthly)),
        ("Recovery tax per month", format_currency(result.clawback_monthly)),
        ("OAS per month", format_currency(result.net_oas_monthly)),
        ("GIS per month", format_currency(result.gis_monthly)),
        ("Allowance per month", format_currency(result.allowance_monthly)),
        ("CPP per month", format_currency(result.cpp_monthly)),
        ("Total per month", format_currency(result.total_monthly)),
        ("Total per year", format_currency(result.total_annual)),
    ]
    _print_summary(ctx, "OAS / GIS estimate", lines)
    _print_schedule(
        ctx, "OAS deferral",
        ["Start age", "Boost", "Per month", "Break-even age", "Lifetime to 90"],
        (
            [str(s.start_age), format_percent(s.boost), format_currency(s.monthly),
             f"{s.break_even_age:.1f}" if s.break_even_age is not None else "-",
             format_currency(s.lifetime_to_90)]
            for s in result.deferral_scenarios
        ),
    )


# ---------------------------------------------------------------------------
# tax
# ---------------------------------------------------------------------------

@main.command()
@click.argument("income", type=float)
@_PROVINCE_OPTION
@click.option("--age", type=int, default=None, help="Age (65+ adds the age amount)")
@click.option("--pension-income", type=float, default=0.0, help="Eligible pension income")
@click.option("--year", type=int, default=None, help="Tax year (default: CANFIN_TAX_YEAR or 2025)")
@click.pass_context
def tax(ctx: click.Context, income: float, province: Optional[str], age: Optional[int],
        pension_income: float, year: Optional[int]) -> None:
    """
    Income tax for one taxable income.

    Example:
        canfin tax 80000 --province ON
    """
    from .tax import IncomeTaxCalculator

    settings: AppSettings = ctx.obj["settings"]
    try:
        data = _load_data(ctx, year or settings.tax_year)
        calc = IncomeTaxCalculator.for_province(province or settings.province, data=data)
    except CanFinError as e:
        _fail(f"Error: {e}")
        return

    breakdown = calc.income_tax(income, age=age, pension_income=pension_income)
    _print_summary(ctx, f"{data.tax_year} income tax ({calc.province})", [
        ("Taxable income", format_currency(breakdown.income)),
        ("Federal tax", format_currency(breakdown.federal)),
        ("Provincial tax", format_currency(breakdown.provincial)),
        ("Total tax", format_currency(breakdown.total)),
        ("Average rate", format_percent(breakdown.average_rate, 2)),
        ("Marginal rate", format_percent(calc.marginal_rate(income), 2)),
    ])


# ---------------------------------------------------------------------------
# data
# ---------------------------------------------------------------------------

@main.group()
def data() -> None:
    """
    Reference data commands.

    Display and validate tax-year reference data files.
    """
    pass


@data.command("show")
@_PROVINCE_OPTION
@click.option("--year", type=int, default=None, help="Tax year (default: CANFIN_TAX_YEAR or 2025)")
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "table"]), default="table")
@click.pass_context
def data_show(ctx: click.Context, province: Optional[str], year: Optional[int], fmt: str) -> None:
    """
    Display federal and provincial brackets for a tax year.

    Example:
        canfin data show --province BC --format json
    """
    from .serialization import brackets_to_dict

    settings: AppSettings = ctx.obj["settings"]
    try:
        ref = _load_data(ctx, year or settings.tax_year)
        jurisdiction = ref.province(province or settings.province)
    except CanFinError as e:
        _fail(f"Error: {e}")
        return

    if fmt == "json":
        click.echo(json.dumps({
            "tax_year": ref.tax_year,
            "federal": brackets_to_dict(ref.federal.brackets),
            jurisdiction.code: brackets_to_dict(jurisdiction.brackets),
        }, indent=2))
        return

    for j in (ref.federal, jurisdiction):
        _print_schedule(
            ctx, f"{ref.tax_year} {j.name} (basic personal amount {format_currency(j.basic_personal_amount)})",
            ["From", "To", "Rate"],
            (
                [format_currency(b.lower), "-" if b.is_unbounded else format_currency(b.upper),
                 format_percent(b.rate, 2)]
                for b in j.brackets
            ),
        )
    if ctx.obj["quiet"]:
        click.echo(f"{ref.tax_year} {jurisdiction.code}: {len(ref.federal.brackets)} federal, "
                   f"{len(jurisdiction.brackets)} provincial brackets")


@data.command("validate")
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def data_validate(ctx: click.Context, data_file: Path) -> None:
    """
    Validate a reference data file.

    Checks that the file is valid JSON and conforms to the tax-year schema
    (contiguous brackets, rates in range, known grants).

    Example:
        canfin data validate tax_2026.json
    """
    from .reference import load_tax_year

    try:
        ref = load_tax_year(path=data_file)
    except CanFinError as e:
        _fail(f"Reference data validation failed: {e}")
        return

    click.echo(f"Reference data is valid: {ref.tax_year}, "
               f"{len(ref.province_codes)} provinces/territories")


if __name__ == "__main__":
    main()
