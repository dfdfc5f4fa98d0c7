"""
Step-by-step explanations of the tax and cash-flow arithmetic.

An explanation has two parts:

1. Annual tax increase: the liability for a year with the exemption next to a
   year without it, every intermediate figure shown as a formula.
2. Shock year (only when a start year is known): the cash burden for the
   shock year and the year before, and the two shock measures.

The builder produces structured sections so the API can return them as JSON;
``render_text`` lays them out for terminals and logs.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .cash_flow import CashFlow
from .formatting import CurrencyFormatter
from .liability import TaxLiability, compute_liability
from .policy import DEFAULT_POLICY, PolicySchedule
from .scenario import ShockSummary, compute_scenario


class ExplanationStep(BaseModel):
    """One line of arithmetic: what is computed, how, and the result."""

    label: str
    formula: str
    value: float
    is_result: bool = Field(default=False, description="Final figure of its section")
    selected: bool = Field(default=False, description="Chosen shock measure")


class ExplanationSection(BaseModel):
    title: str
    steps: List[ExplanationStep] = Field(default_factory=list)
    note: Optional[str] = None


class Explanation(BaseModel):
    """Complete walk-through for one income profile."""

    net_income: float
    gross_receipts: float
    year_with: int
    year_without: int
    start_year: Optional[int] = None
    annual_tax_increase: float
    shock: Optional[ShockSummary] = None
    sections: List[ExplanationSection] = Field(default_factory=list)


def _liability_section(
    title: str, liability: TaxLiability, policy: PolicySchedule, fmt: CurrencyFormatter
) -> ExplanationSection:
    money = fmt.format_currency
    short = fmt.format_thousands
    ni = liability.net_income
    gr = liability.gross_receipts
    exemption = liability.exemption
    rates = liability.rates

    steps = [
        ExplanationStep(
            label="Taxable gross receipts",
            formula=f"max(0, {short(gr)} - {short(exemption)})",
            value=liability.taxable_gross_receipts,
        )
    ]

    if exemption <= 0:
        deduction_formula = "No exemption"
    elif gr < exemption:
        deduction_formula = f"({short(ni)}/{short(gr)}) × {short(gr)}"
    else:
        deduction_formula = f"({short(ni)}/{short(gr)}) × {short(exemption)}"
    steps.append(
        ExplanationStep(
            label="Statutory deduction",
            formula=deduction_formula,
            value=liability.statutory_deduction,
        )
    )

    steps += [
        ExplanationStep(
            label="Taxable net income (first tax)",
            formula=f"max(0, {short(ni)} - {money(liability.statutory_deduction)})",
            value=liability.taxable_net_income_first,
        ),
        ExplanationStep(
            label="Taxable net income (profits tax)",
            formula=f"{short(ni)} (full)",
            value=liability.taxable_net_income_profits,
        ),
        ExplanationStep(
            label="First tax (gross receipts)",
            formula=f"{money(liability.taxable_gross_receipts)} × {fmt.format_rate(rates.gross_receipts_rate)}",
            value=liability.gross_receipts_tax,
        ),
        ExplanationStep(
            label="First tax (net income)",
            formula=f"{money(liability.taxable_net_income_first)} × {fmt.format_rate(rates.net_income_rate)}",
            value=liability.net_income_tax,
        ),
        ExplanationStep(
            label="Total first tax",
            formula=f"{money(liability.gross_receipts_tax)} + {money(liability.net_income_tax)}",
            value=liability.first_tax_total,
        ),
        ExplanationStep(
            label="Profits tax (before credit)",
            formula=f"{short(ni)} × {fmt.format_rate(rates.profits_rate)}",
            value=liability.profits_tax_gross,
        ),
        ExplanationStep(
            label=f"Credit ({fmt.format_percentage(policy.credit_rate)})",
            formula=f"{money(liability.net_income_tax)} × {fmt.format_percentage(policy.credit_rate)}",
            value=liability.credit,
        ),
        ExplanationStep(
            label="Profits tax (after credit)",
            formula=f"max(0, {money(liability.profits_tax_gross)} - {money(liability.credit)})",
            value=liability.profits_tax_after_credit,
        ),
        ExplanationStep(
            label=f"Total tax {liability.year}",
            formula=f"{money(liability.first_tax_total)} + {money(liability.profits_tax_after_credit)}",
            value=liability.total_tax,
            is_result=True,
        ),
    ]
    return ExplanationSection(title=title, steps=steps)


def _cash_flow_section(
    title: str,
    cash_flow: CashFlow,
    policy: PolicySchedule,
    fmt: CurrencyFormatter,
    note: Optional[str] = None,
) -> ExplanationSection:
    money = fmt.format_currency
    income_year = cash_flow.year - 1
    grace = " (grace year = $0)" if cash_flow.is_grace_year else ""
    return ExplanationSection(
        title=title,
        note=note,
        steps=[
            ExplanationStep(
                label=f"Tax due (from {income_year})",
                formula=f"Tax liability {income_year}",
                value=cash_flow.tax_due,
            ),
            ExplanationStep(
                label="+ Est. first tax",
                formula=f"100% of {income_year} first tax{grace}",
                value=cash_flow.est_first_tax,
            ),
            ExplanationStep(
                label="+ Est. profits tax",
                formula=f"{fmt.format_percentage(policy.estimated_profits_rate)} of {income_year} profits tax",
                value=cash_flow.est_profits_tax,
            ),
            ExplanationStep(
                label="- Adjustment",
                formula="Prior estimates paid",
                value=cash_flow.adjustment,
            ),
            ExplanationStep(
                label=f"Total cash {cash_flow.year}",
                formula=(
                    f"{money(cash_flow.tax_due)} + {money(cash_flow.est_first_tax)} + "
                    f"{money(cash_flow.est_profits_tax)} + {money(cash_flow.adjustment)}"
                ),
                value=cash_flow.total_cash_burden,
                is_result=True,
            ),
        ],
    )


def build_explanation(
    net_income: float,
    gross_receipts: float,
    year_with: Optional[int] = None,
    year_without: Optional[int] = None,
    start_year: Optional[int] = None,
    policy: Optional[PolicySchedule] = None,
    formatter: Optional[CurrencyFormatter] = None,
) -> Explanation:
    """
    Build the explanation for one income profile.

    Args:
        net_income: Annual net income
        gross_receipts: Annual gross receipts
        year_with: Year shown with the exemption (defaults to the year before phase-out)
        year_without: Year shown without it (defaults to the phase-out year)
        start_year: Business start year; adds the shock-year walk-through when given
        policy: Rate and exemption tables (defaults to DEFAULT_POLICY)
        formatter: Formatting used inside formulas

    Returns:
        Explanation with its sections in display order
    """
    if policy is None:
        policy = DEFAULT_POLICY
    fmt = formatter or CurrencyFormatter()
    if year_with is None:
        year_with = policy.phase_out_year - 1
    if year_without is None:
        year_without = policy.phase_out_year

    # Both comparison years are shown as if the business operated in them
    with_exemption = compute_liability(net_income, gross_receipts, year_with, True, policy)
    without_exemption = compute_liability(
        net_income, gross_receipts, year_without, True, policy
    )
    annual_tax_increase = without_exemption.total_tax - with_exemption.total_tax

    exemption_label = (
        f"With {fmt.format_thousands(with_exemption.exemption)} Exemption"
        if with_exemption.exemption > 0
        else "No Exemption"
    )
    sections = [
        _liability_section(
            f"{year_with} Tax Liability ({exemption_label})", with_exemption, policy, fmt
        ),
        _liability_section(
            f"{year_without} Tax Liability (Without Exemption)",
            without_exemption,
            policy,
            fmt,
        ),
        ExplanationSection(
            title="Annual Tax Increase",
            steps=[
                ExplanationStep(
                    label="Annual tax increase",
                    formula=(
                        f"{fmt.format_currency(without_exemption.total_tax)} - "
                        f"{fmt.format_currency(with_exemption.total_tax)}"
                    ),
                    value=annual_tax_increase,
                    is_result=True,
                )
            ],
        ),
    ]

    shock = None
    if start_year is not None:
        scenario = compute_scenario(
            net_income,
            gross_receipts,
            start_year,
            policy,
            window=policy.explanation_window,
        )
        shock = scenario.to_shock_summary()
        prior = scenario.prior_cash_flow
        current = scenario.shock_cash_flow

        sections.append(
            _cash_flow_section(
                f"{prior.year} Cash Burden",
                prior,
                policy,
                fmt,
                note=(
                    "Cash burden is what is actually paid at filing: tax due plus "
                    "estimated payments minus the prior filing's estimates."
                ),
            )
        )
        sections.append(
            _cash_flow_section(
                f"{current.year} Cash Burden (Shock Year)", current, policy, fmt
            )
        )
        sections.append(
            ExplanationSection(
                title="Shock Year Impact",
                steps=[
                    ExplanationStep(
                        label="Cash shock",
                        formula=(
                            f"{fmt.format_currency(current.total_cash_burden)} - "
                            f"{fmt.format_currency(prior.total_cash_burden)}"
                        ),
                        value=scenario.cash_shock,
                        selected=scenario.shock_type == "cash",
                    ),
                    ExplanationStep(
                        label="Working cash shock",
                        formula=(
                            f"{fmt.format_currency(current.est_first_tax)} - "
                            f"{fmt.format_currency(prior.est_first_tax)}"
                        ),
                        value=scenario.working_cash_shock,
                        selected=scenario.shock_type == "working",
                    ),
                    ExplanationStep(
                        label="Shock year impact (max)",
                        formula=(
                            "Cash shock"
                            if scenario.shock_type == "cash"
                            else "Working cash shock"
                        ),
                        value=scenario.shock_amount,
                        is_result=True,
                    ),
                ],
            )
        )

    return Explanation(
        net_income=net_income,
        gross_receipts=gross_receipts,
        year_with=year_with,
        year_without=year_without,
        start_year=start_year,
        annual_tax_increase=annual_tax_increase,
        shock=shock,
        sections=sections,
    )


def render_text(
    explanation: Explanation, formatter: Optional[CurrencyFormatter] = None
) -> str:
    """Lay out an explanation as aligned plain text."""
    fmt = formatter or CurrencyFormatter()
    lines: List[str] = []

    for section in explanation.sections:
        if lines:
            lines.append("")
        lines.append(section.title)
        lines.append("-" * len(section.title))
        if section.note:
            lines.append(section.note)

        label_width = max((len(step.label) for step in section.steps), default=0)
        formula_width = max((len(step.formula) for step in section.steps), default=0)
        for step in section.steps:
            if step.is_result:
                lines.append("=" * (label_width + formula_width + 4))
            marker = " ✓" if step.selected else ""
            lines.append(
                f"{step.label:<{label_width}}  {step.formula:<{formula_width}}  "
                f"{fmt.format_currency(step.value)}{marker}"
            )

    return "\n".join(lines)
