"""
Multi-year scenario projection and shock-year analysis.

Builds the liabilities and cash flows for one income profile over the
policy's analysis window, then measures how hard the exemption removal hits:

- cash shock: change in total cash burden into the shock year;
- working cash shock: change in the estimated first tax alone, i.e. money the
  city holds as working capital ahead of the liability.

The larger of the two is reported; ties count as a cash shock.
"""

import logging
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cash_flow import CashFlow, compute_cash_flow, zero_cash_flow
from .liability import TaxLiability, compute_liability, validate_income
from .policy import DEFAULT_POLICY, PolicySchedule
from .time_grid import TimeGrid

logger = logging.getLogger(__name__)

ShockType = Literal["cash", "working"]


class ShockSummary(BaseModel):
    """Reduced view of a scenario for lightweight consumers."""

    model_config = ConfigDict(frozen=True)

    shock_year: int
    shock_amount: float
    shock_type: ShockType
    cash_shock: float
    working_cash_shock: float
    shock_cash_burden: float
    prior_cash_burden: float


class ScenarioResult(BaseModel):
    """Everything computed for one (net income, gross receipts, start year) profile."""

    model_config = ConfigDict(frozen=True)

    net_income: float = Field(..., ge=0)
    gross_receipts: float = Field(..., ge=0)
    start_year: int
    window: TimeGrid

    liabilities: Dict[int, TaxLiability] = Field(..., description="Liability by income year")
    cash_flows: Dict[int, CashFlow] = Field(..., description="Cash flow by filing year")

    phase_out_year: int = Field(..., description="First year without an exemption")
    baseline_liability: TaxLiability = Field(
        ..., description="Liability for the last year with an exemption"
    )
    annual_tax_increase: float = Field(
        ..., description="Liability in the phase-out year minus the year before"
    )

    shock_year: int
    shock_cash_flow: CashFlow
    prior_cash_flow: CashFlow
    cash_shock: float
    working_cash_shock: float
    shock_amount: float
    shock_type: ShockType

    def to_shock_summary(self) -> ShockSummary:
        return ShockSummary(
            shock_year=self.shock_year,
            shock_amount=self.shock_amount,
            shock_type=self.shock_type,
            cash_shock=self.cash_shock,
            working_cash_shock=self.working_cash_shock,
            shock_cash_burden=self.shock_cash_flow.total_cash_burden,
            prior_cash_burden=self.prior_cash_flow.total_cash_burden,
        )


def project_liabilities(
    net_income: float,
    gross_receipts: float,
    start_year: int,
    window: TimeGrid,
    policy: PolicySchedule,
) -> Dict[int, TaxLiability]:
    """Liability for every year in ``window``; zero before ``start_year``."""
    return {
        year: compute_liability(
            net_income, gross_receipts, year, year >= start_year, policy
        )
        for year in window.get_years()
    }


def project_cash_flows(
    liabilities: Dict[int, TaxLiability],
    start_year: int,
    window: TimeGrid,
    policy: PolicySchedule,
) -> Dict[int, CashFlow]:
    """Cash flow for every year in ``window`` after the first."""
    return {
        year: compute_cash_flow(liabilities, year, start_year, policy)
        for year in window.get_cash_flow_years()
    }


def classify_shock(cash_shock: float, working_cash_shock: float):
    """
    Pick the larger shock measure.

    Returns:
        Tuple of (shock_amount, shock_type); ties are classified as "cash"
    """
    if cash_shock >= working_cash_shock:
        return cash_shock, "cash"
    return working_cash_shock, "working"


def compute_scenario(
    net_income: float,
    gross_receipts: float,
    start_year: int,
    policy: Optional[PolicySchedule] = None,
    window: Optional[TimeGrid] = None,
) -> ScenarioResult:
    """
    Project liabilities and cash flows and locate the shock year.

    Args:
        net_income: Annual net income (>= 0), held constant across years
        gross_receipts: Annual gross receipts (>= 0), held constant across years
        start_year: Year the business began
        policy: Rate and exemption tables (defaults to DEFAULT_POLICY)
        window: Years to project (defaults to the policy's analysis window)

    Returns:
        The complete scenario result

    Raises:
        ConfigurationError: If the window leaves the policy tables or the
            schedule has no phase-out year
        InvalidInputError: If an income figure is negative or not finite
    """
    if policy is None:
        policy = DEFAULT_POLICY
    if window is None:
        window = policy.analysis_window
    validate_income(net_income, gross_receipts)

    logger.debug(
        f"Projecting NI={net_income} GR={gross_receipts} start={start_year} "
        f"over {window.start_year}-{window.end_year}"
    )

    liabilities = project_liabilities(
        net_income, gross_receipts, start_year, window, policy
    )
    cash_flows = project_cash_flows(liabilities, start_year, window, policy)

    phase_out_year = policy.phase_out_year
    shock_year = policy.shock_year_for(gross_receipts)

    shock_cash_flow = cash_flows.get(shock_year) or zero_cash_flow(shock_year)
    prior_cash_flow = cash_flows.get(shock_year - 1) or zero_cash_flow(shock_year - 1)

    cash_shock = shock_cash_flow.total_cash_burden - prior_cash_flow.total_cash_burden
    working_cash_shock = shock_cash_flow.est_first_tax - prior_cash_flow.est_first_tax
    shock_amount, shock_type = classify_shock(cash_shock, working_cash_shock)

    baseline_liability = _liability_in_window(
        liabilities, phase_out_year - 1, net_income, gross_receipts, start_year, policy
    )
    phase_out_liability = _liability_in_window(
        liabilities, phase_out_year, net_income, gross_receipts, start_year, policy
    )

    return ScenarioResult(
        net_income=net_income,
        gross_receipts=gross_receipts,
        start_year=start_year,
        window=window,
        liabilities=liabilities,
        cash_flows=cash_flows,
        phase_out_year=phase_out_year,
        baseline_liability=baseline_liability,
        annual_tax_increase=phase_out_liability.total_tax - baseline_liability.total_tax,
        shock_year=shock_year,
        shock_cash_flow=shock_cash_flow,
        prior_cash_flow=prior_cash_flow,
        cash_shock=cash_shock,
        working_cash_shock=working_cash_shock,
        shock_amount=shock_amount,
        shock_type=shock_type,
    )


def _liability_in_window(
    liabilities: Dict[int, TaxLiability],
    year: int,
    net_income: float,
    gross_receipts: float,
    start_year: int,
    policy: PolicySchedule,
) -> TaxLiability:
    # Narrow custom windows may not reach the phase-out comparison years
    if year in liabilities:
        return liabilities[year]
    return compute_liability(net_income, gross_receipts, year, year >= start_year, policy)


def compute_shock_summary(
    net_income: float,
    gross_receipts: float,
    start_year: int,
    policy: Optional[PolicySchedule] = None,
) -> ShockSummary:
    """Shock-year figures only; see ``compute_scenario``."""
    return compute_scenario(net_income, gross_receipts, start_year, policy).to_shock_summary()
