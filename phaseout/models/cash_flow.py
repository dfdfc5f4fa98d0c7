"""
Cash actually remitted in a filing year.

Taxes for income year Y-1 are paid in year Y together with estimated
payments toward year Y's own liability. The estimates paid in the previous
filing are credited back as an adjustment. Two grace rules waive the
estimated first tax payment:

- first-year-filing grace: the first filing of a business that owed first tax
  in its first year;
- exemption-removal grace: the first filing for the year the exemption
  dropped to zero, for businesses that never paid the first tax while the
  exemption was in effect.

First-year-filing grace takes precedence; the two flags are never both set.
"""

import logging
from typing import Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .liability import TaxLiability
from .policy import DEFAULT_POLICY, PolicySchedule

logger = logging.getLogger(__name__)


class CashFlow(BaseModel):
    """Cash burden for one filing year."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., description="Filing year")
    tax_due: float = Field(default=0.0, description="Prior year's total liability")
    est_first_tax: float = Field(
        default=0.0, description="Estimated first tax paid toward this year"
    )
    est_profits_tax: float = Field(
        default=0.0, description="Estimated profits tax paid toward this year"
    )
    adjustment: float = Field(
        default=0.0, description="Credit for estimates paid in the previous filing (<= 0)"
    )
    first_year_grace: bool = Field(default=False)
    exemption_removal_grace: bool = Field(default=False)
    total_cash_burden: float = Field(default=0.0)

    @computed_field  # type: ignore[misc]
    @property
    def is_grace_year(self) -> bool:
        """Whether the estimated first tax was waived this filing."""
        return self.first_year_grace or self.exemption_removal_grace

    @computed_field  # type: ignore[misc]
    @property
    def paid_in_year(self) -> int:
        return self.year


class GraceStatus(NamedTuple):
    """Which estimated first tax waivers apply to a filing."""

    first_year: bool
    exemption_removal: bool

    @property
    def waived(self) -> bool:
        return self.first_year or self.exemption_removal


def zero_cash_flow(year: int) -> CashFlow:
    """Cash flow for a year in which the business had nothing to file."""
    return CashFlow(year=year)


def determine_grace(
    liabilities: Mapping[int, TaxLiability],
    filing_year: int,
    start_year: int,
    policy: PolicySchedule,
) -> GraceStatus:
    """
    Evaluate both grace rules for the filing made in ``filing_year``.

    Args:
        liabilities: Liabilities by income year
        filing_year: Year the return is filed (reports ``filing_year - 1``)
        start_year: Year the business began
        policy: Exemption tables

    Returns:
        GraceStatus with at most one flag set
    """
    income_year = filing_year - 1

    first_liability = liabilities.get(start_year)
    had_first_tax_in_first_year = (
        first_liability is not None and first_liability.first_tax_total > 0
    )
    start_exemption = policy.find_exemption(start_year)
    paid_first_tax_under_exemption = (
        had_first_tax_in_first_year
        and start_exemption is not None
        and start_exemption > 0
    )

    if income_year == start_year and had_first_tax_in_first_year:
        return GraceStatus(first_year=True, exemption_removal=False)

    removal_grace = (
        policy.exemption_removed_in(income_year) and not paid_first_tax_under_exemption
    )
    return GraceStatus(first_year=False, exemption_removal=removal_grace)


def estimated_payments(
    liabilities: Mapping[int, TaxLiability],
    filing_year: int,
    start_year: int,
    policy: PolicySchedule,
):
    """
    Estimated first tax and profits tax paid with the ``filing_year`` return.

    Returns:
        Tuple of (est_first_tax, est_profits_tax, GraceStatus)
    """
    reported = liabilities[filing_year - 1]
    grace = determine_grace(liabilities, filing_year, start_year, policy)
    est_first_tax = 0.0 if grace.waived else reported.first_tax_total
    est_profits_tax = reported.profits_tax_after_credit * policy.estimated_profits_rate
    return est_first_tax, est_profits_tax, grace


def _filed(liabilities: Mapping[int, TaxLiability], year: int) -> bool:
    liability = liabilities.get(year)
    return liability is not None and liability.business_existed


def compute_cash_flow(
    liabilities: Mapping[int, TaxLiability],
    year: int,
    start_year: int,
    policy: Optional[PolicySchedule] = None,
) -> CashFlow:
    """
    Compute the cash paid in ``year``.

    Only liabilities for years before ``year`` are consulted.

    Args:
        liabilities: Liabilities by income year, covering at least year-2 and year-1
        year: Filing year
        start_year: Year the business began
        policy: Rate and exemption tables (defaults to DEFAULT_POLICY)

    Returns:
        The cash flow; all zero when there was no prior-year liability to file
    """
    if policy is None:
        policy = DEFAULT_POLICY

    if not _filed(liabilities, year - 1):
        return zero_cash_flow(year)

    tax_due = liabilities[year - 1].total_tax
    est_first_tax, est_profits_tax, grace = estimated_payments(
        liabilities, year, start_year, policy
    )

    adjustment = 0.0
    if _filed(liabilities, year - 2):
        prior_first, prior_profits, _ = estimated_payments(
            liabilities, year - 1, start_year, policy
        )
        adjustment = -(prior_first + prior_profits)

    total_cash_burden = tax_due + est_first_tax + est_profits_tax + adjustment
    logger.debug(
        f"Cash flow {year}: due={tax_due:.2f} est_first={est_first_tax:.2f} "
        f"est_profits={est_profits_tax:.2f} adj={adjustment:.2f} grace={grace}"
    )

    return CashFlow(
        year=year,
        tax_due=tax_due,
        est_first_tax=est_first_tax,
        est_profits_tax=est_profits_tax,
        adjustment=adjustment,
        first_year_grace=grace.first_year,
        exemption_removal_grace=grace.exemption_removal,
        total_cash_burden=total_cash_burden,
    )
