"""
Single-year tax liability calculation.

Computes the first tax (gross receipts and net income components, after the
exemption and statutory deduction) and the profits tax (net of the credit for
the first tax's net income component) for one income year. Every intermediate
figure is kept on the result so that explanations and tests can inspect it.
"""

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidInputError
from .policy import DEFAULT_POLICY, PolicySchedule, RateSet


class TaxLiability(BaseModel):
    """Tax owed for one income year."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., description="Income year")
    business_existed: bool = Field(..., description="Whether the business operated that year")
    net_income: float = Field(..., ge=0, description="Net income for the year")
    gross_receipts: float = Field(..., ge=0, description="Gross receipts for the year")
    rates: RateSet = Field(..., description="Rates in force for the year")
    exemption: float = Field(..., ge=0, description="Exemption threshold for the year")

    # Taxable bases
    taxable_gross_receipts: float = Field(default=0.0, ge=0)
    taxable_net_income_first: float = Field(
        default=0.0, ge=0, description="Net income base of the first tax, after deduction"
    )
    taxable_net_income_profits: float = Field(
        default=0.0, ge=0, description="Net income base of the profits tax"
    )
    statutory_deduction: float = Field(default=0.0, ge=0)

    # First tax
    gross_receipts_tax: float = Field(default=0.0, ge=0)
    net_income_tax: float = Field(default=0.0, ge=0)
    first_tax_total: float = Field(default=0.0, ge=0)

    # Profits tax
    profits_tax_gross: float = Field(default=0.0, ge=0)
    credit: float = Field(default=0.0, ge=0)
    profits_tax_after_credit: float = Field(default=0.0, ge=0)

    total_tax: float = Field(default=0.0, ge=0)


def validate_income(net_income: float, gross_receipts: float) -> None:
    """
    Reject income figures the tax rules are not defined for.

    Raises:
        InvalidInputError: If either figure is negative, NaN or infinite
    """
    for name, value in (("net_income", net_income), ("gross_receipts", gross_receipts)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInputError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidInputError(f"{name} must be finite, got {value}")
        if value < 0:
            raise InvalidInputError(f"{name} cannot be negative: {value}")


def calculate_statutory_deduction(
    net_income: float, gross_receipts: float, exemption: float
) -> float:
    """
    Proportional allowance against the first tax's net income base.

    The net income to gross receipts ratio (capped at 1) is applied to the
    gross receipts when they fall strictly below the exemption, otherwise to
    the exemption itself.
    """
    if exemption <= 0 or gross_receipts <= 0:
        return 0.0

    ratio = min(net_income / gross_receipts, 1.0)
    if gross_receipts < exemption:
        return ratio * gross_receipts
    return ratio * exemption


def compute_liability(
    net_income: float,
    gross_receipts: float,
    year: int,
    business_existed: bool,
    policy: Optional[PolicySchedule] = None,
) -> TaxLiability:
    """
    Compute one year's tax liability.

    Args:
        net_income: Net income for the year (>= 0)
        gross_receipts: Gross receipts for the year (>= 0)
        year: Income year; must be present in the policy tables
        business_existed: Whether the business operated in ``year``
        policy: Rate and exemption tables (defaults to DEFAULT_POLICY)

    Returns:
        The liability with every intermediate value filled in. When the
        business did not exist, all bases and taxes are zero.

    Raises:
        ConfigurationError: If ``year`` is not in the policy tables
        InvalidInputError: If an income figure is negative or not finite
    """
    if policy is None:
        policy = DEFAULT_POLICY
    validate_income(net_income, gross_receipts)
    rates = policy.rates_for(year)
    exemption = policy.exemption_for(year)

    if not business_existed:
        return TaxLiability(
            year=year,
            business_existed=False,
            net_income=net_income,
            gross_receipts=gross_receipts,
            rates=rates,
            exemption=exemption,
        )

    taxable_gross_receipts = max(0.0, gross_receipts - exemption)
    # Profits tax has no exemption
    taxable_net_income_profits = float(net_income)
    statutory_deduction = calculate_statutory_deduction(
        net_income, gross_receipts, exemption
    )
    taxable_net_income_first = max(0.0, net_income - statutory_deduction)

    gross_receipts_tax = taxable_gross_receipts * rates.gross_receipts_rate
    net_income_tax = taxable_net_income_first * rates.net_income_rate
    first_tax_total = gross_receipts_tax + net_income_tax

    profits_tax_gross = taxable_net_income_profits * rates.profits_rate
    credit = net_income_tax * policy.credit_rate
    # Credit never turns into a refund
    profits_tax_after_credit = max(0.0, profits_tax_gross - credit)

    return TaxLiability(
        year=year,
        business_existed=True,
        net_income=net_income,
        gross_receipts=gross_receipts,
        rates=rates,
        exemption=exemption,
        taxable_gross_receipts=taxable_gross_receipts,
        taxable_net_income_first=taxable_net_income_first,
        taxable_net_income_profits=taxable_net_income_profits,
        statutory_deduction=statutory_deduction,
        gross_receipts_tax=gross_receipts_tax,
        net_income_tax=net_income_tax,
        first_tax_total=first_tax_total,
        profits_tax_gross=profits_tax_gross,
        credit=credit,
        profits_tax_after_credit=profits_tax_after_credit,
        total_tax=first_tax_total + profits_tax_after_credit,
    )
