"""
Rate and exemption tables for the business tax regime.

The engine never hard-codes policy data: every calculator takes a
``PolicySchedule`` and falls back to ``DEFAULT_POLICY`` (the 2020-2027
schedule with the exemption removed from 2025) only when none is given.
Alternative or synthetic policy years can be loaded from JSON with
``load_policy``.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError
from .time_grid import TimeGrid

logger = logging.getLogger(__name__)


class RateSet(BaseModel):
    """Tax rates in force for a single year."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    net_income_rate: float = Field(
        ..., ge=0, le=1, description="First tax rate on taxable net income"
    )
    gross_receipts_rate: float = Field(
        ..., ge=0, le=1, description="First tax rate on taxable gross receipts"
    )
    profits_rate: float = Field(
        ..., ge=0, le=1, description="Profits tax rate on net income"
    )


class PolicySchedule(BaseModel):
    """Year-keyed rates and exemption thresholds plus the fixed policy constants."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rates: Dict[int, RateSet] = Field(..., description="Rate set by year")
    exemptions: Dict[int, float] = Field(
        ..., description="Gross receipts exemption threshold by year"
    )
    credit_rate: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Share of the first tax's net income component credited against the profits tax",
    )
    estimated_profits_rate: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Share of the profits tax paid as an estimate for the next year",
    )
    small_filer_threshold: float = Field(
        default=100000,
        ge=0,
        description="Gross receipts at or below which the shock lands one year later",
    )
    analysis_window: TimeGrid = Field(
        default=TimeGrid(start_year=2021, end_year=2027),
        description="Years projected for a scenario",
    )
    explanation_window: TimeGrid = Field(
        default=TimeGrid(start_year=2020, end_year=2027),
        description="Years projected for a detailed explanation",
    )

    @model_validator(mode="after")
    def validate_tables(self):
        if not self.rates:
            raise ValueError("rates table cannot be empty")
        if set(self.rates) != set(self.exemptions):
            missing = sorted(set(self.rates) ^ set(self.exemptions))
            raise ValueError(
                f"rates and exemptions must cover the same years, mismatched: {missing}"
            )
        for year, threshold in self.exemptions.items():
            if threshold < 0:
                raise ValueError(f"Exemption for {year} cannot be negative: {threshold}")
        for name in ("analysis_window", "explanation_window"):
            window = getattr(self, name)
            uncovered = [y for y in window.get_years() if y not in self.rates]
            if uncovered:
                raise ValueError(f"{name} includes years without rates: {uncovered}")
        return self

    def years(self) -> List[int]:
        """All years covered by the tables, ascending."""
        return sorted(self.rates)

    def rates_for(self, year: int) -> RateSet:
        try:
            return self.rates[year]
        except KeyError:
            raise ConfigurationError(f"No tax rates configured for {year}") from None

    def exemption_for(self, year: int) -> float:
        try:
            return self.exemptions[year]
        except KeyError:
            raise ConfigurationError(f"No exemption configured for {year}") from None

    def find_exemption(self, year: int) -> Optional[float]:
        """Exemption for ``year``, or None when the year is outside the tables."""
        return self.exemptions.get(year)

    def exemption_removed_in(self, year: int) -> bool:
        """True when ``year`` is the first year at zero after a nonzero year."""
        current = self.find_exemption(year)
        previous = self.find_exemption(year - 1)
        return current == 0 and previous is not None and previous > 0

    @property
    def phase_out_year(self) -> int:
        """First year the exemption drops to zero."""
        for year in self.years():
            if self.exemption_removed_in(year):
                return year
        raise ConfigurationError("Exemption schedule never phases out")

    def shock_year_for(self, gross_receipts: float) -> int:
        """
        Year of the largest cash impact from the exemption removal.

        The first filing without an exemption is due the year after the
        phase-out; small filers get one more year because their earlier
        filings owed no first tax and so qualify for the removal grace.
        """
        if gross_receipts <= self.small_filer_threshold:
            return self.phase_out_year + 2
        return self.phase_out_year + 1

    def validate_phase_out(self) -> List[str]:
        """
        Check that the exemption schedule phases out only once.

        The grace-year rules assume a single transition to zero; this reports
        violations without raising so callers can decide what to do.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        seen_zero = None
        for year in self.years():
            threshold = self.exemptions[year]
            if threshold == 0 and seen_zero is None:
                seen_zero = year
            elif threshold > 0 and seen_zero is not None:
                errors.append(
                    f"Exemption reappears in {year} after reaching zero in {seen_zero}"
                )
        if seen_zero is None:
            errors.append("Exemption never reaches zero")
        return errors


DEFAULT_POLICY = PolicySchedule(
    rates={
        2020: RateSet(net_income_rate=0.0599, gross_receipts_rate=0.001415, profits_rate=0.0379),
        2021: RateSet(net_income_rate=0.0599, gross_receipts_rate=0.001415, profits_rate=0.0379),
        2022: RateSet(net_income_rate=0.0599, gross_receipts_rate=0.001415, profits_rate=0.0379),
        2023: RateSet(net_income_rate=0.0581, gross_receipts_rate=0.001415, profits_rate=0.0375),
        2024: RateSet(net_income_rate=0.0581, gross_receipts_rate=0.001415, profits_rate=0.0375),
        2025: RateSet(net_income_rate=0.0571, gross_receipts_rate=0.00141, profits_rate=0.0374),
        2026: RateSet(net_income_rate=0.0565, gross_receipts_rate=0.001395, profits_rate=0.03735),
        2027: RateSet(net_income_rate=0.056, gross_receipts_rate=0.00139, profits_rate=0.0373),
    },
    exemptions={
        2020: 100000,
        2021: 100000,
        2022: 100000,
        2023: 100000,
        2024: 100000,
        2025: 0,
        2026: 0,
        2027: 0,
    },
)


def load_policy(path: Union[str, Path]) -> PolicySchedule:
    """
    Load a policy schedule from a JSON file.

    Args:
        path: Path to a JSON document matching ``PolicySchedule``

    Returns:
        The parsed policy schedule

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid schedule
    """
    policy_path = Path(path)
    try:
        raw = policy_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read policy file {policy_path}: {e}") from e

    try:
        policy = PolicySchedule.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid policy file {policy_path}: {e}") from e

    for problem in policy.validate_phase_out():
        logger.warning(f"Policy file {policy_path}: {problem}")
    logger.info(
        f"Loaded policy for {policy.years()[0]}-{policy.years()[-1]} from {policy_path}"
    )
    return policy
