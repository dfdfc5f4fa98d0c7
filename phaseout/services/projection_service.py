"""
Projection service for running tax scenarios on behalf of the API.

This service wraps the pure projection functions with the active policy,
logging and the batch shock grid used to compare many income profiles at
once.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, field_validator

from phaseout.models.errors import InvalidInputError
from phaseout.models.explanation import Explanation, build_explanation
from phaseout.models.policy import DEFAULT_POLICY, PolicySchedule
from phaseout.models.scenario import ScenarioResult, ShockSummary, compute_scenario

logger = logging.getLogger(__name__)


class ShockGrid(BaseModel):
    """
    Shock-year results over a grid of gross receipts and net margins.

    All arrays are shaped (len(gross_receipts), len(net_margins)); net income
    for a cell is gross receipts × net margin.
    """

    start_year: int
    gross_receipts: NDArray[np.float64] = Field(..., description="Row values")
    net_margins: NDArray[np.float64] = Field(..., description="Column values")
    shock_amounts: NDArray[np.float64] = Field(..., description="Shock amount per cell")
    shock_years: NDArray[np.int64] = Field(..., description="Shock year per cell")
    working_shock_mask: NDArray[np.bool_] = Field(
        ..., description="True where the working cash shock was larger"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    @field_validator("shock_amounts", "shock_years", "working_shock_mask")
    @classmethod
    def validate_grid_shape(cls, v: NDArray) -> NDArray:
        """Validate that result arrays are 2-dimensional (receipts × margins)."""
        if v.ndim != 2:
            raise ValueError(
                f"Array must be 2-dimensional (receipts × margins), got {v.ndim}D"
            )
        return v

    @property
    def shape(self):
        return self.shock_amounts.shape

    def get_max_shock(self) -> float:
        return float(np.max(self.shock_amounts)) if self.shock_amounts.size else 0.0

    def get_mean_shock(self) -> float:
        return float(np.mean(self.shock_amounts)) if self.shock_amounts.size else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "start_year": self.start_year,
            "gross_receipts": self.gross_receipts.tolist(),
            "net_margins": self.net_margins.tolist(),
            "shock_amounts": self.shock_amounts.tolist(),
            "shock_years": self.shock_years.tolist(),
            "shock_types": np.where(
                self.working_shock_mask, "working", "cash"
            ).tolist(),
            "max_shock": self.get_max_shock(),
            "mean_shock": self.get_mean_shock(),
        }


class ProjectionService:
    """Service for running tax projections against one policy schedule."""

    def __init__(
        self, policy: Optional[PolicySchedule] = None, max_grid_size: int = 2500
    ) -> None:
        """Initialize the projection service."""
        self.policy = policy if policy is not None else DEFAULT_POLICY
        self.max_grid_size = max_grid_size
        self.logger = logging.getLogger(__name__)

    def run_scenario(
        self, net_income: float, gross_receipts: float, start_year: int
    ) -> ScenarioResult:
        """Run a full scenario projection.

        Args:
            net_income: Annual net income
            gross_receipts: Annual gross receipts
            start_year: Year the business began

        Returns:
            The scenario result

        Raises:
            ProjectionError: If the inputs or policy cannot be projected
        """
        self.logger.info(
            f"Running scenario NI={net_income} GR={gross_receipts} start={start_year}"
        )
        try:
            result = compute_scenario(net_income, gross_receipts, start_year, self.policy)
        except Exception as e:
            self.logger.error(f"Scenario failed: {str(e)}")
            raise

        self.logger.info(
            f"Scenario complete: shock {result.shock_type} {result.shock_amount:.2f} "
            f"in {result.shock_year}"
        )
        return result

    def run_shock_summary(
        self, net_income: float, gross_receipts: float, start_year: int
    ) -> ShockSummary:
        """Run a scenario and keep only the shock-year figures."""
        return self.run_scenario(net_income, gross_receipts, start_year).to_shock_summary()

    def run_explanation(
        self,
        net_income: float,
        gross_receipts: float,
        start_year: Optional[int] = None,
        year_with: Optional[int] = None,
        year_without: Optional[int] = None,
    ) -> Explanation:
        """Build the step-by-step explanation for an income profile."""
        self.logger.info(
            f"Building explanation NI={net_income} GR={gross_receipts} start={start_year}"
        )
        return build_explanation(
            net_income,
            gross_receipts,
            year_with=year_with,
            year_without=year_without,
            start_year=start_year,
            policy=self.policy,
        )

    def run_shock_grid(
        self,
        gross_receipts: Sequence[float],
        net_margins: Sequence[float],
        start_year: int,
    ) -> ShockGrid:
        """Compute shock summaries for every receipts × margin combination.

        Args:
            gross_receipts: Gross receipts values (rows)
            net_margins: Net income as a share of gross receipts (columns)
            start_year: Year the business began, shared by every cell

        Returns:
            ShockGrid with one cell per combination

        Raises:
            InvalidInputError: If the grid is empty or larger than max_grid_size
        """
        receipts = np.asarray(gross_receipts, dtype=np.float64)
        margins = np.asarray(net_margins, dtype=np.float64)
        if receipts.ndim != 1 or margins.ndim != 1:
            raise InvalidInputError("gross_receipts and net_margins must be flat lists")
        if receipts.size == 0 or margins.size == 0:
            raise InvalidInputError("Shock grid needs at least one row and one column")
        if receipts.size * margins.size > self.max_grid_size:
            raise InvalidInputError(
                f"Shock grid of {receipts.size}x{margins.size} exceeds "
                f"{self.max_grid_size} cells"
            )

        shape = (receipts.size, margins.size)
        shock_amounts = np.zeros(shape, dtype=np.float64)
        shock_years = np.zeros(shape, dtype=np.int64)
        working_mask = np.zeros(shape, dtype=np.bool_)

        self.logger.info(f"Running shock grid {shape[0]}x{shape[1]} start={start_year}")
        for i, gr in enumerate(receipts):
            for j, margin in enumerate(margins):
                summary = compute_scenario(
                    float(gr * margin), float(gr), start_year, self.policy
                ).to_shock_summary()
                shock_amounts[i, j] = summary.shock_amount
                shock_years[i, j] = summary.shock_year
                working_mask[i, j] = summary.shock_type == "working"

        return ShockGrid(
            start_year=start_year,
            gross_receipts=receipts,
            net_margins=margins,
            shock_amounts=shock_amounts,
            shock_years=shock_years,
            working_shock_mask=working_mask,
        )

    def describe_policy(self) -> Dict[str, Any]:
        """Active policy tables with the derived phase-out facts."""
        return {
            **self.policy.model_dump(mode="json"),
            "phase_out_year": self.policy.phase_out_year,
            "warnings": self.policy.validate_phase_out(),
        }

