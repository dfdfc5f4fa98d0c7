"""
Year windows for tax projections.

A projection runs over a contiguous, inclusive range of calendar years. The
scenario projector uses one window for liabilities and cash flows, and the
explanation builder uses a wider one so the shock-year walk-through has a
full history behind it.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class TimeGrid(BaseModel):
    """Inclusive range of years covered by a projection."""

    model_config = ConfigDict(frozen=True)

    start_year: int = Field(
        ..., ge=1900, le=2100, description="First year of the projection"
    )
    end_year: int = Field(..., ge=1900, le=2100, description="Last year of the projection")

    @field_validator("end_year")
    @classmethod
    def validate_end_year(cls, v: int, info: ValidationInfo) -> int:
        if "start_year" in info.data and v < info.data["start_year"]:
            raise ValueError("End year must be >= start year")
        return v

    def get_years(self) -> List[int]:
        """Get list of years in the time grid."""
        return list(range(self.start_year, self.end_year + 1))

    def get_cash_flow_years(self) -> List[int]:
        """Years that can carry a cash flow (each needs the prior year's liability)."""
        return list(range(self.start_year + 1, self.end_year + 1))

    def get_year_index(self, year: int) -> int:
        """Get the index of a year in the time grid."""
        if not self.start_year <= year <= self.end_year:
            raise ValueError(f"Year {year} is outside the time grid range")
        return year - self.start_year

    def contains(self, year: int) -> bool:
        return self.start_year <= year <= self.end_year

    def __len__(self) -> int:
        """Get the number of years in the time grid."""
        return self.end_year - self.start_year + 1
