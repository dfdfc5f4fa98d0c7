"""
Currency and rate formatting for explanations and API input parsing.

The engine keeps full float precision; rounding only happens here.
"""

import math
import re
from typing import Optional, Union

from pydantic import BaseModel, Field

_NUMBER_PREFIX = re.compile(r"-?(\d+\.?\d*|\.\d+)")


def round_half_up(amount: float, decimal_places: int = 0) -> float:
    """Round halves away from negative infinity (so 2.5 -> 3, -2.5 -> -2)."""
    factor = 10**decimal_places
    return math.floor(amount * factor + 0.5) / factor


class CurrencyFormatter(BaseModel):
    """Formats currency and percentage values for display."""

    currency_symbol: str = Field(default="$", description="Currency symbol")
    decimal_places: int = Field(
        default=0, ge=0, le=10, description="Number of decimal places"
    )
    show_currency_symbol: bool = Field(
        default=True, description="Whether to show currency symbol"
    )

    def format_currency(self, amount: float, show_symbol: Optional[bool] = None) -> str:
        """
        Format a currency amount for display.

        Args:
            amount: The amount to format
            show_symbol: Override the default symbol display setting

        Returns:
            Formatted currency string, e.g. "$1,234" or "-$56"
        """
        show_symbol = (
            show_symbol if show_symbol is not None else self.show_currency_symbol
        )

        rounded = round_half_up(amount, self.decimal_places)
        sign = "-" if rounded < 0 else ""
        magnitude = abs(rounded)

        if self.decimal_places > 0:
            formatted = f"{magnitude:,.{self.decimal_places}f}"
        else:
            formatted = f"{int(magnitude):,}"

        if show_symbol:
            return f"{sign}{self.currency_symbol}{formatted}"
        return f"{sign}{formatted}"

    def format_number(self, amount: float) -> str:
        """Whole-unit amount with thousands separators and no symbol."""
        return self.format_currency(amount, show_symbol=False)

    def format_thousands(self, amount: float) -> str:
        """Compact form used in formulas: "$250K" at or above 1,000, otherwise "$950"."""
        if amount >= 1000:
            return f"{self.currency_symbol}{int(round_half_up(amount / 1000))}K"
        return f"{self.currency_symbol}{self.format_number(amount)}"

    def format_rate(self, rate: float) -> str:
        """
        Format a tax rate as a percentage.

        Rates under 1% get three decimals so that gross receipts rates such
        as 0.1415% stay readable.
        """
        decimal_places = 3 if rate < 0.01 else 2
        return f"{rate * 100:.{decimal_places}f}%"

    def format_percentage(self, rate: float, decimal_places: int = 0) -> str:
        """Format a plain share (0.6 -> "60%")."""
        return f"{rate * 100:.{decimal_places}f}%"


def parse_currency(value: Union[str, int, float, None]) -> float:
    """
    Parse a user-entered currency amount such as "$1,250,000".

    Anything that is not a digit, dot or minus sign is dropped and the
    leading number is read. Unparseable input yields 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    cleaned = re.sub(r"[^0-9.\-]", "", str(value))
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))
