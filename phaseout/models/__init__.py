"""Tax liability, cash-flow and scenario models for the exemption phase-out."""

from .cash_flow import CashFlow, GraceStatus, compute_cash_flow, determine_grace
from .errors import ConfigurationError, InvalidInputError, ProjectionError
from .explanation import (
    Explanation,
    ExplanationSection,
    ExplanationStep,
    build_explanation,
    render_text,
)
from .formatting import CurrencyFormatter, parse_currency
from .liability import TaxLiability, calculate_statutory_deduction, compute_liability
from .policy import DEFAULT_POLICY, PolicySchedule, RateSet, load_policy
from .scenario import ScenarioResult, ShockSummary, compute_scenario, compute_shock_summary
from .time_grid import TimeGrid

__all__ = [
    "RateSet",
    "PolicySchedule",
    "DEFAULT_POLICY",
    "load_policy",
    "TimeGrid",
    "TaxLiability",
    "compute_liability",
    "calculate_statutory_deduction",
    "CashFlow",
    "GraceStatus",
    "compute_cash_flow",
    "determine_grace",
    "ScenarioResult",
    "ShockSummary",
    "compute_scenario",
    "compute_shock_summary",
    "Explanation",
    "ExplanationSection",
    "ExplanationStep",
    "build_explanation",
    "render_text",
    "CurrencyFormatter",
    "parse_currency",
    "ProjectionError",
    "ConfigurationError",
    "InvalidInputError",
]
