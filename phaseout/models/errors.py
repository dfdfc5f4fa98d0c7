"""
Exceptions raised by the projection engine.

Missing prior-year data is not an error anywhere in the engine: a business
that did not exist yet simply owes nothing. Only bad configuration and bad
inputs are surfaced to callers.
"""


class ProjectionError(Exception):
    """Base exception for projection-related errors."""


class ConfigurationError(ProjectionError):
    """Raised when the policy tables cannot serve a request (e.g. unknown year)."""


class InvalidInputError(ProjectionError, ValueError):
    """Raised when income figures are negative or not finite."""
