"""
Projection blueprint for tax scenario calculations.

This module provides API endpoints for running scenarios, shock summaries,
step-by-step explanations and shock grids against the active policy.
"""

from typing import Any, List, Literal, Optional

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import BaseModel, Field, ValidationError, field_validator

from phaseout.models.errors import ConfigurationError, InvalidInputError
from phaseout.models.explanation import render_text
from phaseout.models.formatting import parse_currency
from phaseout.services.projection_service import ProjectionService

projection_bp = Blueprint("projection", __name__, url_prefix="/api")


class ScenarioRequest(BaseModel):
    """Income profile submitted by a client; currency strings are accepted."""

    net_income: float = Field(..., ge=0, description="Annual net income")
    gross_receipts: float = Field(..., ge=0, description="Annual gross receipts")
    start_year: int = Field(..., ge=1900, le=2100, description="Year the business began")

    @field_validator("net_income", "gross_receipts", mode="before")
    @classmethod
    def parse_amount(cls, v):
        if isinstance(v, str):
            return parse_currency(v)
        return v


class ExplanationRequest(ScenarioRequest):
    start_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    year_with: Optional[int] = Field(default=None, description="Year shown with the exemption")
    year_without: Optional[int] = Field(
        default=None, description="Year shown without the exemption"
    )
    format: Literal["json", "text"] = Field(default="json")


class ShockGridRequest(BaseModel):
    gross_receipts: List[float] = Field(..., min_length=1)
    net_margins: List[float] = Field(..., min_length=1)
    start_year: int = Field(..., ge=1900, le=2100)

    @field_validator("gross_receipts", mode="before")
    @classmethod
    def parse_amounts(cls, v):
        if isinstance(v, list):
            return [parse_currency(item) if isinstance(item, str) else item for item in v]
        return v


def _service() -> ProjectionService:
    return current_app.extensions["projection_service"]


def _error_response(e: Exception) -> Any:
    """Map projection failures onto HTTP responses."""
    if isinstance(e, ValidationError):
        details = [
            {"loc": list(err["loc"]), "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        return jsonify({"error": "Invalid request", "details": details}), 400
    if isinstance(e, InvalidInputError):
        return jsonify({"error": "Invalid input", "message": str(e)}), 400
    if isinstance(e, ConfigurationError):
        return jsonify({"error": "Policy configuration error", "message": str(e)}), 422

    current_app.logger.error(f"Error running projection: {str(e)}")
    return jsonify({"error": "Internal server error"}), 500


@projection_bp.route("/policy", methods=["GET"])
def get_policy() -> Any:
    """Return the active rate and exemption tables.

    Returns:
        JSON response with the policy schedule
    """
    try:
        return jsonify(_service().describe_policy()), 200
    except Exception as e:
        return _error_response(e)


@projection_bp.route("/scenarios", methods=["POST"])
def run_scenario() -> Any:
    """Project liabilities and cash flows for an income profile.

    Returns:
        JSON response with the full scenario result
    """
    try:
        payload = ScenarioRequest.model_validate(request.get_json(silent=True) or {})
        result = _service().run_scenario(
            payload.net_income, payload.gross_receipts, payload.start_year
        )
        return jsonify(result.model_dump(mode="json")), 200
    except Exception as e:
        return _error_response(e)


@projection_bp.route("/shock-summary", methods=["POST"])
def run_shock_summary() -> Any:
    """Return only the shock-year figures for an income profile."""
    try:
        payload = ScenarioRequest.model_validate(request.get_json(silent=True) or {})
        summary = _service().run_shock_summary(
            payload.net_income, payload.gross_receipts, payload.start_year
        )
        return jsonify(summary.model_dump(mode="json")), 200
    except Exception as e:
        return _error_response(e)


@projection_bp.route("/explanations", methods=["POST"])
def run_explanation() -> Any:
    """Explain the arithmetic step by step.

    The ``format`` field selects structured JSON sections or plain text.
    """
    try:
        payload = ExplanationRequest.model_validate(request.get_json(silent=True) or {})
        explanation = _service().run_explanation(
            payload.net_income,
            payload.gross_receipts,
            start_year=payload.start_year,
            year_with=payload.year_with,
            year_without=payload.year_without,
        )
        if payload.format == "text":
            return Response(render_text(explanation), mimetype="text/plain"), 200
        return jsonify(explanation.model_dump(mode="json")), 200
    except Exception as e:
        return _error_response(e)


@projection_bp.route("/shock-grid", methods=["POST"])
def run_shock_grid() -> Any:
    """Compute shock amounts for every gross receipts × net margin pair."""
    try:
        payload = ShockGridRequest.model_validate(request.get_json(silent=True) or {})
        grid = _service().run_shock_grid(
            payload.gross_receipts, payload.net_margins, payload.start_year
        )
        return jsonify(grid.to_dict()), 200
    except Exception as e:
        return _error_response(e)
