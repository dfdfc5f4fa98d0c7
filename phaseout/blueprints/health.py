"""Health check blueprint."""

from flask import Blueprint, Response, current_app, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz")
def health_check() -> Response:
    """Health check endpoint.

    Returns:
        JSON response with status and the policy years being served
    """
    policy = current_app.extensions["projection_service"].policy
    years = policy.years()
    return jsonify({"status": "ok", "policy_years": [years[0], years[-1]]})
