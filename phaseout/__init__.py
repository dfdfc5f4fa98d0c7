"""Exemption Phase-out Planner Flask Application Factory."""

from typing import Optional

from flask import Flask

from phaseout.config import Settings, get_global_settings
from phaseout.models.policy import DEFAULT_POLICY, load_policy
from phaseout.services.projection_service import ProjectionService


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Settings to use instead of the global environment settings

    Returns:
        Flask: Configured Flask application instance

    Raises:
        ConfigurationError: If POLICY_FILE is set but cannot be loaded
    """
    app = Flask(__name__)

    # Configuration from Pydantic Settings
    if settings is None:
        settings = get_global_settings()
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["ENV"] = settings.flask_env
    app.config["DEBUG"] = settings.app_env == "development"
    app.config["TESTING"] = settings.app_env == "testing"
    app.logger.setLevel(settings.log_level)

    policy = load_policy(settings.policy_file) if settings.policy_file else DEFAULT_POLICY
    app.extensions["projection_service"] = ProjectionService(
        policy=policy, max_grid_size=settings.max_grid_size
    )

    # Register blueprints
    from phaseout.blueprints.health import health_bp
    from phaseout.blueprints.projection import projection_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(projection_bp)

    return app
