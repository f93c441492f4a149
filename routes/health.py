"""
Health Routes
-----------
This module provides health check endpoints for the intake bot, used by the
hosting platform's monitoring.
"""

import logging
import platform
from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Create a blueprint for health routes
health_bp = Blueprint('health', __name__)

logger = logging.getLogger(__name__)


@health_bp.route('/health')
def health_check():
    """
    Liveness check.

    Returns:
        JSON response with health status
    """
    return jsonify({
        "status": "healthy",
        "version": current_app.config.get('VERSION', 'unknown'),
        "timestamp": datetime.now().isoformat()
    }), 200


@health_bp.route('/health/detailed')
def detailed_health_check():
    """
    Database and Redis status.

    Returns:
        JSON response with per-component health information
    """
    handler = current_app.extensions['whatsapp_handler']

    db_status = "healthy"
    db_error = None
    try:
        with handler.repository.session_factory() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = "unhealthy"
        db_error = str(e)
        logger.error(f"Database health check failed: {str(e)}")

    redis_status = "not_configured"
    ping = getattr(handler.deduplication, 'ping', None)
    if ping is not None:
        redis_status = "healthy" if ping() else "unhealthy"

    return jsonify({
        "status": "healthy" if db_status == "healthy" else "degraded",
        "version": current_app.config.get('VERSION', 'unknown'),
        "timestamp": datetime.now().isoformat(),
        "components": {
            "database": {
                "status": db_status,
                "error": db_error
            },
            "redis": {
                "status": redis_status
            }
        },
        "system": {
            "os": platform.system(),
            "python_version": platform.python_version()
        }
    }), 200


def register_health_routes(app):
    """
    Register health routes with the Flask application.

    Args:
        app: The Flask application
    """
    app.register_blueprint(health_bp)
