"""
Middleware Module
----------------
Request timing and logging hooks, and the JSON error handler for the Flask
application.
"""

import logging
import time

from flask import g, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

QUIET_PATHS = ('/health',)


def setup_middleware(app):
    """
    Set up middleware for the Flask application.

    Args:
        app: The Flask application
    """

    @app.before_request
    def before_request():
        """Start the request timer and log the request line"""
        g.start_time = time.time()

        if request.path not in QUIET_PATHS:
            logger.info(f"Request: {request.method} {request.path}")

    @app.after_request
    def after_request(response):
        """
        Log response status and timing.

        Args:
            response: The Flask response object

        Returns:
            The response object
        """
        if hasattr(g, 'start_time') and request.path not in QUIET_PATHS:
            elapsed_time = time.time() - g.start_time
            logger.info(
                f"Response: {request.method} {request.path} - "
                f"Status: {response.status_code} - Time: {elapsed_time:.4f}s"
            )
        return response

    @app.errorhandler(Exception)
    def handle_exception(e):
        """
        Global exception handler.

        HTTP errors keep their status; anything else is logged and becomes a
        JSON 500.
        """
        if isinstance(e, HTTPException):
            return {"error": e.name, "message": e.description}, e.code

        logger.exception(f"Unhandled exception: {str(e)}")
        return {
            "error": "Internal server error",
            "message": str(e) if app.debug else "An unexpected error occurred"
        }, 500
