"""Main Application Module
--------------------------------
Entry point for the WhatsApp Drive intake bot. Builds the Flask application
and wires the conversation engine to its database, WhatsApp and Drive
collaborators.

Run with ``gunicorn "app:create_app()"`` or ``python app.py`` for development.
"""

import logging

from flask import Flask

from config import (
    DEBUG,
    HOST,
    PORT,
    REDIS_URL,
    VERSION,
    WHATSAPP_VERIFY_TOKEN,
)
from middleware import setup_middleware
from models.database import get_engine, get_session_factory, init_db
from models.repository import Repository
from routes.handlers.whatsapp.deduplication import DeduplicationManager
from routes.handlers.whatsapp.handler import WhatsAppHandler
from routes.handlers.whatsapp.message_sender import MessageSender
from routes.handlers.whatsapp.redis_deduplication import RedisDeduplicationManager
from routes.health import register_health_routes
from routes.webhook import register_webhook_routes
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_deduplication():
    """Redis-backed deduplication when REDIS_URL is set, in-memory otherwise"""
    if REDIS_URL:
        logger.info("✅ Using Redis for message deduplication")
        return RedisDeduplicationManager(REDIS_URL)
    logger.info("⚠️ Using in-memory message deduplication (Redis URL not found)")
    return DeduplicationManager()


def build_whatsapp_handler():
    init_db(get_engine())
    repository = Repository(get_session_factory())
    return WhatsAppHandler(repository, MessageSender(), build_deduplication())


def create_app(whatsapp_handler=None, **config_overrides):
    """
    Create the Flask application.

    Args:
        whatsapp_handler: Ready WhatsAppHandler (built from config when omitted)
        config_overrides: Extra Flask config values

    Returns:
        Flask: The configured application
    """
    setup_logging(VERSION)

    app = Flask(__name__)
    app.config.update(
        VERSION=VERSION,
        WHATSAPP_VERIFY_TOKEN=WHATSAPP_VERIFY_TOKEN,
    )
    app.config.update(config_overrides)

    app.extensions['whatsapp_handler'] = whatsapp_handler or build_whatsapp_handler()

    setup_middleware(app)
    register_webhook_routes(app)
    register_health_routes(app)

    logger.info(f"✅ Application {VERSION} initialized")
    return app


if __name__ == '__main__':
    create_app().run(host=HOST, port=PORT, debug=DEBUG)
