"""
Webhook Routes
--------------
The WhatsApp Cloud API webhook: subscription verification (GET) and message
delivery (POST).
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from routes.handlers.whatsapp.handler import WhatsAppHandlerError

logger = logging.getLogger(__name__)

webhook_bp = Blueprint('webhook', __name__, url_prefix='/api')


def get_whatsapp_handler():
    return current_app.extensions['whatsapp_handler']


@webhook_bp.route('/webhook', methods=['GET'])
def verify_webhook():
    """
    Meta subscription check.

    Echoes ``hub.challenge`` when ``hub.mode`` is ``subscribe`` and the verify
    token matches.
    """
    mode = request.args.get('hub.mode')
    token = request.args.get('hub.verify_token')
    challenge = request.args.get('hub.challenge')
    expected = current_app.config.get('WHATSAPP_VERIFY_TOKEN')

    logger.info("Verifying webhook...")
    if mode == 'subscribe' and expected and token == expected:
        return challenge or '', 200

    logger.warning("Webhook verification failed: invalid mode or token")
    return jsonify({"message": "Invalid token", "success": False}), 403


@webhook_bp.route('/webhook', methods=['POST'])
async def receive_webhook():
    """
    Handle a delivery from WhatsApp.

    Returns 200 for every delivery that parses as JSON, including ones that
    fail inside the bot, so that WhatsApp does not redeliver them.
    """
    try:
        try:
            payload = request.get_json(force=True)
        except BadRequest as e:
            raise WhatsAppHandlerError(f"Webhook body is not valid JSON: {e.description}") from e

        message, status = await get_whatsapp_handler().handle_incoming_message(payload)
        return message, status
    except WhatsAppHandlerError as e:
        logger.error(f"❌ Webhook error: {str(e)}")
        return jsonify({"error": str(e)}), 500


def register_webhook_routes(app):
    """
    Register webhook routes with the Flask application.

    Args:
        app: The Flask application
    """
    app.register_blueprint(webhook_bp)
