"""
WhatsApp Message Sender
----------------------
This module sends text and interactive messages to WhatsApp users through the
Cloud API.
"""

import asyncio
import logging

import aiohttp

from config import WHATSAPP_ACCESS_TOKEN, WHATSAPP_API_VERSION, WHATSAPP_PHONE_NUMBER_ID

logger = logging.getLogger(__name__)

MAX_BUTTONS = 3
BUTTON_TITLE_LIMIT = 20
ROW_TITLE_LIMIT = 24
HEADER_LIMIT = 60
LIST_BUTTON_LIMIT = 20


class MessageSender:
    """
    Handles sending messages to WhatsApp users.

    This class is responsible for:
    1. Sending text messages
    2. Sending reply-button prompts (up to three buttons)
    3. Sending list prompts with sections of rows

    Failures are logged and reported as False; nothing is retried.
    """

    def __init__(self, access_token=None, phone_number_id=None, api_version=None, timeout=30):
        """
        Initialize the message sender.

        Args:
            access_token: WhatsApp API access token
            phone_number_id: WhatsApp phone number ID
            api_version: WhatsApp API version
            timeout: Total timeout in seconds for each request
        """
        self.access_token = access_token or WHATSAPP_ACCESS_TOKEN
        self.phone_number_id = phone_number_id or WHATSAPP_PHONE_NUMBER_ID
        self.api_version = api_version or WHATSAPP_API_VERSION
        self.base_url = f"https://graph.facebook.com/{self.api_version}/{self.phone_number_id}/messages"
        self.timeout = aiohttp.ClientTimeout(total=timeout)

        if not self.access_token or not self.phone_number_id:
            logger.error("⚠️ Missing WhatsApp API credentials")

        logger.info(f"MessageSender initialized with API URL: {self.base_url}")

    async def send_whatsapp_api_request(self, payload, request_type="message"):
        """
        Core method for making WhatsApp API requests.

        Args:
            payload: The JSON payload, without ``messaging_product``
            request_type: Label used in logs

        Returns:
            tuple: (success, response_data, status_code)
        """
        body = {"messaging_product": "whatsapp", **payload}
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.access_token}"
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.base_url, json=body, headers=headers) as response:
                    status_code = response.status
                    response_data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"WhatsApp API {request_type} request to {payload.get('to')} failed: {str(e)}")
            return False, None, None

        if status_code != 200:
            error = (response_data or {}).get('error', {}) if isinstance(response_data, dict) else {}
            logger.error(
                f"WhatsApp API {request_type} error {status_code} for {payload.get('to')}: "
                f"{error.get('code')} {error.get('message')}"
            )
            return False, response_data, status_code

        logger.debug(f"WhatsApp API {request_type} sent to {payload.get('to')}")
        return True, response_data, status_code

    async def send_text(self, to, body):
        """
        Send a plain text message.

        Returns:
            bool: True if the API accepted the message
        """
        success, _, _ = await self.send_whatsapp_api_request({
            "to": to,
            "type": "text",
            "text": {"body": body}
        }, request_type="text")
        return success

    async def send_button_prompt(self, to, body, buttons):
        """
        Send a reply-button message.

        Args:
            to: Recipient phone number
            body: Body text
            buttons: Sequence of (id, title) pairs, at most three

        Returns:
            bool: True if the API accepted the message
        """
        if not buttons or len(buttons) > MAX_BUTTONS:
            raise ValueError(f"Button prompts take 1 to {MAX_BUTTONS} buttons, got {len(buttons or [])}")

        success, _, _ = await self.send_whatsapp_api_request({
            "to": to,
            "type": "interactive",
            "interactive": {
                "type": "button",
                "body": {"text": body},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": button_id, "title": title[:BUTTON_TITLE_LIMIT]}}
                        for button_id, title in buttons
                    ]
                }
            }
        }, request_type="button")
        return success

    async def send_list_prompt(self, to, header, body, sections, button_label):
        """
        Send a list message.

        Args:
            to: Recipient phone number
            header: Header text, or None for no header
            body: Body text
            sections: List of {'title': ..., 'rows': [{'id': ..., 'title': ...}]}
            button_label: Label of the button that opens the list

        Returns:
            bool: True if the API accepted the message
        """
        interactive = {
            "type": "list",
            "body": {"text": body},
            "action": {
                "button": button_label[:LIST_BUTTON_LIMIT],
                "sections": [
                    {
                        "title": section["title"][:ROW_TITLE_LIMIT],
                        "rows": [
                            {"id": row["id"], "title": row["title"][:ROW_TITLE_LIMIT]}
                            for row in section["rows"]
                        ]
                    }
                    for section in sections
                ]
            }
        }
        if header:
            interactive["header"] = {"type": "text", "text": header[:HEADER_LIMIT]}

        success, _, _ = await self.send_whatsapp_api_request({
            "to": to,
            "type": "interactive",
            "interactive": interactive
        }, request_type="list")
        return success
