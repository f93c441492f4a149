"""
WhatsApp Inbound Events
-----------------------
Decodes Cloud API webhook payloads into typed events.

Interactive reply ids are a string protocol (``folder_saved_<id>``,
``doc_nav_next_<page>`` ...). They are decoded into reply objects here and
encoded back by the helpers at the bottom, so nothing else parses them.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union
from urllib.parse import quote, unquote

from routes.handlers.whatsapp_constants import (
    DOC_NAV_BACK_PREFIX,
    DOC_NAV_NEXT_PREFIX,
    DOCUMENT_META_PREFIX,
    EXPLORE_FOLDERS_ID,
    FOLDER_DEFAULT_ID,
    FOLDER_EXISTING_ID,
    FOLDER_NEW_ID,
    FOLDER_SAVED_PREFIX,
    GET_DOCUMENTS_ID,
    UPLOAD_DOCUMENT_ID,
)

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


class EventKind(Enum):
    TEXT = 'text'
    IMAGE = 'image'
    DOCUMENT = 'document'
    BUTTON_REPLY = 'button_reply'
    LIST_REPLY = 'list_reply'
    UNSUPPORTED = 'unsupported'


@dataclass(frozen=True)
class MediaItem:
    media_id: Optional[str]
    file_name: str
    mime_type: str


@dataclass(frozen=True)
class MenuAction:
    """Main menu button (upload_document / get_documents / explore_folders)."""
    action: str


@dataclass(frozen=True)
class FolderChoice:
    """Folder chooser button (folder_default / folder_existing / folder_new)."""
    choice: str


@dataclass(frozen=True)
class SavedFolderPick:
    folder_id: str


@dataclass(frozen=True)
class DocumentPick:
    document_id: str


@dataclass(frozen=True)
class PageNavigation:
    page: int


@dataclass(frozen=True)
class UnknownReply:
    raw_id: str


Reply = Union[MenuAction, FolderChoice, SavedFolderPick, DocumentPick, PageNavigation, UnknownReply]


@dataclass(frozen=True)
class InboundEvent:
    message_id: Optional[str]
    phone_number: str
    kind: EventKind
    text: Optional[str] = None
    media: Optional[MediaItem] = None
    reply: Optional[Reply] = None


def decode_reply_id(raw_id) -> Reply:
    """Decode an interactive reply id into its reply object"""
    raw_id = raw_id or ''
    if raw_id in (UPLOAD_DOCUMENT_ID, GET_DOCUMENTS_ID, EXPLORE_FOLDERS_ID):
        return MenuAction(raw_id)
    if raw_id in (FOLDER_DEFAULT_ID, FOLDER_EXISTING_ID, FOLDER_NEW_ID):
        return FolderChoice(raw_id)
    if raw_id.startswith(FOLDER_SAVED_PREFIX):
        return SavedFolderPick(unquote(raw_id[len(FOLDER_SAVED_PREFIX):]))
    if raw_id.startswith(DOCUMENT_META_PREFIX):
        return DocumentPick(unquote(raw_id[len(DOCUMENT_META_PREFIX):]))
    for prefix in (DOC_NAV_NEXT_PREFIX, DOC_NAV_BACK_PREFIX):
        if raw_id.startswith(prefix):
            page = raw_id[len(prefix):]
            if page.isdigit():
                return PageNavigation(int(page))
    return UnknownReply(raw_id)


def _first_message(value):
    messages = value.get('messages') if isinstance(value, dict) else None
    if not messages or not isinstance(messages, list):
        return None
    return messages[0] if isinstance(messages[0], dict) else None


def extract_change_value(payload) -> Optional[Dict[str, Any]]:
    """Get ``entry[0].changes[0].value`` from a webhook payload"""
    if not isinstance(payload, dict):
        return None
    entries = payload.get('entry') or []
    if not entries or not isinstance(entries[0], dict):
        return None
    changes = entries[0].get('changes') or []
    if not changes or not isinstance(changes[0], dict):
        return None
    value = changes[0].get('value')
    return value if isinstance(value, dict) else None


def parse_webhook_payload(payload, now=None) -> Optional[InboundEvent]:
    """
    Decode the first message of a webhook delivery.

    Args:
        payload: Parsed JSON body of the webhook request
        now: Epoch seconds used for default media file names

    Returns:
        InboundEvent or None for deliveries without a message (status
        receipts, empty message lists, unrelated payloads)
    """
    value = extract_change_value(payload)
    if value is None or value.get('statuses'):
        return None

    message = _first_message(value)
    if message is None or not message.get('from'):
        return None

    message_id = message.get('id')
    phone_number = str(message['from'])
    message_type = message.get('type')
    millis = int((now if now is not None else time.time()) * 1000)

    if message_type == 'text':
        body = (message.get('text') or {}).get('body') or ''
        return InboundEvent(message_id, phone_number, EventKind.TEXT, text=str(body).strip())

    if message_type == 'image':
        image = message.get('image') or {}
        media = MediaItem(
            media_id=image.get('id'),
            file_name=image.get('filename') or f"image_{millis}.jpg",
            mime_type=image.get('mime_type') or 'image/jpeg'
        )
        return InboundEvent(message_id, phone_number, EventKind.IMAGE, media=media)

    if message_type == 'document':
        document = message.get('document') or {}
        media = MediaItem(
            media_id=document.get('id'),
            file_name=document.get('filename') or f"document_{millis}",
            mime_type=document.get('mime_type') or 'application/octet-stream'
        )
        return InboundEvent(message_id, phone_number, EventKind.DOCUMENT, media=media)

    if message_type == 'interactive':
        interactive = message.get('interactive') or {}
        reply_type = interactive.get('type')
        reply = interactive.get(reply_type) if reply_type in ('button_reply', 'list_reply') else None
        if isinstance(reply, dict):
            kind = EventKind.BUTTON_REPLY if reply_type == 'button_reply' else EventKind.LIST_REPLY
            return InboundEvent(message_id, phone_number, kind, reply=decode_reply_id(reply.get('id')))

    logger.info(f"Unsupported message type {message_type} from {phone_number}")
    return InboundEvent(message_id, phone_number, EventKind.UNSUPPORTED)


def encode_id_component(value) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def saved_folder_reply_id(folder_id) -> str:
    return f"{FOLDER_SAVED_PREFIX}{encode_id_component(folder_id)}"


def document_reply_id(document_id) -> str:
    return f"{DOCUMENT_META_PREFIX}{encode_id_component(document_id)}"


def next_page_reply_id(page) -> str:
    return f"{DOC_NAV_NEXT_PREFIX}{page}"


def back_page_reply_id(page) -> str:
    return f"{DOC_NAV_BACK_PREFIX}{page}"
