"""
WhatsApp Prompts
----------------
The interactive messages the bot sends: main menu, folder chooser, saved
folder list and paged document list.
"""

import logging

from models.document_retriever import build_document_page, row_title
from routes.handlers.whatsapp_constants import (
    DOCUMENT_LIST_BODY,
    DOCUMENT_LIST_BUTTON,
    FOLDER_CHOOSER_BODY,
    FOLDER_CHOOSER_BUTTONS,
    MAIN_MENU_BODY,
    MAIN_MENU_BUTTONS,
    NAV_BACK_TITLE,
    NAV_NEXT_TITLE,
    SAVED_FOLDERS_BODY,
    SAVED_FOLDERS_BUTTON,
)
from .events import back_page_reply_id, document_reply_id, next_page_reply_id, saved_folder_reply_id

logger = logging.getLogger(__name__)

ROWS_PER_SECTION = 10


def saved_folder_sections(folders):
    """Split folders into list sections of up to ten rows titled 'Folders i-j'"""
    sections = []
    for start in range(0, len(folders), ROWS_PER_SECTION):
        chunk = folders[start:start + ROWS_PER_SECTION]
        sections.append({
            'title': f"Folders {start + 1}-{start + len(chunk)}",
            'rows': [
                {
                    'id': saved_folder_reply_id(folder.id),
                    'title': folder.name[:24] or f"Folder {start + offset + 1}"
                }
                for offset, folder in enumerate(chunk)
            ]
        })
    return sections


def document_page_section(documents, page):
    """
    Build the single list section for one page of a folder listing.

    The Back row comes first and the Next row last, each carrying the page it
    leads to.

    Returns:
        tuple: (DocumentPage, section dict)
    """
    document_page = build_document_page(documents, page)
    rows = []
    if document_page.back_page is not None:
        rows.append({'id': back_page_reply_id(document_page.back_page), 'title': NAV_BACK_TITLE})
    for offset, document in enumerate(document_page.documents):
        rows.append({
            'id': document_reply_id(document['id']),
            'title': row_title(document, document_page.start_index + offset + 1)
        })
    if document_page.next_page is not None:
        rows.append({'id': next_page_reply_id(document_page.next_page), 'title': NAV_NEXT_TITLE})

    section = {
        'title': f"Page {document_page.page + 1}/{document_page.total_pages}",
        'rows': rows
    }
    return document_page, section


class Prompts:
    """Sends the bot's interactive prompts through a MessageSender."""

    def __init__(self, sender):
        self.sender = sender

    async def main_menu(self, to):
        return await self.sender.send_button_prompt(to, MAIN_MENU_BODY, MAIN_MENU_BUTTONS)

    async def folder_chooser(self, to):
        return await self.sender.send_button_prompt(to, FOLDER_CHOOSER_BODY, FOLDER_CHOOSER_BUTTONS)

    async def saved_folders(self, to, folders):
        """List the user's saved folders as selectable rows"""
        if not folders:
            raise ValueError("No folders provided for the saved folder list")
        return await self.sender.send_list_prompt(
            to, None, SAVED_FOLDERS_BODY, saved_folder_sections(folders), SAVED_FOLDERS_BUTTON
        )

    async def document_page(self, to, folder, documents, page=0):
        """
        Send one page of a folder's documents.

        Returns:
            DocumentPage: The page that was rendered (``page`` clamped into range)
        """
        document_page, section = document_page_section(documents, page)
        logger.info(
            f"Sending page {document_page.page + 1}/{document_page.total_pages} "
            f"of folder '{folder.name}' to {to}"
        )
        await self.sender.send_list_prompt(
            to, folder.name, DOCUMENT_LIST_BODY, [section], DOCUMENT_LIST_BUTTON
        )
        return document_page
