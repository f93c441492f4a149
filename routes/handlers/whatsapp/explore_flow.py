"""
Explore Flow
------------
Lets a user browse their folders, page through the documents in one, and open
a document's details and Drive link.
"""

import logging

from models.document_retriever import document_details, drive_link, format_document_message
from models.errors import CapabilityError
from models.session_store import DocumentSelectionState, FolderExplorationState
from routes.handlers.whatsapp_constants import (
    EMPTY_FOLDER_MESSAGE,
    EXPLORE_DOCUMENT_NOT_FOUND_MESSAGE,
    EXPLORE_FAILED_MESSAGE,
    EXPLORE_FOLDER_NOT_FOUND_MESSAGE,
    EXPLORE_SESSION_EXPIRED_MESSAGE,
    NO_FOLDERS_MESSAGE,
)

logger = logging.getLogger(__name__)


class ExploreFlow:
    """
    Folder browsing for the Explore button.

    This class is responsible for:
    1. Presenting the user's folders
    2. Listing a folder's documents one page at a time
    3. Showing the details of a picked document
    """

    def __init__(self, sessions, folders, retriever, sender, prompts):
        self.sessions = sessions
        self.folders = folders
        self.retriever = retriever
        self.sender = sender
        self.prompts = prompts

    async def start(self, phone_number):
        """Present the folder chooser; no exploration state when there are no folders"""
        try:
            folders = self.folders.list_folders(phone_number)
        except CapabilityError as e:
            logger.error(f"Error loading folders for {phone_number}: {str(e)}")
            await self.sender.send_text(phone_number, EXPLORE_FAILED_MESSAGE)
            return

        if not folders:
            await self.sender.send_text(phone_number, NO_FOLDERS_MESSAGE)
            return

        self.sessions.set_folder_exploration(phone_number, FolderExplorationState(folders))
        await self.prompts.saved_folders(phone_number, folders)

    async def select_folder(self, phone_number, folder_id):
        """List the documents of the picked folder, first page"""
        state = self.sessions.get_folder_exploration(phone_number)
        try:
            folders = state.folders if state is not None else self.folders.list_folders(phone_number)
            selected = next((folder for folder in folders if folder.id == folder_id), None)
            if selected is None:
                self.sessions.clear_folder_exploration(phone_number)
                await self.sender.send_text(phone_number, EXPLORE_FOLDER_NOT_FOUND_MESSAGE)
                return

            documents, total_count = self.retriever.list_by_folder(phone_number, selected.id)
        except CapabilityError as e:
            logger.error(f"Error listing folder {folder_id} for {phone_number}: {str(e)}")
            self.sessions.clear_folder_exploration(phone_number)
            await self.sender.send_text(phone_number, EXPLORE_FAILED_MESSAGE)
            return

        self.sessions.clear_folder_exploration(phone_number)

        if not documents:
            await self.sender.send_text(phone_number, EMPTY_FOLDER_MESSAGE.format(name=selected.name))
            return

        self.sessions.set_document_selection(
            phone_number, DocumentSelectionState(selected, documents, 0, total_count)
        )
        await self.prompts.document_page(phone_number, selected, documents, 0)

    async def navigate(self, phone_number, page):
        """Render another page of the cached listing"""
        state = self.sessions.get_document_selection(phone_number)
        if state is None:
            await self.sender.send_text(phone_number, EXPLORE_SESSION_EXPIRED_MESSAGE)
            return

        rendered = await self.prompts.document_page(phone_number, state.folder, state.documents, page)
        state.current_page = rendered.page
        self.sessions.set_document_selection(phone_number, state)

    async def select_document(self, phone_number, document_id):
        """Show a picked document's details and Drive link"""
        state = self.sessions.get_document_selection(phone_number)
        document = None
        if state is not None:
            document = next((doc for doc in state.documents if str(doc['id']) == document_id), None)

        self.sessions.clear_document_selection(phone_number)
        if document is None:
            await self.sender.send_text(phone_number, EXPLORE_DOCUMENT_NOT_FOUND_MESSAGE)
            return

        message = format_document_message(state.folder.name, document_details(document), drive_link(document))
        await self.sender.send_text(phone_number, message)
        await self.prompts.main_menu(phone_number)
