"""
WhatsApp Handler - Main Coordinator
----------------------------------
This module contains the WhatsAppHandler class, the conversation engine of the
bot. It decodes each webhook delivery, drops duplicates, and routes the event
to the upload, folder, search and explore flows based on the user's session.
"""

import logging
from typing import Any, Optional, Tuple

from models.account_gate import AccountGate, AccountStatus
from models.docs.drive_service import DriveClientFactory
from models.document_retriever import DocumentRetriever, format_document_message
from models.errors import CapabilityError, RepositoryError
from models.folder_directory import FolderDirectory
from models.metadata_parser import parse_metadata
from models.session_store import AWAITING_SELECTION, FolderSelectionState, PendingUpload, SessionStore
from routes.handlers.whatsapp_constants import (
    DOCUMENT_NOT_FOUND_MESSAGE,
    DOCUMENT_RECEIVED_MESSAGE,
    EXPLORE_FOLDERS_ID,
    GENERIC_ERROR_MESSAGE,
    GET_DOCUMENTS_ID,
    IMAGE_RECEIVED_MESSAGE,
    SEARCH_FAILED_MESSAGE,
    SEARCH_PROMPT_MESSAGE,
    UPLOAD_DOCUMENT_ID,
    UPLOAD_IN_PROGRESS_MESSAGE,
    UPLOAD_PROMPT_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
)
from .document.downloader import MediaDownloader
from .events import (
    DocumentPick,
    EventKind,
    FolderChoice,
    InboundEvent,
    MenuAction,
    PageNavigation,
    SavedFolderPick,
    parse_webhook_payload,
)
from .explore_flow import ExploreFlow
from .folder_flow import FolderSelectionFlow
from .prompts import Prompts
from .upload_finalizer import UploadFinalizer

logger = logging.getLogger(__name__)


class WhatsAppHandlerError(Exception):
    """Raised when a webhook delivery cannot be handled at all."""
    pass


class WhatsAppHandler:
    """
    Main handler for WhatsApp interactions.

    This class owns every conversation state transition. Session changes for
    one phone number happen under that number's lock, and no exception from a
    flow escapes to the webhook response.
    """

    def __init__(self, repository, sender, deduplication, sessions=None,
                 drive_factory=None, downloader=None):
        """
        Initialize the WhatsApp handler with necessary dependencies.

        Args:
            repository: Repository for users and documents
            sender: MessageSender used for every reply
            deduplication: Object with ``seen(message_id) -> bool``
            sessions: SessionStore (a fresh one by default)
            drive_factory: DriveClientFactory (built on the repository by default)
            downloader: MediaDownloader (configured from the environment by default)
        """
        self.repository = repository
        self.sender = sender
        self.deduplication = deduplication
        self.sessions = sessions or SessionStore()
        self.prompts = Prompts(sender)
        self.gate = AccountGate(repository)

        drive_factory = drive_factory or DriveClientFactory(repository)
        self.folders = FolderDirectory(repository, drive_factory)
        self.retriever = DocumentRetriever(repository)
        self.finalizer = UploadFinalizer(
            repository, self.sessions, downloader or MediaDownloader(), drive_factory, sender, self.prompts
        )
        self.folder_flow = FolderSelectionFlow(self.sessions, self.folders, self.finalizer, sender, self.prompts)
        self.explore_flow = ExploreFlow(self.sessions, self.folders, self.retriever, sender, self.prompts)

    async def handle_incoming_message(self, data: Any) -> Tuple[str, int]:
        """
        Process an incoming WhatsApp webhook delivery.

        This is the main entry point for handling webhook events from WhatsApp.

        Args:
            data: The parsed webhook payload

        Returns:
            tuple: (response_message, status_code)
        """
        event = parse_webhook_payload(data)
        if event is None:
            return "OK", 200

        if event.message_id and self.deduplication.seen(event.message_id):
            return "Duplicate", 200

        logger.info(f"📩 {event.kind.value} message {event.message_id} from {event.phone_number}")

        async with self.sessions.locked(event.phone_number):
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.exception(f"Unhandled error processing message {event.message_id}: {str(e)}")
                await self.sender.send_text(event.phone_number, GENERIC_ERROR_MESSAGE)

        return "OK", 200

    async def dispatch(self, event: InboundEvent):
        if event.kind in (EventKind.IMAGE, EventKind.DOCUMENT):
            await self.handle_media(event)
        elif event.kind in (EventKind.BUTTON_REPLY, EventKind.LIST_REPLY):
            await self.handle_reply(event)
        elif event.kind == EventKind.TEXT:
            await self.handle_text(event.phone_number, event.text or "")

    async def passes_gate(self, phone_number) -> bool:
        """Check the account status, telling the user why when it fails"""
        status = self.gate.check_status(phone_number)
        if status == AccountStatus.ACTIVE:
            return True
        logger.info(f"Account gate refused {phone_number}: {status.value}")
        await self.sender.send_text(phone_number, self.gate.message_for(status))
        return False

    # ---------- Media ----------

    async def handle_media(self, event: InboundEvent):
        """Start a pending upload, unless one is already waiting"""
        phone_number = event.phone_number
        upload = PendingUpload(
            media_id=event.media.media_id,
            kind=event.kind.value,
            file_name=event.media.file_name,
            mime_type=event.media.mime_type
        )

        if not self.sessions.create_pending_upload(phone_number, upload):
            await self.sender.send_text(phone_number, UPLOAD_IN_PROGRESS_MESSAGE)
            return

        logger.info(f"Pending {upload.kind} '{upload.file_name}' for {phone_number}")
        message = IMAGE_RECEIVED_MESSAGE if event.kind == EventKind.IMAGE else DOCUMENT_RECEIVED_MESSAGE
        await self.sender.send_text(phone_number, message)

    # ---------- Interactive replies ----------

    async def handle_reply(self, event: InboundEvent):
        phone_number = event.phone_number
        reply = event.reply

        if isinstance(reply, FolderChoice):
            await self.folder_flow.handle_choice(phone_number, reply.choice)
        elif isinstance(reply, SavedFolderPick):
            if event.kind == EventKind.LIST_REPLY and self.sessions.get_folder_exploration(phone_number) is None:
                await self.folder_flow.select_saved_folder(phone_number, reply.folder_id)
            else:
                await self.explore_flow.select_folder(phone_number, reply.folder_id)
        elif isinstance(reply, DocumentPick):
            await self.explore_flow.select_document(phone_number, reply.document_id)
        elif isinstance(reply, PageNavigation):
            await self.explore_flow.navigate(phone_number, reply.page)
        elif isinstance(reply, MenuAction):
            await self.handle_menu_action(phone_number, reply.action)
        else:
            logger.info(f"Ignoring unrecognized reply {reply} from {phone_number}")

    async def handle_menu_action(self, phone_number, action):
        if action == EXPLORE_FOLDERS_ID:
            self.sessions.clear_folder_exploration(phone_number)
            self.sessions.clear_document_selection(phone_number)
            if await self.passes_gate(phone_number):
                await self.explore_flow.start(phone_number)
        elif action == UPLOAD_DOCUMENT_ID:
            if await self.passes_gate(phone_number):
                await self.sender.send_text(phone_number, UPLOAD_PROMPT_MESSAGE)
        elif action == GET_DOCUMENTS_ID:
            if await self.passes_gate(phone_number):
                self.sessions.start_search(phone_number)
                await self.sender.send_text(phone_number, SEARCH_PROMPT_MESSAGE)

    # ---------- Text ----------

    async def handle_text(self, phone_number, text):
        """
        Handle a text message.

        In priority order the text answers the current folder stage, becomes
        the metadata of a pending upload, or is used as a search query.
        """
        if not await self.passes_gate(phone_number):
            return

        selection = self.sessions.get_folder_selection(phone_number)
        if selection is not None:
            await self.folder_flow.handle_text(phone_number, text, selection)
            return

        pending = self.sessions.get_pending_upload(phone_number)
        if pending is not None:
            await self.capture_metadata(phone_number, pending, text)
            return

        await self.search(phone_number, text)

    async def capture_metadata(self, phone_number, pending: PendingUpload, text):
        if pending.metadata is None:
            pending.metadata = parse_metadata(text)
            self.sessions.set_pending_upload(phone_number, pending)

        user_id: Optional[int] = None
        try:
            user_id = self.repository.get_user_id(phone_number)
        except RepositoryError as e:
            logger.error(f"Error fetching user during upload for {phone_number}: {str(e)}")

        if user_id is None:
            self.sessions.clear_pending_upload(phone_number)
            await self.sender.send_text(phone_number, USER_NOT_FOUND_MESSAGE)
            await self.prompts.main_menu(phone_number)
            return

        if pending.target_folder is not None and pending.target_folder.id:
            await self.finalizer.finalize(phone_number)
            return

        self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_SELECTION))
        await self.prompts.folder_chooser(phone_number)

    async def search(self, phone_number, query):
        source = "prompted" if self.sessions.is_searching(phone_number) else "free text"
        self.sessions.stop_search(phone_number)
        logger.info(f"🔎 Search ({source}) for '{query}' from {phone_number}")
        try:
            result = self.retriever.search(phone_number, query)
        except CapabilityError as e:
            logger.error(f"Error searching documents for {phone_number}: {str(e)}")
            await self.sender.send_text(phone_number, SEARCH_FAILED_MESSAGE)
            await self.prompts.main_menu(phone_number)
            return

        if result is None:
            await self.sender.send_text(phone_number, DOCUMENT_NOT_FOUND_MESSAGE)
        else:
            await self.sender.send_text(
                phone_number,
                format_document_message(result['folder'], result['description'], result['link'])
            )
        await self.prompts.main_menu(phone_number)
