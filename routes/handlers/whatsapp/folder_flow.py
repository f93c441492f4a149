"""
Folder Selection Flow
---------------------
Walks a user with a pending upload through choosing the Drive folder it goes
into: the default folder, one of their saved folders, or a new one.
"""

import logging

from models.errors import CapabilityError
from models.folder_directory import Folder
from models.session_store import (
    AWAITING_EXISTING_SELECTION,
    AWAITING_NEW_NAME,
    AWAITING_SELECTION,
    FolderSelectionState,
)
from routes.handlers.whatsapp_constants import (
    CHOOSE_FOLDER_OPTION_MESSAGE,
    DEFAULT_FOLDER_FAILED_MESSAGE,
    EMPTY_FOLDER_CHOICE_MESSAGE,
    EMPTY_FOLDER_NAME_MESSAGE,
    EXISTING_FOLDER_FAILED_MESSAGE,
    FOLDER_DEFAULT_ID,
    FOLDER_EXISTING_ID,
    FOLDER_NAME_NOT_FOUND_MESSAGE,
    FOLDER_NEW_ID,
    FOLDER_NOT_FOUND_MESSAGE,
    FOLDER_SELECTED_MESSAGE,
    NEW_FOLDER_FAILED_MESSAGE,
    NEW_FOLDER_NAME_PROMPT,
    NO_SAVED_FOLDERS_FOR_UPLOAD_MESSAGE,
    NOTHING_PENDING_MESSAGE,
)

logger = logging.getLogger(__name__)


class FolderSelectionFlow:
    """
    Handles folder chooser buttons and the replies to each folder stage.

    Any capability failure while resolving a folder puts the user back at the
    top-level chooser. The pending upload itself is kept so they can retry.
    """

    def __init__(self, sessions, folders, finalizer, sender, prompts):
        """
        Args:
            sessions: SessionStore
            folders: FolderDirectory
            finalizer: UploadFinalizer run once a folder is committed
            sender: MessageSender
            prompts: Prompts
        """
        self.sessions = sessions
        self.folders = folders
        self.finalizer = finalizer
        self.sender = sender
        self.prompts = prompts

    async def _nothing_pending(self, phone_number) -> bool:
        if self.sessions.get_pending_upload(phone_number) is not None:
            return False
        self.sessions.clear_folder_selection(phone_number)
        await self.sender.send_text(phone_number, NOTHING_PENDING_MESSAGE)
        return True

    async def _revert(self, phone_number, message):
        """Back to the top-level chooser after a failed step"""
        self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_SELECTION))
        await self.sender.send_text(phone_number, message)
        await self.prompts.folder_chooser(phone_number)

    async def _commit(self, phone_number, folder: Folder, suffix=""):
        """Attach the folder to the pending upload and save it"""
        pending = self.sessions.get_pending_upload(phone_number)
        if pending is None:
            await self._nothing_pending(phone_number)
            return
        pending.target_folder = Folder(folder.id, folder.name or "Selected Folder")
        self.sessions.set_pending_upload(phone_number, pending)
        self.sessions.clear_folder_selection(phone_number)

        logger.info(f"Folder '{folder.name}' ({folder.id}) selected by {phone_number}")
        await self.sender.send_text(phone_number, FOLDER_SELECTED_MESSAGE.format(name=folder.name, suffix=suffix))
        await self.finalizer.finalize(phone_number)

    # ---------- Buttons ----------

    async def handle_choice(self, phone_number, choice):
        """
        Handle folder_default / folder_existing / folder_new.

        Args:
            phone_number: The user's phone number
            choice: The button id
        """
        if await self._nothing_pending(phone_number):
            return

        if choice == FOLDER_DEFAULT_ID:
            await self._use_default_folder(phone_number)
        elif choice == FOLDER_EXISTING_ID:
            await self._offer_saved_folders(phone_number)
        elif choice == FOLDER_NEW_ID:
            self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_NEW_NAME))
            await self.sender.send_text(phone_number, NEW_FOLDER_NAME_PROMPT)

    async def _use_default_folder(self, phone_number):
        try:
            folder = await self.folders.ensure_default_folder(phone_number)
        except CapabilityError as e:
            logger.error(f"Error selecting default folder for {phone_number}: {str(e)}")
            await self._revert(phone_number, DEFAULT_FOLDER_FAILED_MESSAGE)
            return

        await self._commit(phone_number, folder, " (default folder)")

    async def _offer_saved_folders(self, phone_number):
        try:
            saved_folders = self.folders.list_folders(phone_number)
        except CapabilityError as e:
            logger.error(f"Error loading saved folders for {phone_number}: {str(e)}")
            await self._revert(phone_number, EXISTING_FOLDER_FAILED_MESSAGE)
            return

        if not saved_folders:
            await self._revert(phone_number, NO_SAVED_FOLDERS_FOR_UPLOAD_MESSAGE)
            return

        self.sessions.set_folder_selection(
            phone_number, FolderSelectionState(AWAITING_EXISTING_SELECTION, saved_folders)
        )
        await self.prompts.saved_folders(phone_number, saved_folders)

    async def select_saved_folder(self, phone_number, folder_id):
        """Handle a folder_saved_<id> pick made while choosing an upload folder"""
        if await self._nothing_pending(phone_number):
            return

        state = self.sessions.get_folder_selection(phone_number)
        try:
            saved_folders = self._snapshot(phone_number, state)
        except CapabilityError as e:
            logger.error(f"Error loading saved folders for {phone_number}: {str(e)}")
            await self._revert(phone_number, EXISTING_FOLDER_FAILED_MESSAGE)
            return

        selected = next((folder for folder in saved_folders if folder.id == folder_id), None)
        if selected is None:
            await self.sender.send_text(phone_number, FOLDER_NOT_FOUND_MESSAGE)
            if saved_folders:
                self.sessions.set_folder_selection(
                    phone_number, FolderSelectionState(AWAITING_EXISTING_SELECTION, saved_folders)
                )
                await self.prompts.saved_folders(phone_number, saved_folders)
            else:
                self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_SELECTION))
                await self.prompts.folder_chooser(phone_number)
            return

        await self._commit(phone_number, selected)

    def _snapshot(self, phone_number, state):
        if state is not None and state.folders is not None:
            return state.folders
        return self.folders.list_folders(phone_number)

    # ---------- Text replies ----------

    async def handle_text(self, phone_number, text, state: FolderSelectionState):
        """Dispatch a text reply by the current folder stage"""
        if state.stage == AWAITING_EXISTING_SELECTION:
            await self._existing_folder_by_text(phone_number, text, state)
        elif state.stage == AWAITING_NEW_NAME:
            await self._new_folder_by_name(phone_number, text)
        else:
            await self.sender.send_text(phone_number, CHOOSE_FOLDER_OPTION_MESSAGE)

    async def _existing_folder_by_text(self, phone_number, text, state):
        """Resolve a typed list number or folder name, falling back to a Drive lookup"""
        if await self._nothing_pending(phone_number):
            return

        folder_name = text.strip()
        if not folder_name:
            await self.sender.send_text(phone_number, EMPTY_FOLDER_CHOICE_MESSAGE)
            return

        try:
            saved_folders = self._snapshot(phone_number, state)
            selected = None
            if folder_name.isdigit() and 1 <= int(folder_name) <= len(saved_folders):
                selected = saved_folders[int(folder_name) - 1]
            else:
                selected = next(
                    (folder for folder in saved_folders if folder.name.lower() == folder_name.lower()),
                    None
                )

            if selected is None:
                selected = await self.folders.find_folder_by_name(phone_number, folder_name)
                if selected is None:
                    await self.sender.send_text(phone_number, FOLDER_NAME_NOT_FOUND_MESSAGE)
                    if saved_folders:
                        self.sessions.set_folder_selection(
                            phone_number, FolderSelectionState(AWAITING_EXISTING_SELECTION, saved_folders)
                        )
                    else:
                        self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_SELECTION))
                        await self.prompts.folder_chooser(phone_number)
                    return
                selected = self.folders.persist_folder(phone_number, selected)
        except CapabilityError as e:
            logger.error(f"Error handling existing folder selection for {phone_number}: {str(e)}")
            await self._revert(phone_number, EXISTING_FOLDER_FAILED_MESSAGE)
            return

        await self._commit(phone_number, selected)

    async def _new_folder_by_name(self, phone_number, text):
        if await self._nothing_pending(phone_number):
            return

        folder_name = text.strip()
        if not folder_name:
            await self.sender.send_text(phone_number, EMPTY_FOLDER_NAME_MESSAGE)
            return

        try:
            folder = await self.folders.find_or_create_folder(phone_number, folder_name)
            folder = self.folders.persist_folder(phone_number, folder)
        except CapabilityError as e:
            logger.error(f"Error creating new folder for {phone_number}: {str(e)}")
            await self._revert(phone_number, NEW_FOLDER_FAILED_MESSAGE)
            return

        await self._commit(phone_number, folder, " (new)")
