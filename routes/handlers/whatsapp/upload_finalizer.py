"""
Upload Finalizer
----------------
Saves a completed pending upload: fetches the media from WhatsApp, uploads it
to the chosen Drive folder and stores the document record.
"""

import logging

from models.errors import CapabilityError
from models.metadata_parser import capture_timestamp
from models.session_store import AWAITING_SELECTION, FolderSelectionState
from routes.handlers.whatsapp_constants import (
    CHOOSE_FOLDER_FIRST_MESSAGE,
    NOTHING_TO_SAVE_MESSAGE,
    UPLOAD_FAILED_MESSAGE,
    UPLOAD_SUCCESS_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
)

logger = logging.getLogger(__name__)


class UploadFinalizer:
    """
    Completes pending uploads.

    This class is responsible for:
    1. Checking the pending upload has metadata and a target folder
    2. Moving the media from WhatsApp into Drive
    3. Recording the document and clearing the upload state

    A failure at any step drops the pending upload; the user starts over.
    """

    def __init__(self, repository, sessions, downloader, drive_factory, sender, prompts):
        self.repository = repository
        self.sessions = sessions
        self.downloader = downloader
        self.drive_factory = drive_factory
        self.sender = sender
        self.prompts = prompts

    async def finalize(self, phone_number) -> bool:
        """
        Save the pending upload for a phone number.

        Returns:
            bool: True if a document was stored
        """
        pending = self.sessions.get_pending_upload(phone_number)
        if pending is None or pending.metadata is None:
            self.sessions.clear_upload_state(phone_number)
            await self.sender.send_text(phone_number, NOTHING_TO_SAVE_MESSAGE)
            return False

        target_folder = pending.target_folder
        if target_folder is None or not target_folder.id:
            logger.warning(f"Pending upload for {phone_number} has no target folder, asking again")
            self.sessions.set_folder_selection(phone_number, FolderSelectionState(AWAITING_SELECTION))
            await self.sender.send_text(phone_number, CHOOSE_FOLDER_FIRST_MESSAGE)
            await self.prompts.folder_chooser(phone_number)
            return False

        try:
            user_id = self.repository.get_user_id(phone_number)
            if user_id is None:
                self.sessions.clear_upload_state(phone_number)
                await self.sender.send_text(phone_number, USER_NOT_FOUND_MESSAGE)
                return False

            stream = await self.downloader.fetch_media(pending.media_id)
            drive = await self.drive_factory.for_phone(phone_number)
            uploaded = await drive.upload_file(target_folder.id, stream, pending.file_name, pending.mime_type)

            metadata = dict(pending.metadata)
            metadata['folder'] = {
                'id': target_folder.id,
                'name': target_folder.name,
                'selectedAt': capture_timestamp()
            }

            self.repository.create_document(
                phone_number=phone_number,
                user_id=user_id,
                file_name=pending.file_name,
                mime_type=pending.mime_type,
                metadata=metadata,
                google_drive_link=uploaded['view_link'],
                google_drive_id=uploaded['id']
            )
        except Exception as e:
            if isinstance(e, CapabilityError):
                logger.error(f"❌ Error saving upload for {phone_number}: {str(e)}")
            else:
                logger.exception(f"❌ Unexpected error saving upload for {phone_number}: {str(e)}")
            self.sessions.clear_upload_state(phone_number)
            await self.sender.send_text(phone_number, UPLOAD_FAILED_MESSAGE)
            await self.prompts.main_menu(phone_number)
            return False

        self.sessions.clear_upload_state(phone_number)
        logger.info(f"✅ Document '{pending.file_name}' saved for {phone_number} in '{target_folder.name}'")
        await self.sender.send_text(phone_number, UPLOAD_SUCCESS_MESSAGE.format(link=uploaded['view_link']))
        await self.prompts.main_menu(phone_number)
        return True
