"""
Folder Directory
----------------
Knows which Drive folders a user has saved documents into, keeps the user's
explicit folder list current, and resolves the default upload folder.

Folders are not stored as rows of their own. They are rebuilt from document
metadata and merged with the explicit list kept on the user record.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import DEFAULT_FOLDER_NAME, LEGACY_DEFAULT_FOLDER_NAMES
from .errors import RepositoryError
from .metadata_parser import capture_timestamp

logger = logging.getLogger(__name__)


@dataclass
class Folder:
    """A Drive folder known to one user."""

    id: str
    name: str
    saved_at: Optional[str] = None
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'savedAt': self.saved_at,
            'isDefault': self.is_default
        }

    @classmethod
    def from_dict(cls, data) -> Optional['Folder']:
        """Build a Folder from a stored dict; None unless both id and name are present."""
        if not isinstance(data, dict) or not data.get('id') or not data.get('name'):
            return None
        saved_at = data.get('savedAt') or data.get('createdAt')
        return cls(
            id=str(data['id']),
            name=str(data['name']),
            saved_at=str(saved_at) if saved_at else None,
            is_default=bool(data.get('isDefault'))
        )


def folder_reference(metadata) -> Optional[Dict[str, Any]]:
    """
    Read the folder a document belongs to from its metadata.

    Three shapes are in use: a nested ``folder`` object, flat
    ``folderId``/``folderName`` keys, and snake_case ``folder_id``/``folder_name``.

    Args:
        metadata: Document metadata dict

    Returns:
        dict: The nested-shape folder dict (``id``, ``name`` and any extra keys
        stored with it), or None when no complete reference exists
    """
    if not isinstance(metadata, dict):
        return None

    nested = metadata.get('folder')
    if isinstance(nested, dict) and nested.get('id') and nested.get('name'):
        return dict(nested)

    folder_id = metadata.get('folderId') or metadata.get('folder_id')
    folder_name = metadata.get('folderName') or metadata.get('folder_name')
    if folder_id and folder_name:
        return {'id': folder_id, 'name': folder_name}
    return None


def with_folder_backfill(document: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a legacy flat/snake folder reference into the nested ``folder`` key."""
    metadata = document.get('metadata')
    if isinstance(metadata, dict) and not metadata.get('folder'):
        reference = folder_reference(metadata)
        if reference:
            document = dict(document, metadata=dict(metadata, folder=reference))
    return document


def is_default_folder_name(name) -> bool:
    known = {legacy.lower() for legacy in LEGACY_DEFAULT_FOLDER_NAMES}
    known.add(DEFAULT_FOLDER_NAME.lower())
    return (name or '').lower() in known


async def find_remote_folder(drive, name) -> Optional[Dict[str, Any]]:
    """
    Look a folder up in Drive by name.

    An exact-name match wins. Otherwise folders whose names contain the value
    are searched for a case-insensitive equal name, falling back to the first
    of them.
    """
    exact = await drive.list_folders_by_name(name)
    if exact:
        return exact[0]

    candidates = await drive.list_folders_by_name(name, contains=True)
    for candidate in candidates:
        if (candidate.get('name') or '').lower() == name.lower():
            return candidate
    return candidates[0] if candidates else None


class FolderDirectory:
    """
    Lists, persists and resolves a user's folders.

    This class is responsible for:
    1. Deriving the folder list from stored documents and the explicit list
    2. Upserting folders into the explicit list
    3. Finding or creating the default upload folder in Drive
    """

    def __init__(self, repository, drive_factory):
        """
        Args:
            repository: Repository for users and documents
            drive_factory: DriveClientFactory handing out per-user Drive clients
        """
        self.repository = repository
        self.drive_factory = drive_factory

    def list_folders(self, phone_number) -> List[Folder]:
        """
        Get the folders a user has saved documents into.

        Folders referenced by documents come first, oldest reference first,
        followed by explicitly saved folders not referenced by any document.
        """
        folders: Dict[str, Folder] = {}
        for document in self.repository.list_documents_with_folders(phone_number):
            reference = folder_reference(document['metadata'])
            if not reference or reference['id'] in folders:
                continue
            if not reference.get('savedAt') and not reference.get('createdAt') and document.get('created_at'):
                reference['savedAt'] = document['created_at'].isoformat()
            folder = Folder.from_dict(reference)
            if folder:
                folders[folder.id] = folder

        for saved in self.repository.get_saved_folders(phone_number):
            folder = Folder.from_dict(saved)
            if folder and folder.id not in folders:
                folders[folder.id] = folder

        return list(folders.values())

    def persist_folder(self, phone_number, folder: Folder) -> Folder:
        """Upsert a folder into the user's explicit folder list by id"""
        if not folder.saved_at:
            folder = Folder(folder.id, folder.name, capture_timestamp(), folder.is_default)

        saved = [f for f in (Folder.from_dict(d) for d in self.repository.get_saved_folders(phone_number)) if f]
        for index, existing in enumerate(saved):
            if existing.id == folder.id:
                saved[index] = folder
                break
        else:
            saved.append(folder)

        self.repository.save_folders(phone_number, [f.to_dict() for f in saved])
        logger.info(f"Saved folder '{folder.name}' ({folder.id}) for {phone_number}")
        return folder

    async def ensure_default_folder(self, phone_number) -> Folder:
        """
        Resolve the user's default upload folder, creating it in Drive if needed.

        Returns:
            Folder: The default folder

        Raises:
            RepositoryError: If the user does not exist or cannot be updated
            DriveUnavailableError: If Drive cannot be searched or written
        """
        user = self.repository.get_user(phone_number)
        if user is None:
            raise RepositoryError(f"User {phone_number} not found while ensuring default folder")

        folder_id = user.default_folder_id
        folder_name = DEFAULT_FOLDER_NAME

        if not folder_id:
            drive = await self.drive_factory.for_phone(phone_number)
            existing = None
            for candidate_name in LEGACY_DEFAULT_FOLDER_NAMES:
                match = await find_remote_folder(drive, candidate_name)
                if match and is_default_folder_name(match.get('name')):
                    existing = match
                    break

            if existing is None:
                existing = await drive.create_folder(DEFAULT_FOLDER_NAME)
                logger.info(f"📁 Created default folder for {phone_number}")

            folder_id = existing['id']
            folder_name = existing.get('name') or folder_name
        else:
            for saved in user.folders or []:
                if isinstance(saved, dict) and saved.get('id') == folder_id and saved.get('name'):
                    folder_name = saved['name']
                    break

        self.repository.set_default_folder(phone_number, folder_id)

        default_folder = Folder(folder_id, folder_name, is_default=True)
        try:
            default_folder = self.persist_folder(phone_number, default_folder)
        except RepositoryError as e:
            logger.warning(f"Unable to persist default folder for {phone_number}: {str(e)}")

        return default_folder

    async def find_folder_by_name(self, phone_number, name) -> Optional[Folder]:
        """Find a folder in the user's Drive by name (exact, then contains)"""
        drive = await self.drive_factory.for_phone(phone_number)
        match = await find_remote_folder(drive, name)
        if not match:
            return None
        return Folder(str(match['id']), match.get('name') or name)

    async def find_or_create_folder(self, phone_number, name) -> Folder:
        """
        Reuse a Drive folder whose name equals ``name`` case-insensitively,
        otherwise create one.
        """
        drive = await self.drive_factory.for_phone(phone_number)
        match = await find_remote_folder(drive, name)
        if not match or (match.get('name') or '').lower() != name.lower():
            match = await drive.create_folder(name)
        return Folder(str(match['id']), match.get('name') or name)
