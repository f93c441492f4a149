"""
Google Drive Service
--------------------
Per-user Drive access for the intake bot: folder lookup and creation, and file
uploads into a chosen folder.

Credentials come from the tokens stored on the user's row. Expired access
tokens are refreshed and written back before the client is handed out.
"""

import asyncio
import logging

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_TOKEN_URI, SCOPES
from ..errors import DriveUnavailableError

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'


def escape_query_value(value):
    """Escape a value for use inside a single-quoted Drive query string"""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def view_link_for(file_id):
    return f"https://drive.google.com/file/d/{file_id}/view"


class DriveClient:
    """
    Authenticated Drive operations for one user.

    The googleapiclient calls are blocking, so each one runs in a worker
    thread. Any failure of a call, including socket and httplib2 transport
    errors, surfaces as DriveUnavailableError.
    """

    def __init__(self, service):
        self.service = service

    async def _execute(self, request_factory, action):
        try:
            return await asyncio.to_thread(lambda: request_factory().execute())
        except HttpError as e:
            logger.error(f"Drive {action} failed with HTTP {e.resp.status}: {str(e)}")
            raise DriveUnavailableError(f"Drive {action} failed: {str(e)}") from e
        except Exception as e:
            logger.error(f"Drive {action} failed: {type(e).__name__} {str(e)}")
            raise DriveUnavailableError(f"Drive {action} failed: {type(e).__name__}") from e

    async def list_folders_by_name(self, name, contains=False):
        """
        List non-trashed folders by name.

        Args:
            name: Folder name to look for
            contains: Match names containing the value instead of equal to it

        Returns:
            list: Folder dicts with 'id' and 'name'
        """
        operator = 'contains' if contains else '='
        query = (
            f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false "
            f"and name {operator} '{escape_query_value(name)}'"
        )
        results = await self._execute(
            lambda: self.service.files().list(
                q=query,
                spaces='drive',
                fields='files(id, name)',
                pageSize=10 if contains else 5
            ),
            'folder lookup'
        )
        return results.get('files', [])

    async def create_folder(self, name):
        """Create a folder at the root of the user's Drive"""
        folder_metadata = {
            'name': name,
            'mimeType': FOLDER_MIME_TYPE
        }
        folder = await self._execute(
            lambda: self.service.files().create(body=folder_metadata, fields='id, name'),
            'folder creation'
        )
        logger.info(f"Created Drive folder '{name}' ({folder.get('id')})")
        return {'id': folder['id'], 'name': folder.get('name') or name}

    async def upload_file(self, folder_id, stream, name, mime_type):
        """
        Upload a file into a folder.

        Args:
            folder_id: Target Drive folder id
            stream: Binary file-like object with the content
            name: File name in Drive
            mime_type: Content type of the file

        Returns:
            dict: {'id': ..., 'view_link': ...}
        """
        file_metadata = {
            'name': name,
            'parents': [folder_id]
        }
        media = MediaIoBaseUpload(stream, mimetype=mime_type or 'application/octet-stream', resumable=True)
        uploaded = await self._execute(
            lambda: self.service.files().create(
                body=file_metadata,
                media_body=media,
                fields='id, webViewLink',
                supportsAllDrives=True
            ),
            'upload'
        )
        file_id = uploaded['id']
        logger.info(f"Uploaded '{name}' to Drive folder {folder_id} as {file_id}")
        return {
            'id': file_id,
            'view_link': uploaded.get('webViewLink') or view_link_for(file_id)
        }


class DriveClientFactory:
    """Builds a DriveClient from the tokens stored for a phone number."""

    def __init__(self, repository, service_builder=None):
        """
        Args:
            repository: Repository used to read and update the user's tokens
            service_builder: Callable(credentials) returning a Drive service
        """
        self.repository = repository
        self.service_builder = service_builder or (
            lambda credentials: build('drive', 'v3', credentials=credentials, cache_discovery=False)
        )

    async def for_phone(self, phone_number):
        user = self.repository.get_user(phone_number)
        if user is None or not user.access_token:
            raise DriveUnavailableError(f"No Drive credentials stored for {phone_number}")

        credentials = Credentials(
            token=user.access_token,
            refresh_token=user.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=GOOGLE_CLIENT_ID,
            client_secret=GOOGLE_CLIENT_SECRET,
            scopes=user.scope.split() if user.scope else SCOPES
        )
        credentials.expiry = user.expiry_date

        if credentials.expired and credentials.refresh_token:
            try:
                await asyncio.to_thread(credentials.refresh, Request())
            except GoogleAuthError as e:
                logger.error(f"Token refresh failed for {phone_number}: {str(e)}")
                raise DriveUnavailableError(f"Token refresh failed: {str(e)}") from e
            self.repository.update_tokens(
                phone_number,
                credentials.token,
                expiry_date=credentials.expiry,
                refresh_token=credentials.refresh_token
            )
            logger.info(f"🔄 Refreshed Drive token for {phone_number}")

        return DriveClient(self.service_builder(credentials))
