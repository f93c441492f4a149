"""
Repository
----------
Durable storage for users, their explicit folder lists and document records.

Document metadata is a JSON column. A folder reference may live in one of three
legacy shapes (``folder.id``, ``folderId`` or ``folder_id``), so every
folder-scoped query matches all three through JSON path expressions.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from .database import User, UserDocument, get_session_factory
from .errors import RepositoryError

logger = logging.getLogger(__name__)


def _folder_id_columns():
    """JSON expressions for the three places a folder id may be stored."""
    metadata = UserDocument.doc_metadata
    return (
        metadata[("folder", "id")].as_string(),
        metadata["folderId"].as_string(),
        metadata["folder_id"].as_string(),
    )


def document_to_dict(doc: UserDocument) -> Dict[str, Any]:
    return {
        'id': doc.id,
        'phone_number': doc.phone_number,
        'user_id': doc.user_id,
        'file_name': doc.file_name,
        'mime_type': doc.mime_type,
        'metadata': dict(doc.doc_metadata or {}),
        'google_drive_link': doc.google_drive_link,
        'google_drive_id': doc.google_drive_id,
        'created_at': doc.created_at,
    }


class Repository:
    """
    Database access for the conversation core.

    Every public method opens its own session, so each call is one
    transaction. SQLAlchemy failures are re-raised as RepositoryError.
    """

    def __init__(self, session_factory=None):
        """
        Args:
            session_factory: sessionmaker to use (defaults to the process-wide one)
        """
        self._session_factory = session_factory

    @property
    def session_factory(self):
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    # ---------- Users ----------

    def get_user(self, phone_number: str) -> Optional[User]:
        """Get a user by phone number (detached, all columns loaded)"""
        try:
            with self.session_factory() as session:
                user = session.execute(
                    select(User).where(User.phone_number == phone_number)
                ).scalar_one_or_none()
                if user is not None:
                    session.expunge(user)
                return user
        except SQLAlchemyError as e:
            logger.error(f"Error loading user {phone_number}: {str(e)}")
            raise RepositoryError(f"Unable to load user: {str(e)}") from e

    def get_user_id(self, phone_number: str) -> Optional[int]:
        try:
            with self.session_factory() as session:
                return session.execute(
                    select(User.id).where(User.phone_number == phone_number)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error resolving user id for {phone_number}: {str(e)}")
            raise RepositoryError(f"Unable to resolve user: {str(e)}") from e

    def get_saved_folders(self, phone_number: str) -> List[Dict[str, Any]]:
        """Get the user's explicit folder list"""
        user = self.get_user(phone_number)
        if user is None or not isinstance(user.folders, list):
            return []
        return [dict(folder) for folder in user.folders if isinstance(folder, dict)]

    def save_folders(self, phone_number: str, folders: List[Dict[str, Any]]) -> None:
        """Replace the user's explicit folder list"""
        self._update_user(phone_number, folders=list(folders))

    def set_default_folder(self, phone_number: str, folder_id: str) -> None:
        self._update_user(phone_number, default_folder_id=folder_id)

    def update_tokens(self, phone_number: str, access_token: str,
                      expiry_date: Optional[datetime] = None,
                      refresh_token: Optional[str] = None) -> None:
        """Store refreshed Drive tokens; the refresh token is kept unless a new one is given"""
        values = {'access_token': access_token, 'expiry_date': expiry_date}
        if refresh_token:
            values['refresh_token'] = refresh_token
        self._update_user(phone_number, **values)

    def _update_user(self, phone_number: str, **values) -> None:
        try:
            with self.session_factory() as session:
                user = session.execute(
                    select(User).where(User.phone_number == phone_number)
                ).scalar_one_or_none()
                if user is None:
                    raise RepositoryError(f"User {phone_number} not found")
                for key, value in values.items():
                    setattr(user, key, value)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error updating user {phone_number}: {str(e)}")
            raise RepositoryError(f"Unable to update user: {str(e)}") from e

    # ---------- Documents ----------

    def create_document(self, phone_number: str, user_id: int, file_name: str,
                        mime_type: Optional[str], metadata: Dict[str, Any],
                        google_drive_link: Optional[str],
                        google_drive_id: Optional[str]) -> Dict[str, Any]:
        try:
            with self.session_factory() as session:
                doc = UserDocument(
                    phone_number=phone_number,
                    user_id=user_id,
                    file_name=file_name,
                    mime_type=mime_type,
                    doc_metadata=metadata,
                    google_drive_link=google_drive_link,
                    google_drive_id=google_drive_id,
                    created_at=datetime.utcnow()
                )
                session.add(doc)
                session.commit()
                logger.info(f"Stored document {doc.id} for {phone_number}")
                return document_to_dict(doc)
        except SQLAlchemyError as e:
            logger.error(f"Database storage failed: {str(e)}")
            raise RepositoryError(f"Unable to store document: {str(e)}") from e

    def find_document_by_text(self, phone_number: str, query: str) -> Optional[Dict[str, Any]]:
        """First document whose rawText contains the query, case-insensitively"""
        raw_text = UserDocument.doc_metadata["rawText"].as_string()
        try:
            with self.session_factory() as session:
                doc = session.execute(
                    select(UserDocument)
                    .where(
                        UserDocument.phone_number == phone_number,
                        raw_text.icontains(query, autoescape=True)
                    )
                    .order_by(UserDocument.id.asc())
                    .limit(1)
                ).scalar_one_or_none()
                return document_to_dict(doc) if doc else None
        except SQLAlchemyError as e:
            logger.error(f"Error finding documents: {str(e)}")
            raise RepositoryError(f"Unable to search documents: {str(e)}") from e

    def list_documents_by_folder(self, phone_number: str, folder_id: str) -> List[Dict[str, Any]]:
        """Documents filed in a folder, newest first"""
        try:
            with self.session_factory() as session:
                docs = session.execute(
                    select(UserDocument)
                    .where(UserDocument.phone_number == phone_number, self._in_folder(folder_id))
                    .order_by(UserDocument.created_at.desc(), UserDocument.id.desc())
                ).scalars().all()
                return [document_to_dict(doc) for doc in docs]
        except SQLAlchemyError as e:
            logger.error(f"Error listing documents for folder {folder_id}: {str(e)}")
            raise RepositoryError(f"Unable to list documents: {str(e)}") from e

    def count_documents_by_folder(self, phone_number: str, folder_id: str) -> int:
        try:
            with self.session_factory() as session:
                return session.execute(
                    select(func.count(UserDocument.id))
                    .where(UserDocument.phone_number == phone_number, self._in_folder(folder_id))
                ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error counting documents for folder {folder_id}: {str(e)}")
            raise RepositoryError(f"Unable to count documents: {str(e)}") from e

    def list_documents_with_folders(self, phone_number: str) -> List[Dict[str, Any]]:
        """Documents carrying any folder reference, oldest first"""
        try:
            with self.session_factory() as session:
                docs = session.execute(
                    select(UserDocument)
                    .where(
                        UserDocument.phone_number == phone_number,
                        or_(*(column.isnot(None) for column in _folder_id_columns()))
                    )
                    .order_by(UserDocument.created_at.asc(), UserDocument.id.asc())
                ).scalars().all()
                return [document_to_dict(doc) for doc in docs]
        except SQLAlchemyError as e:
            logger.error(f"Error loading folder references for {phone_number}: {str(e)}")
            raise RepositoryError(f"Unable to load folders: {str(e)}") from e

    @staticmethod
    def _in_folder(folder_id: str):
        return or_(*(column == folder_id for column in _folder_id_columns()))
