"""
Session Store
-------------
Per-phone conversation state for the WhatsApp bot.

Four independent maps (pending upload, folder selection, folder exploration
and document selection) plus the search-mode flag. Entries older than the
configured TTL are dropped when read. All maps are guarded by one lock, and a
per-phone lock serializes the handling of events from the same user.
"""

import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import SESSION_TTL_SECONDS
from .folder_directory import Folder

logger = logging.getLogger(__name__)

AWAITING_SELECTION = 'awaiting_selection'
AWAITING_EXISTING_SELECTION = 'awaiting_existing_selection'
AWAITING_NEW_NAME = 'awaiting_new_name'


@dataclass
class PendingUpload:
    media_id: str
    kind: str  # image / document
    file_name: str
    mime_type: str
    metadata: Optional[Dict[str, Any]] = None
    target_folder: Optional[Folder] = None


@dataclass
class FolderSelectionState:
    stage: str
    folders: Optional[List[Folder]] = None


@dataclass
class FolderExplorationState:
    folders: List[Folder] = field(default_factory=list)


@dataclass
class DocumentSelectionState:
    folder: Folder
    documents: List[Dict[str, Any]]
    current_page: int = 0
    total_count: int = 0


PENDING_UPLOADS = 'pending_uploads'
FOLDER_SELECTIONS = 'folder_selections'
FOLDER_EXPLORATIONS = 'folder_explorations'
DOCUMENT_SELECTIONS = 'document_selections'
SEARCHES = 'searches'


class SessionStore:
    """
    Transient conversation state keyed by phone number.

    Nothing here survives a restart.
    """

    def __init__(self, ttl_seconds=SESSION_TTL_SECONDS, clock=time.monotonic):
        """
        Args:
            ttl_seconds: Seconds an entry stays valid after its last write (0 disables expiry)
            clock: Monotonic time source
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._maps: Dict[str, Dict[str, tuple]] = {
            PENDING_UPLOADS: {},
            FOLDER_SELECTIONS: {},
            FOLDER_EXPLORATIONS: {},
            DOCUMENT_SELECTIONS: {},
            SEARCHES: {},
        }
        self._lock = threading.Lock()
        # phone -> [lock, holders and waiters]
        self._phone_locks: Dict[str, list] = {}

    # ---------- Generic access ----------

    def _get(self, name, phone_number):
        with self._lock:
            entry = self._maps[name].get(phone_number)
            if entry is None:
                return None
            value, written_at = entry
            if self.ttl_seconds and self.clock() - written_at > self.ttl_seconds:
                del self._maps[name][phone_number]
                logger.info(f"Session entry {name} expired for {phone_number}")
                return None
            return value

    def _set(self, name, phone_number, value):
        with self._lock:
            self._maps[name][phone_number] = (value, self.clock())

    def _clear(self, name, phone_number):
        with self._lock:
            self._maps[name].pop(phone_number, None)

    # ---------- Pending upload ----------

    def get_pending_upload(self, phone_number) -> Optional[PendingUpload]:
        return self._get(PENDING_UPLOADS, phone_number)

    def set_pending_upload(self, phone_number, upload: PendingUpload):
        self._set(PENDING_UPLOADS, phone_number, upload)

    def clear_pending_upload(self, phone_number):
        self._clear(PENDING_UPLOADS, phone_number)

    def create_pending_upload(self, phone_number, upload: PendingUpload) -> bool:
        """Store ``upload`` unless one is already pending; returns whether it was stored"""
        with self._lock:
            uploads = self._maps[PENDING_UPLOADS]
            entry = uploads.get(phone_number)
            if entry is not None and not (self.ttl_seconds and self.clock() - entry[1] > self.ttl_seconds):
                return False
            uploads[phone_number] = (upload, self.clock())
            return True

    # ---------- Folder selection ----------

    def get_folder_selection(self, phone_number) -> Optional[FolderSelectionState]:
        return self._get(FOLDER_SELECTIONS, phone_number)

    def set_folder_selection(self, phone_number, state: FolderSelectionState):
        self._set(FOLDER_SELECTIONS, phone_number, state)

    def clear_folder_selection(self, phone_number):
        self._clear(FOLDER_SELECTIONS, phone_number)

    # ---------- Folder exploration ----------

    def get_folder_exploration(self, phone_number) -> Optional[FolderExplorationState]:
        return self._get(FOLDER_EXPLORATIONS, phone_number)

    def set_folder_exploration(self, phone_number, state: FolderExplorationState):
        self._set(FOLDER_EXPLORATIONS, phone_number, state)

    def clear_folder_exploration(self, phone_number):
        self._clear(FOLDER_EXPLORATIONS, phone_number)

    # ---------- Document selection ----------

    def get_document_selection(self, phone_number) -> Optional[DocumentSelectionState]:
        return self._get(DOCUMENT_SELECTIONS, phone_number)

    def set_document_selection(self, phone_number, state: DocumentSelectionState):
        self._set(DOCUMENT_SELECTIONS, phone_number, state)

    def clear_document_selection(self, phone_number):
        self._clear(DOCUMENT_SELECTIONS, phone_number)

    # ---------- Search mode ----------

    def is_searching(self, phone_number) -> bool:
        return bool(self._get(SEARCHES, phone_number))

    def start_search(self, phone_number):
        self._set(SEARCHES, phone_number, True)

    def stop_search(self, phone_number):
        self._clear(SEARCHES, phone_number)

    # ---------- Whole session ----------

    def clear_upload_state(self, phone_number):
        """Drop the pending upload and any folder selection in progress"""
        with self._lock:
            self._maps[PENDING_UPLOADS].pop(phone_number, None)
            self._maps[FOLDER_SELECTIONS].pop(phone_number, None)

    # ---------- Per-phone serialization ----------

    def _checkout_lock(self, phone_number) -> threading.Lock:
        with self._lock:
            entry = self._phone_locks.get(phone_number)
            if entry is None:
                entry = self._phone_locks[phone_number] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _return_lock(self, phone_number):
        """Forget the phone's lock once nobody holds or waits for it"""
        with self._lock:
            entry = self._phone_locks.get(phone_number)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._phone_locks[phone_number]

    @asynccontextmanager
    async def locked(self, phone_number):
        """
        Hold the phone number's lock for the duration of the block.

        Flask runs each async view on its own event loop, so the lock is a
        thread lock acquired off-loop.
        """
        lock = self._checkout_lock(phone_number)
        try:
            await asyncio.to_thread(lock.acquire)
        except BaseException:
            self._return_lock(phone_number)
            raise
        try:
            yield
        finally:
            lock.release()
            self._return_lock(phone_number)
