"""
Document Retriever
------------------
Keyword search over a user's documents and folder-scoped listing with
pagination for the Explore flow.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .docs.drive_service import view_link_for
from .folder_directory import folder_reference, with_folder_backfill

logger = logging.getLogger(__name__)

# WhatsApp list messages carry at most 10 rows
PAGE_SIZE = 10
# Middle pages give two rows to Back and Next
PAGED_STRIDE = PAGE_SIZE - 2
ROW_TITLE_LIMIT = 24


@dataclass
class DocumentPage:
    page: int
    total_pages: int
    documents: List[Dict[str, Any]]
    start_index: int
    back_page: Optional[int] = None
    next_page: Optional[int] = None

    @property
    def row_count(self) -> int:
        return len(self.documents) + (self.back_page is not None) + (self.next_page is not None)


def build_document_page(documents, page=0) -> DocumentPage:
    """
    Cut one page out of a folder listing.

    Up to PAGE_SIZE documents fit on a single page without navigation. Longer
    listings advance PAGED_STRIDE documents per page so that every page,
    navigation rows included, stays within PAGE_SIZE rows.

    Args:
        documents: The full listing, newest first
        page: Zero-based page index (clamped into range)

    Returns:
        DocumentPage: The documents on the page and its navigation targets
    """
    total = len(documents)
    if total <= PAGE_SIZE:
        return DocumentPage(page=0, total_pages=1, documents=list(documents), start_index=0)

    total_pages = math.ceil(total / PAGED_STRIDE)
    page = max(0, min(page, total_pages - 1))
    start = page * PAGED_STRIDE
    return DocumentPage(
        page=page,
        total_pages=total_pages,
        documents=list(documents[start:start + PAGED_STRIDE]),
        start_index=start,
        back_page=page - 1 if page > 0 else None,
        next_page=page + 1 if page < total_pages - 1 else None
    )


def document_details(document) -> str:
    """The text shown for a document: rawText, description, title, else the file name"""
    metadata = document.get('metadata') if isinstance(document.get('metadata'), dict) else {}
    return (
        metadata.get('rawText')
        or metadata.get('description')
        or metadata.get('title')
        or document.get('file_name')
        or ''
    )


def row_title(document, position) -> str:
    """List row title for a document, truncated to fit WhatsApp's row limit"""
    title = document_details(document) or f"Document {position}"
    if len(title) > ROW_TITLE_LIMIT:
        title = f"{title[:ROW_TITLE_LIMIT - 3]}..."
    return title


def drive_link(document) -> Optional[str]:
    if document.get('google_drive_link'):
        return document['google_drive_link']
    if document.get('google_drive_id'):
        return view_link_for(document['google_drive_id'])
    return None


def format_document_message(folder_name, details, link) -> str:
    """Folder, details and Drive link lines for a found or selected document"""
    lines = [f"📁 Folder : {folder_name or 'Selected folder'}"]
    if details:
        lines.append(f"\n📝 Details : {details}")
    if link:
        lines.append(f"\n🔗 Document link : {link}")
    else:
        lines.append("\n🔗 Document link not available.")
    return "\n".join(lines)


class DocumentRetriever:
    """
    Finds documents for a user.

    This class is responsible for:
    1. Searching documents by the text stored with them
    2. Listing the documents filed in a folder
    """

    def __init__(self, repository):
        self.repository = repository

    def search(self, phone_number, query) -> Optional[Dict[str, Any]]:
        """
        Find the first document whose stored text contains ``query``.

        Returns:
            dict: {'folder': name or None, 'description': rawText, 'link': link or None},
            or None when nothing matches
        """
        document = self.repository.find_document_by_text(phone_number, query)
        if document is None:
            logger.info(f"No document matching '{query}' for {phone_number}")
            return None

        reference = folder_reference(document['metadata'])
        return {
            'folder': reference['name'] if reference else None,
            'description': document['metadata'].get('rawText'),
            'link': document.get('google_drive_link')
        }

    def list_by_folder(self, phone_number, folder_id) -> Tuple[List[Dict[str, Any]], int]:
        """
        List the documents filed in a folder, newest first.

        The count comes from its own query. A mismatch with the listing is
        logged and left as is.

        Returns:
            tuple: (documents, total_count)
        """
        documents = self.repository.list_documents_by_folder(phone_number, folder_id)
        total_count = self.repository.count_documents_by_folder(phone_number, folder_id)

        if total_count != len(documents):
            logger.warning(
                f"⚠️ Folder {folder_id} for {phone_number}: count query returned {total_count} "
                f"but listing returned {len(documents)} documents"
            )

        return [with_folder_backfill(document) for document in documents], total_count
