"""
WhatsApp Constants
----------------
This module contains the texts and interactive ids used in WhatsApp messaging.
"""

# Interactive reply ids
UPLOAD_DOCUMENT_ID = "upload_document"
GET_DOCUMENTS_ID = "get_documents"
EXPLORE_FOLDERS_ID = "explore_folders"
FOLDER_DEFAULT_ID = "folder_default"
FOLDER_EXISTING_ID = "folder_existing"
FOLDER_NEW_ID = "folder_new"
FOLDER_SAVED_PREFIX = "folder_saved_"
DOCUMENT_META_PREFIX = "document_meta_"
DOC_NAV_NEXT_PREFIX = "doc_nav_next_"
DOC_NAV_BACK_PREFIX = "doc_nav_back_"

# Main menu
MAIN_MENU_BODY = "What would you like to do?"
MAIN_MENU_BUTTONS = [
    (UPLOAD_DOCUMENT_ID, "Upload document"),
    (GET_DOCUMENTS_ID, "Get document"),
    (EXPLORE_FOLDERS_ID, "Explore"),
]

# Folder chooser
FOLDER_CHOOSER_BODY = "In which folder would you like to save your document?"
FOLDER_CHOOSER_BUTTONS = [
    (FOLDER_DEFAULT_ID, "WhatsAppBotUpload"),
    (FOLDER_EXISTING_ID, "My Existing Folder"),
    (FOLDER_NEW_ID, "Create New Folder"),
]

SAVED_FOLDERS_BODY = "Select a folder to continue."
SAVED_FOLDERS_BUTTON = "Select Folder"

DOCUMENT_LIST_BODY = "Select a document to view its metadata and Drive link."
DOCUMENT_LIST_BUTTON = "View documents"
NAV_BACK_TITLE = "◀ Back"
NAV_NEXT_TITLE = "▶ Next"

# Uploads
IMAGE_RECEIVED_MESSAGE = "✅ We have received your image!\n\nNow please send the metaData (name/details) of the document."
DOCUMENT_RECEIVED_MESSAGE = "✅ We have received your document!\n\nNow please send the name/details of the document."
UPLOAD_IN_PROGRESS_MESSAGE = (
    "⏳ Please complete your current upload first. "
    "Send the name/details for your previous file before uploading a new one."
)
UPLOAD_PROMPT_MESSAGE = "Upload your Document.\n\n⚠️ Important: Select and send only ONE file."
NOTHING_PENDING_MESSAGE = "No document is waiting to be saved. Please upload a document first."
NOTHING_TO_SAVE_MESSAGE = "No document is waiting to be saved. Please upload a new document."
USER_NOT_FOUND_MESSAGE = "❌ User not found. Please reconnect your account."
UPLOAD_SUCCESS_MESSAGE = "✅ Document saved successfully!\n\n📁 Google Drive: {link}"
UPLOAD_FAILED_MESSAGE = "❌ Error saving document. Please try uploading again."
CHOOSE_FOLDER_FIRST_MESSAGE = "Please choose a folder before we can save your document."

# Folder selection
CHOOSE_FOLDER_OPTION_MESSAGE = "Please choose one of the folder options above."
NO_SAVED_FOLDERS_FOR_UPLOAD_MESSAGE = (
    "You do not have any saved folders yet. Please choose the default folder or create a new folder."
)
NEW_FOLDER_NAME_PROMPT = "Give the name for new Google Drive folder."
FOLDER_SELECTED_MESSAGE = "✅ Folder selected: {name}{suffix}"
DEFAULT_FOLDER_FAILED_MESSAGE = "❌ Unable to use the default folder right now. Please choose another option."
FOLDER_NOT_FOUND_MESSAGE = "Folder not found. Please choose again."
FOLDER_NAME_NOT_FOUND_MESSAGE = "❌ Folder not found. Please reply with a number from the list or try again."
EXISTING_FOLDER_FAILED_MESSAGE = "❌ Unable to use that folder. Please choose another option."
NEW_FOLDER_FAILED_MESSAGE = "❌ Unable to create that folder. Please choose another option."
EMPTY_FOLDER_CHOICE_MESSAGE = "Please reply with the number or name of the folder you want to use."
EMPTY_FOLDER_NAME_MESSAGE = "Please provide a folder name."

# Search
SEARCH_PROMPT_MESSAGE = "🔎 Please tell me the name of the document you want."
DOCUMENT_NOT_FOUND_MESSAGE = "Document not found."
SEARCH_FAILED_MESSAGE = "❌ Error searching for document. Please try again."

# Explore
NO_FOLDERS_MESSAGE = "You don't have any saved folders yet. Upload a document to create one."
EMPTY_FOLDER_MESSAGE = "📁 Folder: {name}\n\nNo documents have been saved in this folder yet."
EXPLORE_FOLDER_NOT_FOUND_MESSAGE = "Folder not found. Please tap Explore again to reload your folders."
EXPLORE_SESSION_EXPIRED_MESSAGE = "Session expired. Send \"Explore\" to view your folders again."
EXPLORE_DOCUMENT_NOT_FOUND_MESSAGE = "Document not found. Send \"Explore\" to view your folders again."
EXPLORE_FAILED_MESSAGE = "❌ Unable to load your folders right now. Please try again."

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again later."
