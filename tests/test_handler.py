import asyncio
from unittest.mock import AsyncMock

import pytest

from models.session_store import AWAITING_EXISTING_SELECTION, AWAITING_NEW_NAME, AWAITING_SELECTION
from routes.handlers.whatsapp_constants import (
    CHOOSE_FOLDER_OPTION_MESSAGE,
    DEFAULT_FOLDER_FAILED_MESSAGE,
    DOCUMENT_RECEIVED_MESSAGE,
    EXPLORE_SESSION_EXPIRED_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    IMAGE_RECEIVED_MESSAGE,
    NEW_FOLDER_NAME_PROMPT,
    NO_FOLDERS_MESSAGE,
    NO_SAVED_FOLDERS_FOR_UPLOAD_MESSAGE,
    NOTHING_PENDING_MESSAGE,
    SEARCH_PROMPT_MESSAGE,
    UPLOAD_FAILED_MESSAGE,
    UPLOAD_IN_PROGRESS_MESSAGE,
)

from conftest import (
    PHONE,
    button_payload,
    document_payload,
    image_payload,
    list_payload,
    text_payload,
)

MAIN_MENU_IDS = ['upload_document', 'get_documents', 'explore_folders']
CHOOSER_IDS = ['folder_default', 'folder_existing', 'folder_new']


async def start_upload(handler, details="desc: passport scan"):
    await handler.handle_incoming_message(image_payload('media-1'))
    await handler.handle_incoming_message(text_payload(details))


async def test_upload_to_default_folder(handler, make_user, sender, drive, downloader, sessions, repository):
    make_user()

    assert await handler.handle_incoming_message(image_payload('media-1')) == ("OK", 200)
    assert sender.texts()[-1] == IMAGE_RECEIVED_MESSAGE

    await handler.handle_incoming_message(text_payload("desc: passport scan"))
    assert sender.button_ids() == CHOOSER_IDS
    assert sessions.get_folder_selection(PHONE).stage == AWAITING_SELECTION

    await handler.handle_incoming_message(button_payload('folder_default'))

    assert "✅ Folder selected: WhatsAppBotUpload (default folder)" in sender.texts()
    assert downloader.fetched == ['media-1']
    upload = drive.uploads[0]
    assert upload['content'] == b"file-bytes"
    assert upload['mime_type'] == 'image/jpeg'
    assert sender.texts()[-1] == (
        f"✅ Document saved successfully!\n\n📁 Google Drive: https://drive.google.com/file/d/{upload['id']}/view"
    )
    assert sender.button_ids() == MAIN_MENU_IDS

    stored = repository.find_document_by_text(PHONE, 'passport')
    assert stored['metadata']['folder']['name'] == 'WhatsAppBotUpload'
    assert stored['metadata']['folder']['id'] == upload['folder_id']
    assert stored['metadata']['desc'] == 'passport scan'
    assert stored['google_drive_id'] == upload['id']

    assert sessions.get_pending_upload(PHONE) is None
    assert sessions.get_folder_selection(PHONE) is None


async def test_search_hit_and_miss(handler, make_user, add_document, sender, sessions):
    user_id = make_user()
    add_document(
        user_id,
        {'rawText': 'desc: passport scan', 'folder': {'id': 'f1', 'name': 'IDs'}},
        link='https://drive.google.com/file/d/abc/view'
    )

    await handler.handle_incoming_message(button_payload('get_documents'))
    assert sender.texts()[-1] == SEARCH_PROMPT_MESSAGE
    assert sessions.is_searching(PHONE) is True

    await handler.handle_incoming_message(text_payload("passport"))

    assert sender.texts()[-1] == (
        "📁 Folder : IDs\n\n📝 Details : desc: passport scan\n\n"
        "🔗 Document link : https://drive.google.com/file/d/abc/view"
    )
    assert sender.button_ids() == MAIN_MENU_IDS
    assert sessions.is_searching(PHONE) is False

    await handler.handle_incoming_message(text_payload("visa"))

    assert sender.texts()[-1] == "Document not found."
    assert sender.button_ids() == MAIN_MENU_IDS


async def test_inactive_user_is_refused(handler, make_user, sender, sessions):
    make_user(status='inactive')

    await handler.handle_incoming_message(text_payload("passport"))

    assert sender.texts() == [
        "Your account is inactive. Please contact the admin to activate your account."
    ]
    assert sessions.get_pending_upload(PHONE) is None
    assert sessions.is_searching(PHONE) is False


async def test_unknown_user_is_told_to_log_in(handler, sender):
    await handler.handle_incoming_message(button_payload('upload_document'))

    assert sender.texts() == ["User not found, Please login in our App"]


async def test_user_without_drive_is_refused(handler, make_user, sender):
    make_user(access_token=None)

    await handler.handle_incoming_message(button_payload('explore_folders'))

    assert sender.texts()[-1].startswith("Your account is not connected to Google Drive")


async def test_explore_without_folders(handler, make_user, sender, sessions):
    make_user()

    await handler.handle_incoming_message(button_payload('explore_folders'))

    assert sender.texts() == [NO_FOLDERS_MESSAGE]
    assert sessions.get_folder_exploration(PHONE) is None


async def test_duplicate_delivery_has_no_effect(handler, make_user, sender, sessions):
    make_user()
    payload = image_payload('media-1')

    assert await handler.handle_incoming_message(payload) == ("OK", 200)
    sent = list(sender.sent)

    assert await handler.handle_incoming_message(payload) == ("Duplicate", 200)
    assert sender.sent == sent
    assert sessions.get_pending_upload(PHONE).media_id == 'media-1'


async def test_second_media_is_rejected_while_pending(handler, make_user, sender, sessions):
    make_user()

    await handler.handle_incoming_message(document_payload('media-2', 'scan.pdf'))
    await handler.handle_incoming_message(image_payload('media-3'))

    assert sender.texts() == [DOCUMENT_RECEIVED_MESSAGE, UPLOAD_IN_PROGRESS_MESSAGE]
    assert sessions.get_pending_upload(PHONE).file_name == 'scan.pdf'


async def test_status_delivery_is_ignored(handler, sender):
    payload = {'entry': [{'changes': [{'value': {'statuses': [{'id': 'w1', 'status': 'read'}]}}]}]}

    assert await handler.handle_incoming_message(payload) == ("OK", 200)
    assert sender.sent == []


async def test_text_while_choosing_asks_for_an_option(handler, make_user, sender):
    make_user()
    await start_upload(handler)

    await handler.handle_incoming_message(text_payload("whatever"))

    assert sender.texts()[-1] == CHOOSE_FOLDER_OPTION_MESSAGE


async def test_folder_choice_without_pending_upload(handler, make_user, sender):
    make_user()

    await handler.handle_incoming_message(button_payload('folder_default'))

    assert sender.texts() == [NOTHING_PENDING_MESSAGE]


async def test_upload_to_saved_folder_from_list(handler, make_user, add_document, sender, drive, sessions):
    user_id = make_user()
    add_document(user_id, {'rawText': 'old bill', 'folderId': 'f1', 'folderName': 'Bills'})
    await start_upload(handler, "June electricity")

    await handler.handle_incoming_message(button_payload('folder_existing'))

    assert sessions.get_folder_selection(PHONE).stage == AWAITING_EXISTING_SELECTION
    sections = sender.lists()[-1][4]
    assert sections[0]['title'] == "Folders 1-1"
    assert sections[0]['rows'] == [{'id': 'folder_saved_f1', 'title': 'Bills'}]

    await handler.handle_incoming_message(list_payload('folder_saved_f1'))

    assert "✅ Folder selected: Bills" in sender.texts()
    assert drive.uploads[0]['folder_id'] == 'f1'
    assert sessions.get_pending_upload(PHONE) is None


async def test_upload_to_saved_folder_by_number(handler, make_user, add_document, drive):
    user_id = make_user()
    add_document(user_id, {'folder': {'id': 'f1', 'name': 'Bills'}})
    add_document(user_id, {'folder': {'id': 'f2', 'name': 'Trips'}})
    await start_upload(handler)
    await handler.handle_incoming_message(button_payload('folder_existing'))

    await handler.handle_incoming_message(text_payload("2"))

    assert drive.uploads[0]['folder_id'] == 'f2'


async def test_typed_folder_name_found_in_drive_is_saved(handler, make_user, add_document, drive, repository):
    user_id = make_user()
    add_document(user_id, {'folder': {'id': 'f1', 'name': 'Bills'}})
    taxes = drive.add_folder('Taxes')
    await start_upload(handler)
    await handler.handle_incoming_message(button_payload('folder_existing'))

    await handler.handle_incoming_message(text_payload("Taxes"))

    assert drive.uploads[0]['folder_id'] == taxes['id']
    assert [f['name'] for f in repository.get_saved_folders(PHONE)] == ['Taxes']


async def test_existing_choice_without_saved_folders_goes_back(handler, make_user, sender, sessions):
    make_user()
    await start_upload(handler)

    await handler.handle_incoming_message(button_payload('folder_existing'))

    assert sender.texts()[-1] == NO_SAVED_FOLDERS_FOR_UPLOAD_MESSAGE
    assert sender.button_ids() == CHOOSER_IDS
    assert sessions.get_folder_selection(PHONE).stage == AWAITING_SELECTION
    assert sessions.get_pending_upload(PHONE) is not None


async def test_upload_to_new_folder(handler, make_user, sender, drive, sessions, repository):
    make_user()
    await start_upload(handler)

    await handler.handle_incoming_message(button_payload('folder_new'))
    assert sender.texts()[-1] == NEW_FOLDER_NAME_PROMPT
    assert sessions.get_folder_selection(PHONE).stage == AWAITING_NEW_NAME

    await handler.handle_incoming_message(text_payload("Receipts"))

    assert "✅ Folder selected: Receipts (new)" in sender.texts()
    assert [f['name'] for f in drive.folders] == ['Receipts']
    assert drive.uploads[0]['folder_id'] == drive.folders[0]['id']
    assert repository.get_saved_folders(PHONE)[0]['name'] == 'Receipts'


async def test_drive_failure_keeps_pending_upload(handler, make_user, sender, drive, sessions):
    make_user()
    await start_upload(handler)
    drive.fail = True

    await handler.handle_incoming_message(button_payload('folder_default'))

    assert DEFAULT_FOLDER_FAILED_MESSAGE in sender.texts()
    assert sender.button_ids() == CHOOSER_IDS
    assert sessions.get_folder_selection(PHONE).stage == AWAITING_SELECTION
    assert sessions.get_pending_upload(PHONE) is not None

    drive.fail = False
    await handler.handle_incoming_message(button_payload('folder_default'))

    assert len(drive.uploads) == 1


async def test_download_failure_drops_upload(handler, make_user, sender, downloader, drive, sessions):
    make_user()
    await start_upload(handler)
    downloader.fail = True

    await handler.handle_incoming_message(button_payload('folder_default'))

    assert sender.texts()[-1] == UPLOAD_FAILED_MESSAGE
    assert sender.button_ids() == MAIN_MENU_IDS
    assert drive.uploads == []
    assert sessions.get_pending_upload(PHONE) is None
    assert sessions.get_folder_selection(PHONE) is None


async def test_unexpected_finalize_error_drops_upload(handler, make_user, sender, downloader, sessions):
    make_user()
    await start_upload(handler)
    downloader.error = asyncio.TimeoutError()

    assert await handler.handle_incoming_message(button_payload('folder_default')) == ("OK", 200)

    assert sender.texts()[-1] == UPLOAD_FAILED_MESSAGE
    assert sessions.get_pending_upload(PHONE) is None
    assert sessions.get_folder_selection(PHONE) is None

    downloader.error = None
    await handler.handle_incoming_message(image_payload('media-9'))

    assert sender.texts()[-1] == IMAGE_RECEIVED_MESSAGE
    assert sessions.get_pending_upload(PHONE).media_id == 'media-9'


async def test_explore_pages_through_documents(handler, make_user, add_document, sender, sessions):
    user_id = make_user()
    for i in range(23):
        add_document(user_id, {'rawText': f"receipt {i}", 'folder': {'id': 'f1', 'name': 'Bills'}})

    await handler.handle_incoming_message(button_payload('explore_folders'))
    assert sessions.get_folder_exploration(PHONE) is not None

    await handler.handle_incoming_message(list_payload('folder_saved_f1'))

    header, sections = sender.lists()[-1][2], sender.lists()[-1][4]
    assert header == 'Bills'
    assert sections[0]['title'] == "Page 1/3"
    rows = sections[0]['rows']
    assert len(rows) == 9
    assert rows[0]['title'] == 'receipt 22'
    assert rows[-1]['id'] == 'doc_nav_next_1'
    assert sessions.get_folder_exploration(PHONE) is None

    await handler.handle_incoming_message(list_payload('doc_nav_next_1'))

    rows = sender.lists()[-1][4][0]['rows']
    assert sender.lists()[-1][4][0]['title'] == "Page 2/3"
    assert len(rows) == 10
    assert rows[0]['id'] == 'doc_nav_back_0'
    assert sessions.get_document_selection(PHONE).current_page == 1

    await handler.handle_incoming_message(list_payload(rows[1]['id']))

    assert sender.texts()[-1].startswith("📁 Folder : Bills\n\n📝 Details : receipt 14")
    assert sender.button_ids() == MAIN_MENU_IDS
    assert sessions.get_document_selection(PHONE) is None


async def test_explore_empty_folder(handler, make_user, repository, sender, sessions):
    make_user()
    repository.save_folders(PHONE, [{'id': 'f3', 'name': 'Empty', 'savedAt': None, 'isDefault': False}])

    await handler.handle_incoming_message(button_payload('explore_folders'))
    await handler.handle_incoming_message(list_payload('folder_saved_f3'))

    assert sender.texts()[-1] == "📁 Folder: Empty\n\nNo documents have been saved in this folder yet."
    assert sessions.get_document_selection(PHONE) is None


async def test_navigation_without_listing_has_expired(handler, make_user, sender):
    make_user()

    await handler.handle_incoming_message(list_payload('doc_nav_next_1'))

    assert sender.texts() == [EXPLORE_SESSION_EXPIRED_MESSAGE]


async def test_unexpected_error_sends_generic_message(handler, make_user, sender, monkeypatch):
    make_user()
    monkeypatch.setattr(handler, 'search', AsyncMock(side_effect=RuntimeError("boom")))

    assert await handler.handle_incoming_message(text_payload("anything")) == ("OK", 200)
    assert sender.texts() == [GENERIC_ERROR_MESSAGE]


@pytest.mark.parametrize('reply_id', ['nonsense', 'doc_nav_next_abc'])
async def test_unknown_replies_are_ignored(handler, make_user, sender, reply_id):
    make_user()

    await handler.handle_incoming_message(button_payload(reply_id))

    assert sender.sent == []
