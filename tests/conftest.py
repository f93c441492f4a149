import io
import itertools
import logging
import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Keep log files out of the source tree
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='intake-bot-logs-'))

from models.database import Base, User, UserDocument
from models.errors import DriveUnavailableError, MediaDownloadError
from models.repository import Repository
from models.session_store import SessionStore
from routes.handlers.whatsapp.deduplication import DeduplicationManager
from routes.handlers.whatsapp.handler import WhatsAppHandler
from utils import logging_config

PHONE = "15550001111"


@pytest.fixture(autouse=True)
def restore_root_logger(monkeypatch):
    """Undo any handlers setup_logging adds during a test"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(logging_config, '_configured', False)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class FakeSender:
    """Records outbound messages instead of calling the Cloud API."""

    def __init__(self):
        self.sent = []

    async def send_text(self, to, body):
        self.sent.append(('text', to, body))
        return True

    async def send_button_prompt(self, to, body, buttons):
        self.sent.append(('buttons', to, body, list(buttons)))
        return True

    async def send_list_prompt(self, to, header, body, sections, button_label):
        self.sent.append(('list', to, header, body, sections, button_label))
        return True

    def texts(self):
        return [message[2] for message in self.sent if message[0] == 'text']

    def button_ids(self, index=-1):
        buttons = [message for message in self.sent if message[0] == 'buttons']
        return [button_id for button_id, _ in buttons[index][3]]

    def lists(self):
        return [message for message in self.sent if message[0] == 'list']

    def clear(self):
        self.sent.clear()


class FakeDrive:
    """In-memory stand-in for DriveClient."""

    def __init__(self):
        self.folders = []
        self.uploads = []
        self.fail = False
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise DriveUnavailableError("Drive is down")

    def add_folder(self, name):
        folder = {'id': f"folder-{next(self._ids)}", 'name': name}
        self.folders.append(folder)
        return folder

    async def list_folders_by_name(self, name, contains=False):
        self._check()
        if contains:
            return [dict(f) for f in self.folders if name in f['name']]
        return [dict(f) for f in self.folders if f['name'] == name]

    async def create_folder(self, name):
        self._check()
        return dict(self.add_folder(name))

    async def upload_file(self, folder_id, stream, name, mime_type):
        self._check()
        file_id = f"file-{next(self._ids)}"
        self.uploads.append({
            'id': file_id, 'folder_id': folder_id, 'name': name,
            'mime_type': mime_type, 'content': stream.read()
        })
        return {'id': file_id, 'view_link': f"https://drive.google.com/file/d/{file_id}/view"}


class FakeDriveFactory:
    def __init__(self, drive):
        self.drive = drive

    async def for_phone(self, phone_number):
        return self.drive


class FakeDownloader:
    def __init__(self):
        self.fail = False
        self.error = None
        self.fetched = []

    async def fetch_media(self, media_id):
        if self.error is not None:
            raise self.error
        if self.fail:
            raise MediaDownloadError("media gone")
        self.fetched.append(media_id)
        return io.BytesIO(b"file-bytes")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return Repository(session_factory)


@pytest.fixture
def make_user(session_factory):
    def _make_user(phone_number=PHONE, status='active', access_token='token', **fields):
        with session_factory() as session:
            user = User(phone_number=phone_number, status=status, access_token=access_token, **fields)
            session.add(user)
            session.commit()
            return user.id
    return _make_user


@pytest.fixture
def add_document(session_factory):
    """Insert a document row directly, for legacy metadata shapes"""
    clock = itertools.count()

    def _add_document(user_id, metadata, phone_number=PHONE, file_name='file.pdf', link=None,
                      drive_id=None, created_at=None):
        with session_factory() as session:
            doc = UserDocument(
                phone_number=phone_number,
                user_id=user_id,
                file_name=file_name,
                mime_type='application/pdf',
                doc_metadata=metadata,
                google_drive_link=link,
                google_drive_id=drive_id,
                created_at=created_at or datetime(2024, 1, 1) + timedelta(minutes=next(clock))
            )
            session.add(doc)
            session.commit()
            return doc.id
    return _add_document


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def sessions():
    return SessionStore(ttl_seconds=3600)


@pytest.fixture
def handler(repository, sender, drive, downloader, sessions):
    return WhatsAppHandler(
        repository,
        sender,
        DeduplicationManager(),
        sessions=sessions,
        drive_factory=FakeDriveFactory(drive),
        downloader=downloader
    )


_message_ids = itertools.count(1)


def _delivery(message, phone_number=PHONE):
    message = dict(message)
    message.setdefault('id', f"wamid.{next(_message_ids)}")
    message.setdefault('from', phone_number)
    return {
        'object': 'whatsapp_business_account',
        'entry': [{'changes': [{'value': {'messaging_product': 'whatsapp', 'messages': [message]}}]}]
    }


def text_payload(body, **kwargs):
    return _delivery({'type': 'text', 'text': {'body': body}}, **kwargs)


def image_payload(media_id='media-1', **kwargs):
    return _delivery({'type': 'image', 'image': {'id': media_id, 'mime_type': 'image/jpeg'}}, **kwargs)


def document_payload(media_id='media-2', filename='scan.pdf', **kwargs):
    return _delivery({
        'type': 'document',
        'document': {'id': media_id, 'filename': filename, 'mime_type': 'application/pdf'}
    }, **kwargs)


def button_payload(reply_id, **kwargs):
    return _delivery({
        'type': 'interactive',
        'interactive': {'type': 'button_reply', 'button_reply': {'id': reply_id, 'title': 'x'}}
    }, **kwargs)


def list_payload(reply_id, **kwargs):
    return _delivery({
        'type': 'interactive',
        'interactive': {'type': 'list_reply', 'list_reply': {'id': reply_id, 'title': 'x'}}
    }, **kwargs)
