import io
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from google.oauth2.credentials import Credentials
from googleapiclient.errors import HttpError

from models.docs.drive_service import DriveClient, DriveClientFactory, escape_query_value
from models.errors import DriveUnavailableError

from conftest import PHONE


def http_error(status=500):
    return HttpError(resp=MagicMock(status=status, reason='error'), content=b'{}')


def test_query_values_are_escaped():
    assert escape_query_value("Bob's \\ files") == "Bob\\'s \\\\ files"


async def test_list_folders_builds_query():
    service = MagicMock()
    service.files.return_value.list.return_value.execute.return_value = {
        'files': [{'id': 'f1', 'name': "Bob's"}]
    }

    folders = await DriveClient(service).list_folders_by_name("Bob's", contains=True)

    assert folders == [{'id': 'f1', 'name': "Bob's"}]
    kwargs = service.files.return_value.list.call_args.kwargs
    assert kwargs['q'] == (
        "mimeType='application/vnd.google-apps.folder' and trashed=false and name contains 'Bob\\'s'"
    )
    assert kwargs['pageSize'] == 10


async def test_create_folder():
    service = MagicMock()
    service.files.return_value.create.return_value.execute.return_value = {'id': 'f2', 'name': 'Trips'}

    assert await DriveClient(service).create_folder('Trips') == {'id': 'f2', 'name': 'Trips'}
    body = service.files.return_value.create.call_args.kwargs['body']
    assert body == {'name': 'Trips', 'mimeType': 'application/vnd.google-apps.folder'}


async def test_upload_falls_back_to_built_view_link():
    service = MagicMock()
    service.files.return_value.create.return_value.execute.return_value = {'id': 'file-1'}

    uploaded = await DriveClient(service).upload_file('f1', io.BytesIO(b"data"), 'a.jpg', 'image/jpeg')

    assert uploaded == {'id': 'file-1', 'view_link': 'https://drive.google.com/file/d/file-1/view'}
    assert service.files.return_value.create.call_args.kwargs['body'] == {'name': 'a.jpg', 'parents': ['f1']}


async def test_http_errors_become_drive_unavailable():
    service = MagicMock()
    service.files.return_value.list.return_value.execute.side_effect = http_error()

    with pytest.raises(DriveUnavailableError):
        await DriveClient(service).list_folders_by_name('Bills')


async def test_transport_errors_become_drive_unavailable():
    service = MagicMock()
    service.files.return_value.create.return_value.execute.side_effect = TimeoutError("timed out")

    with pytest.raises(DriveUnavailableError, match='TimeoutError'):
        await DriveClient(service).upload_file('f1', io.BytesIO(b"data"), 'a.jpg', 'image/jpeg')


async def test_factory_requires_tokens(repository, make_user):
    make_user(access_token=None)

    with pytest.raises(DriveUnavailableError):
        await DriveClientFactory(repository).for_phone(PHONE)


async def test_factory_builds_client_with_stored_tokens(repository, make_user):
    make_user(access_token='access-1', refresh_token='refresh-1', expiry_date=datetime.utcnow() + timedelta(hours=1))
    built = []

    client = await DriveClientFactory(repository, service_builder=built.append).for_phone(PHONE)

    assert isinstance(client, DriveClient)
    assert built[0].token == 'access-1'


async def test_factory_refreshes_expired_token(repository, make_user):
    make_user(access_token='old', refresh_token='refresh-1', expiry_date=datetime.utcnow() - timedelta(hours=1))
    new_expiry = datetime.utcnow() + timedelta(hours=1)

    def fake_refresh(credentials, request):
        credentials.token = 'new'
        credentials.expiry = new_expiry

    with patch.object(Credentials, 'refresh', autospec=True, side_effect=fake_refresh):
        await DriveClientFactory(repository, service_builder=lambda credentials: MagicMock()).for_phone(PHONE)

    user = repository.get_user(PHONE)
    assert user.access_token == 'new'
    assert user.refresh_token == 'refresh-1'
    assert user.expiry_date == new_expiry
