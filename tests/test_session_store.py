import asyncio

from models.folder_directory import Folder
from models.session_store import (
    AWAITING_SELECTION,
    DocumentSelectionState,
    FolderExplorationState,
    FolderSelectionState,
    PendingUpload,
    SessionStore,
)

PHONE = "15550001111"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_upload(media_id="m1"):
    return PendingUpload(media_id=media_id, kind="image", file_name="a.jpg", mime_type="image/jpeg")


def test_only_one_pending_upload_per_phone():
    store = SessionStore()

    assert store.create_pending_upload(PHONE, make_upload("m1")) is True
    assert store.create_pending_upload(PHONE, make_upload("m2")) is False
    assert store.get_pending_upload(PHONE).media_id == "m1"

    assert store.create_pending_upload("other", make_upload("m3")) is True


def test_maps_are_independent():
    store = SessionStore()
    folder = Folder("f1", "Bills")
    store.set_pending_upload(PHONE, make_upload())
    store.set_folder_selection(PHONE, FolderSelectionState(AWAITING_SELECTION))
    store.set_folder_exploration(PHONE, FolderExplorationState([folder]))
    store.set_document_selection(PHONE, DocumentSelectionState(folder, [{'id': 1}], 0, 1))

    store.clear_folder_exploration(PHONE)

    assert store.get_folder_exploration(PHONE) is None
    assert store.get_document_selection(PHONE).folder == folder

    store.clear_upload_state(PHONE)

    assert store.get_pending_upload(PHONE) is None
    assert store.get_folder_selection(PHONE) is None
    assert store.get_document_selection(PHONE) is not None


def test_search_flag():
    store = SessionStore()
    assert store.is_searching(PHONE) is False

    store.start_search(PHONE)
    assert store.is_searching(PHONE) is True

    store.stop_search(PHONE)
    assert store.is_searching(PHONE) is False


def test_entries_expire_after_ttl():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=60, clock=clock)
    store.set_pending_upload(PHONE, make_upload())

    clock.now += 59
    assert store.get_pending_upload(PHONE) is not None

    clock.now += 2
    assert store.get_pending_upload(PHONE) is None
    assert store.create_pending_upload(PHONE, make_upload("m2")) is True


def test_expired_upload_can_be_replaced():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=60, clock=clock)
    store.create_pending_upload(PHONE, make_upload("m1"))

    clock.now += 61

    assert store.create_pending_upload(PHONE, make_upload("m2")) is True
    assert store.get_pending_upload(PHONE).media_id == "m2"


def test_zero_ttl_never_expires():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=0, clock=clock)
    store.set_folder_selection(PHONE, FolderSelectionState(AWAITING_SELECTION))

    clock.now += 10 ** 6

    assert store.get_folder_selection(PHONE).stage == AWAITING_SELECTION


async def test_locked_serializes_same_phone():
    store = SessionStore()
    order = []

    async def worker(name):
        async with store.locked(PHONE):
            order.append(f"{name}-start")
            await asyncio.sleep(0.01)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


async def test_lock_is_released_after_error():
    store = SessionStore()

    try:
        async with store.locked(PHONE):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    async with store.locked(PHONE):
        assert True


async def test_idle_phone_locks_are_forgotten():
    store = SessionStore()

    async def worker(phone):
        async with store.locked(phone):
            await asyncio.sleep(0.01)

    await asyncio.gather(worker(PHONE), worker(PHONE), worker("other"))

    assert store._phone_locks == {}


async def test_lock_entry_kept_while_held():
    store = SessionStore()

    async with store.locked(PHONE):
        assert PHONE in store._phone_locks

    assert PHONE not in store._phone_locks
