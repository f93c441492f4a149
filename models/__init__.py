from .errors import CapabilityError, DriveUnavailableError, MediaDownloadError, RepositoryError
from .repository import Repository
from .session_store import SessionStore

__all__ = [
    'CapabilityError',
    'DriveUnavailableError',
    'MediaDownloadError',
    'RepositoryError',
    'Repository',
    'SessionStore',
]
