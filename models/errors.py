"""
Capability Errors
-----------------
Exceptions raised by the external collaborators the conversation engine
depends on (Drive, WhatsApp media and the database).

The engine catches these at the edge of every flow and turns them into a
generic user-facing failure message.
"""


class CapabilityError(Exception):
    """Base class for failures of an external capability."""
    pass


class DriveUnavailableError(CapabilityError):
    """Raised when Google Drive cannot be reached or rejects a request."""
    pass


class MediaDownloadError(CapabilityError):
    """Raised when a media item cannot be fetched from WhatsApp."""
    pass


class RepositoryError(CapabilityError):
    """Raised when the database cannot complete a read or write."""
    pass
