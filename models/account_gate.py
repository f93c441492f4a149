"""
Account Gate
------------
Checks that a WhatsApp user may use the bot: the account must exist, be
active and have Google Drive connected.
"""

import logging
from enum import Enum

from .errors import RepositoryError

logger = logging.getLogger(__name__)


class AccountStatus(Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    NOT_FOUND = 'not_found'
    NOT_DRIVE_LINKED = 'not_drive_linked'
    ERROR = 'error'


STATUS_MESSAGES = {
    AccountStatus.NOT_FOUND: "User not found, Please login in our App",
    AccountStatus.INACTIVE: "Your account is inactive. Please contact the admin to activate your account.",
    AccountStatus.NOT_DRIVE_LINKED: (
        "Your account is not connected to Google Drive. "
        "Please connect your account to Google Drive to continue."
    ),
    AccountStatus.ERROR: "Something went wrong. Please try again later.",
}


class AccountGate:
    """Resolves the account status for a phone number."""

    def __init__(self, repository):
        self.repository = repository

    def check_status(self, phone_number) -> AccountStatus:
        try:
            user = self.repository.get_user(phone_number)
        except RepositoryError as e:
            logger.error(f"Error checking user status for {phone_number}: {str(e)}")
            return AccountStatus.ERROR

        if user is None:
            return AccountStatus.NOT_FOUND
        if user.status == 'inactive':
            return AccountStatus.INACTIVE
        if not user.access_token:
            return AccountStatus.NOT_DRIVE_LINKED
        return AccountStatus.ACTIVE

    @staticmethod
    def message_for(status: AccountStatus):
        """User-facing message for a non-active status"""
        return STATUS_MESSAGES.get(status)
