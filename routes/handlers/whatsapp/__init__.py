"""
WhatsApp Handler Package
-----------------------
This package contains the conversation engine of the bot and the pieces it
delegates to: event decoding, deduplication, outbound messages, the folder
selection and explore flows, and upload finalization.

The main entry point is the WhatsAppHandler class.
"""

from .handler import WhatsAppHandler, WhatsAppHandlerError

__all__ = ['WhatsAppHandler', 'WhatsAppHandlerError']
