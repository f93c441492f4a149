"""
WhatsApp Deduplication Manager
----------------------------
This module tracks recently processed WhatsApp message ids so that a webhook
delivered more than once is only handled the first time.
"""

import logging
import threading
from collections import OrderedDict

from config import DEDUP_CAPACITY, DEDUP_EVICT_COUNT

logger = logging.getLogger(__name__)


class DeduplicationManager:
    """
    Bounded, in-memory set of processed message ids.

    When more than ``capacity`` ids are held, the oldest ``evict_count`` ids
    (by insertion order) are forgotten. Nothing survives a restart.
    """

    def __init__(self, capacity=DEDUP_CAPACITY, evict_count=DEDUP_EVICT_COUNT):
        """
        Initialize the deduplication manager.

        Args:
            capacity: Number of ids held before eviction starts
            evict_count: Number of oldest ids dropped per eviction
        """
        self.capacity = capacity
        self.evict_count = evict_count
        self.processed_messages = OrderedDict()
        self._lock = threading.Lock()

    def seen(self, message_id) -> bool:
        """
        Check a message id and mark it as processed.

        Args:
            message_id: The WhatsApp message ID

        Returns:
            bool: True if the id was already processed, False if it is new
        """
        with self._lock:
            if message_id in self.processed_messages:
                logger.info(f"Skipping duplicate message {message_id}")
                return True

            self.processed_messages[message_id] = True
            if len(self.processed_messages) > self.capacity:
                self._evict_oldest()
            return False

    def _evict_oldest(self):
        for _ in range(min(self.evict_count, len(self.processed_messages))):
            self.processed_messages.popitem(last=False)
        logger.debug(f"Evicted old message ids, {len(self.processed_messages)} remain")

    def __len__(self):
        with self._lock:
            return len(self.processed_messages)
