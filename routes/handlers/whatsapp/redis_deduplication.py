"""
WhatsApp Redis Deduplication Manager
----------------------------------
This module tracks processed WhatsApp message ids in Redis so that duplicate
suppression survives restarts and is shared between application instances.
"""

import logging
import os

import redis

from config import DEDUP_TTL_SECONDS
from .deduplication import DeduplicationManager

logger = logging.getLogger(__name__)


class RedisDeduplicationManager:
    """
    Manages deduplication of message ids using Redis.

    Each id is claimed with ``SET dedup:<id> 1 NX EX <ttl>``; the claim fails
    when another delivery already holds it. If Redis cannot be reached the
    in-memory manager takes over.
    """

    def __init__(self, redis_url=None, ttl_seconds=DEDUP_TTL_SECONDS, client=None):
        """
        Initialize the Redis deduplication manager.

        Args:
            redis_url: Redis connection URL (defaults to REDIS_URL environment variable)
            ttl_seconds: Seconds a processed id is remembered
            client: Ready Redis client to use instead of connecting to redis_url
        """
        self.redis_url = redis_url or os.environ.get('REDIS_URL')
        self.ttl_seconds = ttl_seconds
        self.redis = client
        self.fallback = DeduplicationManager()

        if self.redis is None:
            self._connect_to_redis()

    def _connect_to_redis(self):
        """Attempt to connect to Redis"""
        if not self.redis_url:
            logger.warning("No Redis URL provided, using in-memory deduplication")
            return

        try:
            self.redis = redis.Redis.from_url(
                self.redis_url,
                socket_timeout=2,
                socket_connect_timeout=2,
                retry_on_timeout=True,
                decode_responses=True
            )
            self.redis.ping()
            logger.info("✅ Connected to Redis for message deduplication")
        except redis.RedisError as e:
            logger.error(f"❌ Error connecting to Redis, using in-memory deduplication: {str(e)}")
            self.redis = None

    def seen(self, message_id) -> bool:
        """
        Check a message id and mark it as processed.

        Returns:
            bool: True if the id was already processed, False if it is new
        """
        if self.redis is None:
            return self.fallback.seen(message_id)

        try:
            claimed = self.redis.set(f"dedup:{message_id}", 1, nx=True, ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.error(f"Redis deduplication failed for {message_id}, using in-memory: {str(e)}")
            return self.fallback.seen(message_id)

        if not claimed:
            logger.info(f"Skipping duplicate message {message_id} (Redis)")
            return True
        return False

    def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(self.redis.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False
