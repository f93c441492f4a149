"""
WhatsApp Media Downloader
-------------------------
Fetches the bytes of an image or document a user sent, via the Graph API
media endpoint.
"""

import asyncio
import io
import logging

import aiohttp

from config import WHATSAPP_ACCESS_TOKEN, WHATSAPP_API_URL
from models.errors import MediaDownloadError

logger = logging.getLogger(__name__)


class MediaDownloader:
    """
    Downloads media from WhatsApp.

    This class is responsible for:
    1. Resolving a media id to its short-lived download URL
    2. Downloading the content into memory
    """

    def __init__(self, access_token=None, api_url=None, timeout=60):
        """
        Initialize the media downloader.

        Args:
            access_token: WhatsApp API access token (defaults to config)
            api_url: Graph API base URL including the version (defaults to config)
            timeout: Total timeout in seconds for each request
        """
        self.access_token = access_token or WHATSAPP_ACCESS_TOKEN
        self.api_url = api_url or WHATSAPP_API_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch_media(self, media_id: str) -> io.BytesIO:
        """
        Download a media item.

        Args:
            media_id: WhatsApp media id from the inbound message

        Returns:
            io.BytesIO: The media content, positioned at the start

        Raises:
            MediaDownloadError: If the URL lookup or the download fails
        """
        if not media_id:
            raise MediaDownloadError("No media id on the pending upload")

        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                media_url = await self._get_media_url(session, media_id, headers)
                async with session.get(media_url, headers=headers) as response:
                    if response.status != 200:
                        text = await response.text()
                        logger.error(f"Error downloading media {media_id}: {response.status} {text}")
                        raise MediaDownloadError(f"Failed to download media: HTTP {response.status}")
                    content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error downloading media {media_id}: {str(e) or type(e).__name__}")
            raise MediaDownloadError(f"Failed to download media: {str(e) or type(e).__name__}") from e

        logger.info(f"Downloaded media {media_id} ({len(content)} bytes)")
        return io.BytesIO(content)

    async def _get_media_url(self, session, media_id, headers) -> str:
        async with session.get(f"{self.api_url}/{media_id}", headers=headers) as response:
            if response.status != 200:
                text = await response.text()
                logger.error(f"Error getting media URL for {media_id}: {response.status} {text}")
                raise MediaDownloadError(f"Failed to get media URL: HTTP {response.status}")
            data = await response.json()

        media_url = data.get("url")
        if not media_url:
            raise MediaDownloadError(f"No media URL returned for {media_id}")
        return media_url
