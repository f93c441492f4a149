"""
WhatsApp Media Package
----------------------
Fetching the media users send so it can be stored in Google Drive.
"""

from .downloader import MediaDownloader

__all__ = ['MediaDownloader']
