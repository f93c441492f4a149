"""
Configuration Module
------------------
This module contains configuration settings for the Drive intake bot.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Directory Configuration
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.getenv('DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOG_DIR = os.getenv('LOG_DIR', os.path.join(BASE_DIR, 'logs'))

# WhatsApp Configuration
WHATSAPP_API_VERSION = os.getenv('WHATSAPP_API_VERSION', 'v22.0')
WHATSAPP_API_URL = f"https://graph.facebook.com/{WHATSAPP_API_VERSION}"
WHATSAPP_PHONE_NUMBER_ID = os.getenv('WHATSAPP_PHONE_NUMBER_ID')
WHATSAPP_ACCESS_TOKEN = os.getenv('WHATSAPP_ACCESS_TOKEN')
WHATSAPP_VERIFY_TOKEN = os.getenv('WHATSAPP_VERIFY_TOKEN') or os.getenv('VERIFY_TOKEN')

# Google OAuth Configuration (used for token refresh only)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPES = [
    'https://www.googleapis.com/auth/drive.file',
    'https://www.googleapis.com/auth/userinfo.profile',
    'https://www.googleapis.com/auth/userinfo.email',
    'openid'
]

# Database configuration
DATABASE_URL = os.getenv('DATABASE_URL')
DATABASE_PATH = os.path.join(DATA_DIR, "documents.db")

# Redis (optional, shared deduplication)
REDIS_URL = os.getenv('REDIS_URL')

# Conversation settings
DEDUP_CAPACITY = int(os.getenv('DEDUP_CAPACITY', 2000))
DEDUP_EVICT_COUNT = int(os.getenv('DEDUP_EVICT_COUNT', 200))
DEDUP_TTL_SECONDS = int(os.getenv('DEDUP_TTL_SECONDS', 86400))
SESSION_TTL_SECONDS = int(os.getenv('SESSION_TTL_SECONDS', 3600))
DEFAULT_FOLDER_NAME = os.getenv('DEFAULT_FOLDER_NAME', 'WhatsAppBotUpload')
LEGACY_DEFAULT_FOLDER_NAMES = ('WhatsAppBotUpload', 'WhatsAppBotUploads')

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.path.join(LOG_DIR, "app.log")

# Application configuration
VERSION = "v1.0.0"
DEBUG = os.getenv("FLASK_ENV") == "development"
PORT = int(os.getenv("PORT", 5000))
HOST = os.getenv("HOST", "0.0.0.0")
