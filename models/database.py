# models/database.py
import os
import logging
from datetime import datetime
from sqlalchemy import (
    create_engine, Column, String, DateTime, Integer, Text, JSON, ForeignKey, inspect
)
from sqlalchemy.orm import declarative_base, sessionmaker
from config import DATABASE_URL, DATABASE_PATH

logger = logging.getLogger(__name__)

# Create base class for declarative models
Base = declarative_base()


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    phone_number = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False, default='active')  # active / inactive
    user_name = Column(String)
    google_mail = Column(String)

    # Google Drive OAuth tokens
    access_token = Column(Text)
    refresh_token = Column(Text)
    scope = Column(Text)
    token_type = Column(String)
    expiry_date = Column(DateTime)

    default_folder_id = Column(String)
    folders = Column(JSON, default=list)  # explicit folder list [{id, name, savedAt, isDefault}]

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserDocument(Base):
    __tablename__ = 'user_documents'

    id = Column(Integer, primary_key=True)
    phone_number = Column(String, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    file_name = Column(String, nullable=False)
    mime_type = Column(String)
    # "metadata" is reserved on declarative classes
    doc_metadata = Column('metadata', JSON, nullable=False, default=dict)
    google_drive_link = Column(String)
    google_drive_id = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


def get_database_url():
    """Get the database URL from environment or use SQLite as fallback"""
    postgres_url = DATABASE_URL

    if postgres_url:
        # Ensure the URL uses the correct driver for SQLAlchemy
        if postgres_url.startswith('postgres:'):
            postgres_url = postgres_url.replace('postgres:', 'postgresql:', 1)
        logger.info(f"Using database: {postgres_url.split('@')[1] if '@' in postgres_url else postgres_url}")
        return postgres_url

    os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
    logger.info(f"No DATABASE_URL set, using SQLite database at: {DATABASE_PATH}")
    return f'sqlite:///{DATABASE_PATH}'


def create_db_engine(database_url=None, **overrides):
    """
    Create an engine with parameters suited to the database type.

    Args:
        database_url: SQLAlchemy URL (defaults to get_database_url())
        overrides: Extra keyword arguments passed to create_engine

    Returns:
        Engine: The SQLAlchemy engine
    """
    database_url = database_url or get_database_url()

    engine_params = {
        'pool_pre_ping': True
    }

    # Add PostgreSQL-specific parameters only if using PostgreSQL
    if database_url.startswith('postgresql'):
        engine_params.update({
            'pool_size': 10,
            'max_overflow': 20,
            'pool_recycle': 300,
            'connect_args': {'connect_timeout': 10}
        })

    engine_params.update(overrides)
    return create_engine(database_url, **engine_params)


def init_db(engine):
    """Create tables that don't exist yet"""
    existing_tables = inspect(engine).get_table_names()
    logger.info(f"Existing tables: {existing_tables}")
    Base.metadata.create_all(engine)
    logger.info("✅ Database tables created/verified successfully")


_engine = None
_session_factory = None


def get_engine():
    """Get the process-wide engine, creating it on first use"""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory():
    """Get the process-wide session factory"""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory
