"""Configuration module for SiteChat.

Provides configuration management for crawling, embeddings, completion and the database.
"""

from .settings import AppConfig, DEFAULT_CONFIG, get_app_config
from .database import (
    DatabaseConfig,
    create_all,
    create_db_engine,
    create_session_factory
)

__all__ = [
    'AppConfig',
    'DEFAULT_CONFIG',
    'get_app_config',
    'DatabaseConfig',
    'create_all',
    'create_db_engine',
    'create_session_factory'
]
