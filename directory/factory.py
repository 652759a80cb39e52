"""
directory/factory.py -- Build the configured DirectoryStore.

DIRECTORY_BACKEND selects the implementation:
  supabase -- SupabaseDirectoryStore (hosted provider; production)
  sql      -- SqlDirectoryStore on DATABASE_URL (local development)
"""

from __future__ import annotations

import logging

from auth.store import DirectoryStore, SqlDirectoryStore
from auth.supabase_store import SupabaseDirectoryStore
from core.config import Settings

logger = logging.getLogger("portfolio.directory")


def build_store(settings: Settings) -> DirectoryStore:
    if settings.directory_backend == "sql":
        logger.info("Using SQL directory store")
        return SqlDirectoryStore(settings.database_url)

    logger.info("Using Supabase directory store")
    return SupabaseDirectoryStore(
        settings.supabase_url,
        settings.supabase_service_key,
        table=settings.supabase_users_table,
    )
