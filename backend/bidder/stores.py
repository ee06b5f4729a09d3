"""
Persistence backends, chosen once per process from configuration.

With DATABASE_URL: SQL settings store, SQL cooldown ledger, and (when
JWT_SECRET is also set) multi-tenant session lookup.
Without it: JSON-file settings store and no cooldown tracking.
"""

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from bidder import database
from bidder.config import get_settings
from bidder.services.cooldown import CooldownLedger, NullCooldownLedger, SqlCooldownLedger
from bidder.services.session_service import SessionDirectory
from bidder.services.settings_store import FileSettingsStore, SettingsStore, SqlSettingsStore

logger = logging.getLogger(__name__)


@lru_cache
def get_cooldown_ledger() -> CooldownLedger:
    settings = get_settings()
    if database.async_session is None:
        logger.warning("No database configured — cooldown tracking disabled.")
        return NullCooldownLedger()
    return SqlCooldownLedger(database.async_session, window=timedelta(hours=settings.cooldown_hours))


@lru_cache
def get_settings_store() -> SettingsStore:
    settings = get_settings()
    if database.async_session is None:
        return FileSettingsStore(settings.selected_accounts_file)
    return SqlSettingsStore(database.async_session)


@lru_cache
def get_session_directory() -> Optional[SessionDirectory]:
    settings = get_settings()
    if not settings.multi_tenant or database.async_session is None:
        return None
    return SessionDirectory(database.async_session, settings.jwt_secret)
