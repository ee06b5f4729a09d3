"""
Settings Store — which ad accounts each tenant sees in the optimizer.

None means the tenant never saved a selection (show every account); an empty
list means the tenant deselected everything (show none). Both stores keep
that distinction.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bidder.errors import StorageError
from bidder.models import AppSettings
from bidder.utils import normalize_account_id, utcnow

logger = logging.getLogger(__name__)


def _normalize_ids(ids: list) -> list[str]:
    """Bare numeric account IDs; URN prefixes are stripped and empty values dropped."""
    return [a for a in (normalize_account_id(i) for i in ids) if a]


class SettingsStore(ABC):

    @abstractmethod
    async def get_selected_accounts(self, tenant_id: str) -> Optional[list[str]]:
        ...

    @abstractmethod
    async def set_selected_accounts(self, tenant_id: str, account_ids: list) -> list[str]:
        ...

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> None:
        ...


class SqlSettingsStore(SettingsStore):
    """One app_settings row per tenant."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_selected_accounts(self, tenant_id: str) -> Optional[list[str]]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(AppSettings.selected_account_ids).where(AppSettings.tenant_id == tenant_id)
                )
                ids = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error reading selected accounts: {e}")
            return None
        return _normalize_ids(ids) if ids is not None else None

    async def set_selected_accounts(self, tenant_id: str, account_ids: list) -> list[str]:
        normalized = _normalize_ids(account_ids)
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(AppSettings).where(AppSettings.tenant_id == tenant_id))
                row = result.scalar_one_or_none()
                if not row:
                    row = AppSettings(tenant_id=tenant_id)
                    db.add(row)
                row.selected_account_ids = normalized
                row.updated_at = utcnow()
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error writing selected accounts: {e}")
            raise StorageError("Failed to save settings") from e
        return normalized

    async def delete_tenant(self, tenant_id: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(delete(AppSettings).where(AppSettings.tenant_id == tenant_id))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting app_settings for tenant {tenant_id}: {e}")
            raise StorageError("Failed to delete settings") from e


class FileSettingsStore(SettingsStore):
    """
    JSON file for deployments without a database:
    {"tenants": {"<tenant>": {"selected_account_ids": [...], "updated_at": "..."}}}
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict:
        if not self.path.exists():
            return {"tenants": {}}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict) or not isinstance(data.get("tenants"), dict):
            return {"tenants": {}}
        return data

    def _write(self, data: dict) -> None:
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    async def get_selected_accounts(self, tenant_id: str) -> Optional[list[str]]:
        try:
            data = await asyncio.to_thread(self._read)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading selected accounts from {self.path}: {e}")
            return None
        entry = data["tenants"].get(tenant_id)
        if not isinstance(entry, dict):
            return None
        ids = entry.get("selected_account_ids")
        return _normalize_ids(ids) if isinstance(ids, list) else None

    async def set_selected_accounts(self, tenant_id: str, account_ids: list) -> list[str]:
        normalized = _normalize_ids(account_ids)
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read)
                data["tenants"][tenant_id] = {
                    "selected_account_ids": normalized,
                    "updated_at": utcnow().isoformat(),
                }
                await asyncio.to_thread(self._write, data)
            except (OSError, ValueError) as e:
                logger.error(f"Error writing selected accounts to {self.path}: {e}")
                raise StorageError("Failed to save settings") from e
        return normalized

    async def delete_tenant(self, tenant_id: str) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read)
                if data["tenants"].pop(tenant_id, None) is None:
                    return
                if data["tenants"]:
                    await asyncio.to_thread(self._write, data)
                else:
                    await asyncio.to_thread(self.path.unlink, True)
            except (OSError, ValueError) as e:
                logger.error(f"Error deleting selected accounts in {self.path}: {e}")
                raise StorageError("Failed to delete settings") from e
