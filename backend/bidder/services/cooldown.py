"""
Cooldown Ledger — campaigns that had a bid applied in the last 48 hours.

Rows are keyed by (tenant, account, campaign); applying again replaces the
row and restarts the window. Expired rows are ignored at read time rather than
purged. Reverting deletes the row regardless of its age.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bidder.errors import StorageError
from bidder.models import RecentlyOptimized
from bidder.services.types import CooldownEntry
from bidder.utils import utcnow

logger = logging.getLogger(__name__)

COOLDOWN_WINDOW = timedelta(hours=48)


class CooldownLedger(ABC):
    durable = True

    @abstractmethod
    async def is_recent(self, tenant_id: str, account_id: str, campaign_id: str) -> bool:
        ...

    @abstractmethod
    async def list_recent(self, tenant_id: str, account_id: str) -> list[CooldownEntry]:
        """Unexpired entries, newest first."""

    @abstractmethod
    async def record(self, tenant_id: str, account_id: str, campaign_id: str, previous_bid: Optional[float]) -> None:
        ...

    @abstractmethod
    async def remove(self, tenant_id: str, account_id: str, campaign_id: str) -> None:
        ...

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> None:
        ...


class NullCooldownLedger(CooldownLedger):
    """No durable backend configured: nothing is ever in cooldown."""

    durable = False

    async def is_recent(self, tenant_id, account_id, campaign_id) -> bool:
        return False

    async def list_recent(self, tenant_id, account_id) -> list[CooldownEntry]:
        return []

    async def record(self, tenant_id, account_id, campaign_id, previous_bid) -> None:
        return None

    async def remove(self, tenant_id, account_id, campaign_id) -> None:
        return None

    async def delete_tenant(self, tenant_id) -> None:
        return None


class SqlCooldownLedger(CooldownLedger):
    """Ledger over the recently_optimized table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        window: timedelta = COOLDOWN_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.window = window
        self.clock = clock

    def _cutoff(self) -> datetime:
        return self.clock() - self.window

    @staticmethod
    def _row_filter(tenant_id: str, account_id: str, campaign_id: str):
        return (
            RecentlyOptimized.tenant_id == tenant_id,
            RecentlyOptimized.ad_account_id == str(account_id),
            RecentlyOptimized.campaign_id == str(campaign_id),
        )

    async def is_recent(self, tenant_id: str, account_id: str, campaign_id: str) -> bool:
        query = (
            select(RecentlyOptimized.id)
            .where(*self._row_filter(tenant_id, account_id, campaign_id))
            .where(RecentlyOptimized.applied_at >= self._cutoff())
            .limit(1)
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(query)
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            logger.error(f"Error reading recently_optimized: {e}")
            return False

    async def list_recent(self, tenant_id: str, account_id: str) -> list[CooldownEntry]:
        query = (
            select(RecentlyOptimized)
            .where(
                RecentlyOptimized.tenant_id == tenant_id,
                RecentlyOptimized.ad_account_id == str(account_id),
                RecentlyOptimized.applied_at >= self._cutoff(),
            )
            .order_by(RecentlyOptimized.applied_at.desc())
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error reading recently_optimized: {e}")
            return []
        return [
            CooldownEntry(
                tenant_id=r.tenant_id,
                account_id=r.ad_account_id,
                campaign_id=r.campaign_id,
                applied_at=r.applied_at,
                previous_bid=float(r.previous_bid) if r.previous_bid is not None else None,
            )
            for r in rows
        ]

    async def record(self, tenant_id: str, account_id: str, campaign_id: str, previous_bid: Optional[float]) -> None:
        # Delete-then-insert; concurrent applies for the same campaign are last-writer-wins
        try:
            async with self.session_factory() as db:
                await db.execute(
                    delete(RecentlyOptimized).where(*self._row_filter(tenant_id, account_id, campaign_id))
                )
                db.add(RecentlyOptimized(
                    tenant_id=tenant_id,
                    ad_account_id=str(account_id),
                    campaign_id=str(campaign_id),
                    applied_at=self.clock(),
                    previous_bid=float(previous_bid) if previous_bid is not None else None,
                ))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error recording recently_optimized for campaign {campaign_id}: {e}")
            raise StorageError("Failed to record bid change in the cooldown ledger") from e

    async def remove(self, tenant_id: str, account_id: str, campaign_id: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(
                    delete(RecentlyOptimized).where(*self._row_filter(tenant_id, account_id, campaign_id))
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error removing campaign {campaign_id} from recently_optimized: {e}")
            raise StorageError("Failed to clear the cooldown for this campaign") from e

    async def delete_tenant(self, tenant_id: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(delete(RecentlyOptimized).where(RecentlyOptimized.tenant_id == tenant_id))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting recently_optimized rows for tenant {tenant_id}: {e}")
            raise StorageError("Failed to delete cooldown data") from e
