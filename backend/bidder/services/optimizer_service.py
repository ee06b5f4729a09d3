"""
Optimizer Service — spend vs budget analysis and account-level summaries.
Composes discovery, trailing-spend analytics and the recommendation engine.
Everything is computed fresh per request.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Optional

from bidder.config import Settings, get_settings
from bidder.errors import UpstreamError
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.analytics_service import fetch_trailing_spend, spend_for
from bidder.services.cooldown import CooldownLedger
from bidder.services.discovery_service import fetch_active_campaigns
from bidder.services.recommendation import (
    DEFAULT_ADJUSTMENT, normalize_adjustment_percent, recommend, spend_percentage,
)
from bidder.services.session_service import SessionDirectory
from bidder.services.settings_store import SettingsStore
from bidder.services.types import DEFAULT_CURRENCY, CooldownEntry
from bidder.utils import normalize_campaign_id

logger = logging.getLogger(__name__)


class OptimizerService:
    def __init__(
        self,
        client: LinkedInAdsClient,
        ledger: CooldownLedger,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.ledger = ledger
        self.settings = settings or get_settings()

    async def analyze_spend(
        self,
        account_id: str,
        adjustment_percent: Any = DEFAULT_ADJUSTMENT,
        today: Optional[date] = None,
    ) -> list[dict]:
        """
        One row per active campaign: budget, trailing average spend, current
        bid and the recommendation (None inside the target band).
        """
        pct = normalize_adjustment_percent(adjustment_percent)
        campaigns = await fetch_active_campaigns(
            self.client,
            account_id,
            page_size=self.settings.campaign_page_size,
            max_pages=self.settings.campaign_max_pages,
            batch_size=self.settings.lookup_batch_size,
        )
        if not campaigns:
            logger.info(f"Spend analysis: no active campaigns for account {account_id}")
            return []

        samples = await fetch_trailing_spend(
            self.client,
            account_id,
            campaigns,
            today=today,
            batch_size=self.settings.lookup_batch_size,
            timeout=self.settings.analytics_timeout_seconds,
        )

        analysis = []
        for campaign in campaigns:
            daily_spend = spend_for(samples, campaign.id)
            rec = recommend(campaign.daily_budget, campaign.current_bid, daily_spend, pct)
            analysis.append({
                "id": campaign.id,
                "name": campaign.name,
                "status": campaign.status or "ACTIVE",
                "currency": campaign.currency or DEFAULT_CURRENCY,
                "daily_budget": campaign.daily_budget,
                "daily_spend": daily_spend,
                "spend_percentage": round(spend_percentage(daily_spend, campaign.daily_budget), 1),
                "current_bid": campaign.current_bid,
                "recommendation": rec.to_dict() if rec else None,
            })
        return analysis

    async def cooldown_exclusions(
        self,
        tenant_id: str,
        account_id: str,
        fallback_ids: Optional[list[str]] = None,
    ) -> list[str]:
        """Campaign IDs in the cooldown window: from the ledger when durable, else the caller's list."""
        if self.ledger.durable:
            return [e.campaign_id for e in await self.ledger.list_recent(tenant_id, account_id)]
        return [c for c in (normalize_campaign_id(i) for i in (fallback_ids or [])) if c]

    async def account_has_optimization(
        self,
        tenant_id: str,
        account_id: str,
        exclude_campaign_ids: Optional[list[str]] = None,
    ) -> bool:
        """True if any active campaign outside the cooldown window has a recommendation."""
        excluded = set(await self.cooldown_exclusions(tenant_id, account_id, exclude_campaign_ids))
        try:
            analysis = await self.analyze_spend(account_id)
        except UpstreamError as e:
            logger.warning(f"Optimization status unavailable for account {account_id}: {e.detail}")
            return False
        return any(row["recommendation"] for row in analysis if row["id"] not in excluded)

    async def list_accounts(
        self,
        store: SettingsStore,
        tenant_id: str,
        include_optimization: bool = False,
        recently_optimized: Optional[list[str]] = None,
    ) -> list[dict]:
        """
        Ad accounts visible to the tenant (all of them if no selection was ever saved),
        optionally annotated with has_optimization.
        """
        accounts = await self.client.list_accounts()
        selected = await store.get_selected_accounts(tenant_id)
        if selected is not None:
            allowed = set(selected)
            accounts = [acc for acc in accounts if str(acc.get("id")) in allowed]

        if include_optimization and accounts:
            flags = await asyncio.gather(*(
                self.account_has_optimization(tenant_id, str(acc.get("id")), recently_optimized)
                for acc in accounts
            ))
            accounts = [{**acc, "has_optimization": flag} for acc, flag in zip(accounts, flags)]
        return accounts


async def list_recently_optimized(ledger: CooldownLedger, tenant_id: str, account_id: str) -> list[CooldownEntry]:
    """Cooldown entries for one account, newest first (empty without server-side tracking)."""
    return await ledger.list_recent(tenant_id, account_id)


async def delete_tenant_data(
    tenant_id: str,
    store: SettingsStore,
    ledger: CooldownLedger,
    sessions: Optional[SessionDirectory] = None,
) -> None:
    """Remove every row scoped to a tenant: settings, cooldown entries, then the session user."""
    await store.delete_tenant(tenant_id)
    await ledger.delete_tenant(tenant_id)
    if sessions is not None:
        await sessions.forget(tenant_id)
    logger.info(f"Deleted data for tenant {tenant_id}")
