"""
Campaign Discovery — active campaigns in active campaign groups.

Primary path: paginated campaign search filtered to status ACTIVE, then a
per-campaign lookup of campaignGroupInfo to keep only campaigns whose group is
ACTIVE. If the search is rejected (4xx) or fails transiently, or returns
nothing, fall back to one unfiltered page filtered locally.

Known tradeoff: when group filtering eliminates every candidate we return the
unfiltered candidates instead of an empty list. This keeps incomplete
campaignGroupInfo data from hiding live campaigns, at the cost of sometimes
treating a genuinely idle account as having active campaigns.
"""

import asyncio
import logging
from typing import Optional

from bidder.errors import AuthError, OptimizerError, UpstreamError
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.types import Campaign

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
ACTIVE_SEARCH = "(status:(values:List(ACTIVE)))"
PAGE_SIZE = 500
MAX_PAGES = 50
LOOKUP_BATCH_SIZE = 10


async def get_group_status(client: LinkedInAdsClient, account_id: str, campaign_id: str) -> Optional[str]:
    """Upper-cased campaign group status, or None when it cannot be determined."""
    try:
        data = await client.get_campaign(account_id, campaign_id, fields="campaignGroupInfo")
    except OptimizerError as e:
        logger.warning(f"Group status lookup failed for campaign {campaign_id}: {e.detail}")
        return None
    info = data.get("campaignGroupInfo") or data.get("campaigngroupinfo")
    if not isinstance(info, dict):
        return None
    status = str(info.get("status") or info.get("Status") or "").upper()
    return status or None


async def filter_by_active_group(
    client: LinkedInAdsClient,
    account_id: str,
    campaigns: list[Campaign],
    batch_size: int = LOOKUP_BATCH_SIZE,
) -> list[Campaign]:
    """Keep campaigns whose group is ACTIVE. A failed lookup excludes the campaign."""
    if not campaigns:
        return []
    active_ids: set[str] = set()
    for i in range(0, len(campaigns), batch_size):
        batch = campaigns[i:i + batch_size]
        statuses = await asyncio.gather(
            *(get_group_status(client, account_id, c.id) for c in batch)
        )
        for campaign, status in zip(batch, statuses):
            campaign.group_status = status
            if status == ACTIVE:
                active_ids.add(campaign.id)
    return [c for c in campaigns if c.id in active_ids]


async def _search_active_pages(
    client: LinkedInAdsClient,
    account_id: str,
    page_size: int,
    max_pages: int,
) -> list[Campaign]:
    found: list[Campaign] = []
    page_token = None
    for page in range(max_pages):
        data = await client.search_campaigns(
            account_id,
            search=ACTIVE_SEARCH,
            sort_order="DESCENDING",
            page_size=page_size,
            page_token=page_token,
        )
        elements = data.get("elements") or []
        found.extend(Campaign.from_api(e) for e in elements)
        next_token = (data.get("metadata") or {}).get("nextPageToken")
        logger.info(f"Campaign search page {page + 1} for account {account_id}: {len(elements)} campaigns")
        if not next_token or not elements:
            break
        page_token = next_token
    return found


async def _fallback_listing(
    client: LinkedInAdsClient,
    account_id: str,
    batch_size: int,
) -> list[Campaign]:
    data = await client.search_campaigns(account_id)
    raw = [Campaign.from_api(e) for e in data.get("elements") or []]
    logger.info(f"Fallback listing for account {account_id}: {len(raw)} campaigns")
    active = [c for c in raw if c.is_active]
    # Some responses omit status entirely
    candidates = active or raw
    filtered = await filter_by_active_group(client, account_id, candidates, batch_size)
    if not filtered and candidates:
        logger.info(f"Fallback: all {len(candidates)} candidates filtered out by group status, returning unfiltered")
        return candidates
    return filtered


async def fetch_active_campaigns(
    client: LinkedInAdsClient,
    account_id: str,
    *,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
    batch_size: int = LOOKUP_BATCH_SIZE,
) -> list[Campaign]:
    """
    Active campaigns of an account whose campaign group is also active.

    Auth failures propagate from either path. Upstream failures on the primary
    search trigger the fallback; failures on the fallback propagate.
    """
    if not client.access_token:
        raise AuthError("No valid session. Sign in again.")

    try:
        candidates = await _search_active_pages(client, account_id, page_size, max_pages)
        if candidates:
            filtered = await filter_by_active_group(client, account_id, candidates, batch_size)
            if not filtered:
                logger.info(f"All {len(candidates)} campaigns filtered out by group status, returning unfiltered")
                return candidates
            return filtered
        logger.info(f"Campaign search returned nothing for account {account_id}, trying fallback")
    except UpstreamError as e:
        logger.warning(f"Campaign search failed for account {account_id} ({e.category}), trying fallback: {e.detail}")

    try:
        return await _fallback_listing(client, account_id, batch_size)
    except OptimizerError as e:
        logger.error(f"Fallback campaign listing failed for account {account_id}: {e.detail}")
        raise


async def list_campaigns(client: LinkedInAdsClient, account_id: str) -> list[Campaign]:
    """General campaign list: one page, no status filter."""
    data = await client.search_campaigns(account_id)
    return [Campaign.from_api(e) for e in data.get("elements") or []]
