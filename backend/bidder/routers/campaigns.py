"""
Campaign Router — list/read campaigns, today's spend, and bid updates.
Every endpoint is scoped to the ad account passed in the request.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bidder.auth import require_tenant
from bidder.dependencies import get_ads_client, get_optional_account_id
from bidder.errors import ValidationError
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.analytics_service import fetch_campaign_cost
from bidder.services.bid_service import apply_bid
from bidder.services.cooldown import CooldownLedger
from bidder.services.discovery_service import list_campaigns
from bidder.services.session_service import TenantSession
from bidder.services.types import Campaign
from bidder.stores import get_cooldown_ledger
from bidder.utils import normalize_account_id, normalize_campaign_id

logger = logging.getLogger(__name__)
router = APIRouter()


class BidUpdateRequest(BaseModel):
    new_bid: Optional[float | str] = None  # validated by apply_bid
    previous_bid: Optional[float | str] = None  # "" = not provided
    revert: bool = False
    ad_account_id: Optional[str | int] = None


def _require_account(account_id: Optional[str]) -> str:
    if not account_id:
        raise ValidationError("ad_account_id required (query or header X-Ad-Account-Id)")
    return account_id


@router.get("")
@router.get("/")
async def get_campaigns(
    account_id: Optional[str] = Depends(get_optional_account_id),
    client: LinkedInAdsClient = Depends(get_ads_client),
):
    """All campaigns of the account (one page, no status filter)."""
    campaigns = await list_campaigns(client, _require_account(account_id))
    return {"campaigns": [c.to_dict() for c in campaigns]}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    account_id: Optional[str] = Depends(get_optional_account_id),
    client: LinkedInAdsClient = Depends(get_ads_client),
):
    """Campaign details including budget and bid."""
    data = await client.get_campaign(_require_account(account_id), normalize_campaign_id(campaign_id))
    return {"campaign": Campaign.from_api(data).to_dict()}


@router.get("/{campaign_id}/analytics")
async def get_campaign_analytics(
    campaign_id: str,
    account_id: Optional[str] = Depends(get_optional_account_id),
    client: LinkedInAdsClient = Depends(get_ads_client),
):
    """Today's spend so far for one campaign."""
    cost = await fetch_campaign_cost(client, _require_account(account_id), normalize_campaign_id(campaign_id))
    return {"analytics": {"cost": cost}}


@router.patch("/{campaign_id}/bid")
async def update_bid(
    campaign_id: str,
    payload: BidUpdateRequest,
    account_id: Optional[str] = Depends(get_optional_account_id),
    session: TenantSession = Depends(require_tenant),
    client: LinkedInAdsClient = Depends(get_ads_client),
    ledger: CooldownLedger = Depends(get_cooldown_ledger),
):
    """
    Apply a new bid. With previous_bid the campaign enters the 48h cooldown;
    with revert=true its cooldown entry is cleared.
    """
    return await apply_bid(
        client,
        ledger,
        session.tenant_id,
        account_id or normalize_account_id(payload.ad_account_id),
        campaign_id,
        payload.new_bid,
        previous_bid=payload.previous_bid,
        revert=payload.revert,
    )
