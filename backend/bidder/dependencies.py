"""
Request-scoped dependencies shared by the routers.
"""

from typing import AsyncIterator, Optional
from fastapi import Depends, Header, Query

from bidder.auth import require_tenant
from bidder.config import get_settings
from bidder.errors import ValidationError
from bidder.linkedin_client import LinkedInAdsClient, create_ads_client
from bidder.services.cooldown import CooldownLedger
from bidder.services.optimizer_service import OptimizerService
from bidder.services.session_service import TenantSession
from bidder.stores import get_cooldown_ledger
from bidder.utils import normalize_account_id


async def get_ads_client(
    session: TenantSession = Depends(require_tenant),
) -> AsyncIterator[LinkedInAdsClient]:
    """One LinkedIn client per request, closed when the response is sent."""
    async with create_ads_client(session.access_token, get_settings()) as client:
        yield client


def get_account_id(
    ad_account_id: Optional[str] = Query(None, description="Ad account ID (numeric or URN)"),
    x_ad_account_id: Optional[str] = Header(None),
) -> str:
    """Account from the query string or the X-Ad-Account-Id header."""
    account_id = normalize_account_id(ad_account_id) or normalize_account_id(x_ad_account_id)
    if not account_id:
        raise ValidationError("ad_account_id required (query or header X-Ad-Account-Id)")
    return account_id


def get_optional_account_id(
    ad_account_id: Optional[str] = Query(None),
    x_ad_account_id: Optional[str] = Header(None),
) -> Optional[str]:
    return normalize_account_id(ad_account_id) or normalize_account_id(x_ad_account_id)


def get_optimizer(
    client: LinkedInAdsClient = Depends(get_ads_client),
    ledger: CooldownLedger = Depends(get_cooldown_ledger),
) -> OptimizerService:
    return OptimizerService(client, ledger, get_settings())
