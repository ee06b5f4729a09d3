"""
Bid Mutator — applies a new per-unit bid to a campaign and keeps the
cooldown ledger in step.

The platform's partial update requires a currency-tagged amount, so the
campaign is read first for its currency. The mutation and the ledger update
are separate calls: a failed mutation never touches the ledger, while a crash
between the two leaves the bid changed without a cooldown entry.
"""

import logging
from typing import Any, Optional

from bidder.errors import ValidationError
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.cooldown import CooldownLedger
from bidder.services.types import DEFAULT_CURRENCY
from bidder.utils import normalize_account_id, normalize_campaign_id

logger = logging.getLogger(__name__)


def _parse_bid(value: Any, field_name: str) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")


def format_amount(bid: float) -> str:
    return f"{round(bid, 2):.2f}"


async def get_campaign_currency(client: LinkedInAdsClient, account_id: str, campaign_id: str) -> str:
    campaign = await client.get_campaign(account_id, campaign_id)
    daily_budget = campaign.get("dailyBudget") or {}
    unit_cost = campaign.get("unitCost") or {}
    return daily_budget.get("currencyCode") or unit_cost.get("currencyCode") or DEFAULT_CURRENCY


async def apply_bid(
    client: LinkedInAdsClient,
    ledger: CooldownLedger,
    tenant_id: str,
    account_id: Any,
    campaign_id: Any,
    new_bid: Any,
    previous_bid: Any = None,
    revert: bool = False,
) -> dict:
    """
    Set the campaign's unitCost to ``new_bid``.
    On success: revert → clear the cooldown; otherwise record it when a previous bid is given.
    """
    account_id = normalize_account_id(account_id)
    if not account_id:
        raise ValidationError("ad_account_id required (query, body, or header X-Ad-Account-Id)")
    campaign_id = normalize_campaign_id(campaign_id)
    if not campaign_id:
        raise ValidationError("campaign_id required")

    bid = _parse_bid(new_bid, "new_bid")
    if bid is None or bid <= 0:
        raise ValidationError("Invalid bid amount: new_bid must be greater than 0")
    prior = _parse_bid(previous_bid, "previous_bid")

    currency = await get_campaign_currency(client, account_id, campaign_id)
    amount = format_amount(bid)
    await client.partial_update_campaign(
        account_id,
        campaign_id,
        {"unitCost": {"amount": amount, "currencyCode": currency}},
    )
    logger.info(f"Bid for campaign {campaign_id} (account {account_id}) set to {amount} {currency}"
                f"{' (revert)' if revert else ''}")

    if revert:
        await ledger.remove(tenant_id, account_id, campaign_id)
    elif prior is not None:
        await ledger.record(tenant_id, account_id, campaign_id, prior)

    return {"success": True, "message": "Bid updated successfully", "amount": amount, "currency": currency}
