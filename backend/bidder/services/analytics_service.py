"""
Analytics Aggregator — average daily spend per campaign over the last 3
fully completed days (today is never included).

Calls are made per campaign, in batches of concurrent requests. Each call
yields a SampleResult; failures are logged and leave the campaign without a
sample, which downstream reads as zero spend.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Optional

from bidder.errors import OptimizerError
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.types import AnalyticsSample, Campaign, SampleResult
from bidder.utils import safe_float

logger = logging.getLogger(__name__)

TRAILING_DAYS = 3
BATCH_SIZE = 10
ANALYTICS_TIMEOUT = 10.0


def trailing_window(today: Optional[date] = None, days: int = TRAILING_DAYS) -> tuple[date, date]:
    """[today - days, today - 1], inclusive."""
    today = today or date.today()
    end = today - timedelta(days=1)
    start = end - timedelta(days=days - 1)
    return start, end


def _sum_cost(rows: list[dict]) -> float:
    return sum(safe_float(row.get("costInLocalCurrency")) for row in rows if isinstance(row, dict))


async def _fetch_sample(
    client: LinkedInAdsClient,
    account_id: str,
    campaign_id: str,
    start: date,
    end: date,
    days: int,
    timeout: float,
) -> SampleResult:
    try:
        rows = await client.get_campaign_costs(account_id, campaign_id, start, end, timeout=timeout)
    except OptimizerError as e:
        return SampleResult(campaign_id=campaign_id, reason=f"{e.category}: {e.detail}")
    # Days without a row count toward the denominator
    cost = _sum_cost(rows) / days
    return SampleResult(
        campaign_id=campaign_id,
        sample=AnalyticsSample(campaign_id=campaign_id, cost=cost, days=days),
    )


async def fetch_trailing_spend(
    client: LinkedInAdsClient,
    account_id: str,
    campaigns: list[Campaign],
    *,
    today: Optional[date] = None,
    batch_size: int = BATCH_SIZE,
    timeout: float = ANALYTICS_TIMEOUT,
    days: int = TRAILING_DAYS,
) -> dict[str, AnalyticsSample]:
    """Average daily spend keyed by campaign ID. Missing keys mean no data (zero spend)."""
    if not campaigns:
        return {}
    start, end = trailing_window(today, days)
    samples: dict[str, AnalyticsSample] = {}
    try:
        for i in range(0, len(campaigns), batch_size):
            batch = campaigns[i:i + batch_size]
            results = await asyncio.gather(
                *(_fetch_sample(client, account_id, c.id, start, end, days, timeout) for c in batch)
            )
            for result in results:
                if result.ok:
                    samples[result.campaign_id] = result.sample
                else:
                    logger.warning(f"No analytics for campaign {result.campaign_id}, using zero: {result.reason}")
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Analytics fetch failed for account {account_id}, using zeros: {e}")
        return {}
    logger.info(f"Analytics for account {account_id} ({start} to {end}): "
                f"{len(samples)}/{len(campaigns)} campaigns with data")
    return samples


def spend_for(samples: dict[str, AnalyticsSample], campaign_id: str) -> float:
    sample = samples.get(campaign_id)
    return sample.cost if sample else 0.0


async def fetch_campaign_cost(
    client: LinkedInAdsClient,
    account_id: str,
    campaign_id: str,
    *,
    day: Optional[date] = None,
) -> float:
    """Total cost of one campaign for a single day (today by default). Errors propagate."""
    day = day or date.today()
    rows = await client.get_campaign_costs(account_id, campaign_id, day, day)
    return _sum_cost(rows)
