"""
Tests for trailing-window spend aggregation.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from bidder.services.analytics_service import (
    fetch_campaign_cost,
    fetch_trailing_spend,
    spend_for,
    trailing_window,
)
from bidder.services.types import Campaign

ACCOUNT = "507"
TODAY = date(2026, 10, 16)


def test_trailing_window_excludes_today():
    assert trailing_window(TODAY) == (date(2026, 10, 13), date(2026, 10, 15))


def test_trailing_window_crosses_month_boundary():
    assert trailing_window(date(2026, 3, 2)) == (date(2026, 2, 27), date(2026, 3, 1))


@pytest.mark.anyio
async def test_average_over_three_days(client, fake_api):
    fake_api.costs["1"] = [20, 25, 15]
    samples = await fetch_trailing_spend(client, ACCOUNT, [Campaign(id="1")], today=TODAY)
    assert samples["1"].cost == pytest.approx(20.0)
    assert samples["1"].days == 3

    url = str(fake_api.requests[0].url)
    assert "start:(year:2026,month:10,day:13)" in url
    assert "end:(year:2026,month:10,day:15)" in url


@pytest.mark.anyio
async def test_missing_days_count_as_zero(client, fake_api):
    """One row of 30 over a 3-day window averages to 10."""
    fake_api.costs["1"] = [30]
    samples = await fetch_trailing_spend(client, ACCOUNT, [Campaign(id="1")], today=TODAY)
    assert samples["1"].cost == pytest.approx(10.0)


@pytest.mark.anyio
async def test_failed_call_leaves_campaign_without_sample(client, fake_api):
    fake_api.costs.update({"1": [3, 3, 3], "2": [9, 9, 9]})
    fake_api.analytics_failures.add("2")
    campaigns = [Campaign(id="1"), Campaign(id="2")]

    samples = await fetch_trailing_spend(client, ACCOUNT, campaigns, today=TODAY)

    assert set(samples) == {"1"}
    assert spend_for(samples, "1") == pytest.approx(3.0)
    assert spend_for(samples, "2") == 0.0


@pytest.mark.anyio
async def test_campaigns_fetched_in_batches(client, fake_api):
    campaigns = [Campaign(id=str(i)) for i in range(1, 26)]
    for c in campaigns:
        fake_api.costs[c.id] = [float(c.id)] * 3

    samples = await fetch_trailing_spend(client, ACCOUNT, campaigns, today=TODAY, batch_size=10)

    assert len(samples) == 25
    assert spend_for(samples, "25") == pytest.approx(25.0)
    assert len(fake_api.requests) == 25


@pytest.mark.anyio
async def test_no_campaigns_makes_no_calls(client, fake_api):
    assert await fetch_trailing_spend(client, ACCOUNT, [], today=TODAY) == {}
    assert fake_api.requests == []


@pytest.mark.anyio
async def test_unexpected_failure_yields_empty_samples():
    client = AsyncMock()
    client.get_campaign_costs.side_effect = TypeError("bad row")
    samples = await fetch_trailing_spend(client, ACCOUNT, [Campaign(id="1")], today=TODAY)
    assert samples == {}


@pytest.mark.anyio
async def test_unparseable_costs_count_as_zero(client, fake_api):
    fake_api.costs["1"] = ["n/a", 6]
    samples = await fetch_trailing_spend(client, ACCOUNT, [Campaign(id="1")], today=TODAY)
    assert samples["1"].cost == pytest.approx(2.0)


@pytest.mark.anyio
async def test_fetch_campaign_cost_single_day(client, fake_api):
    fake_api.costs["1"] = [4.25, 1.75]
    cost = await fetch_campaign_cost(client, ACCOUNT, "1", day=TODAY)
    assert cost == pytest.approx(6.0)
    url = str(fake_api.requests[0].url)
    assert "start:(year:2026,month:10,day:16),end:(year:2026,month:10,day:16)" in url


@pytest.mark.anyio
async def test_undecodable_body_only_zeroes_that_campaign(client, fake_api):
    """A body that is not valid UTF-8 must not discard the other campaigns' samples."""
    fake_api.costs.update({"1": [30, 30, 30], "2": [9, 9, 9]})
    fake_api.garbled_analytics.add("2")
    campaigns = [Campaign(id="1"), Campaign(id="2")]

    samples = await fetch_trailing_spend(client, ACCOUNT, campaigns, today=TODAY)

    assert set(samples) == {"1"}
    assert spend_for(samples, "1") == pytest.approx(30.0)
    assert spend_for(samples, "2") == 0.0
