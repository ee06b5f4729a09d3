"""
Tests for spend analysis, account summaries and tenant deletion.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from bidder.config import Settings
from bidder.errors import UpstreamTransient
from bidder.services.cooldown import NullCooldownLedger, SqlCooldownLedger
from bidder.services.optimizer_service import (
    OptimizerService,
    delete_tenant_data,
    list_recently_optimized,
)
from bidder.services.settings_store import FileSettingsStore
from conftest import campaign_element

TENANT = "default"
ACCOUNT = "507"
TODAY = date(2026, 10, 16)


@pytest.fixture
def settings():
    return Settings(database_url="", jwt_secret="")


@pytest.fixture
def optimizer(client, settings):
    return OptimizerService(client, NullCooldownLedger(), settings)


def _active(fake_api, account, *elements):
    fake_api.search_pages[account] = [list(elements)]
    for e in elements:
        fake_api.group_status[str(e["id"])] = "ACTIVE"


@pytest.mark.anyio
async def test_underspending_campaign_gets_increase(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(1, name="Brand", budget=100, bid=2.00))
    fake_api.costs["1"] = [20, 25, 15]

    [row] = await optimizer.analyze_spend(ACCOUNT, "5", today=TODAY)

    assert row["id"] == "1"
    assert row["name"] == "Brand"
    assert row["daily_spend"] == pytest.approx(20.0)
    assert row["spend_percentage"] == 20.0
    assert row["recommendation"]["action"] == "increase"
    assert row["recommendation"]["recommended_bid"] == 2.10
    assert row["recommendation"]["change_percent"] == 5


@pytest.mark.anyio
async def test_overspending_campaign_gets_decrease(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(2, budget=50, bid=1.00))
    fake_api.costs["2"] = [60, 70, 50]

    [row] = await optimizer.analyze_spend(ACCOUNT, 10, today=TODAY)

    assert row["daily_spend"] == pytest.approx(60.0)
    assert row["spend_percentage"] == 120.0
    assert row["recommendation"]["action"] == "decrease"
    assert row["recommendation"]["recommended_bid"] == 0.90
    assert row["recommendation"]["change_percent"] == -10


@pytest.mark.anyio
async def test_on_target_campaign_has_no_recommendation(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(3, budget=100, bid=2.0))
    fake_api.costs["3"] = [95, 95, 95]

    [row] = await optimizer.analyze_spend(ACCOUNT, today=TODAY)

    assert row["recommendation"] is None


@pytest.mark.anyio
async def test_analytics_failure_reads_as_zero_spend(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(4, budget=100, bid=2.0))
    fake_api.analytics_failures.add("4")

    [row] = await optimizer.analyze_spend(ACCOUNT, today=TODAY)

    assert row["daily_spend"] == 0.0
    assert row["recommendation"]["action"] == "increase"
    assert row["recommendation"]["recommended_bid"] == 2.04


@pytest.mark.anyio
async def test_row_defaults(optimizer, fake_api):
    """Missing currency and zero bid still produce a row."""
    element = campaign_element(5, currency=None, bid=None)
    element["dailyBudget"].pop("currencyCode")
    _active(fake_api, ACCOUNT, element)

    [row] = await optimizer.analyze_spend(ACCOUNT, today=TODAY)

    assert row["currency"] == "USD"
    assert row["current_bid"] == 0.0
    assert row["status"] == "ACTIVE"
    assert row["recommendation"] is None


@pytest.mark.anyio
async def test_no_active_campaigns_is_empty(optimizer, fake_api):
    assert await optimizer.analyze_spend(ACCOUNT, today=TODAY) == []
    assert not any("adAnalytics" in r.url.path for r in fake_api.requests)


@pytest.mark.anyio
async def test_has_optimization_ignores_cooled_down_campaigns(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(1, budget=100, bid=2.0), campaign_element(2, budget=100, bid=2.0))
    fake_api.costs.update({"1": [10, 10, 10], "2": [95, 95, 95]})

    assert await optimizer.account_has_optimization(TENANT, ACCOUNT) is True
    assert await optimizer.account_has_optimization(TENANT, ACCOUNT, ["1"]) is False


@pytest.mark.anyio
async def test_cooldown_exclusions_accept_campaign_urns(optimizer, fake_api):
    _active(fake_api, ACCOUNT, campaign_element(1, budget=100, bid=2.0))
    fake_api.costs["1"] = [10, 10, 10]

    assert await optimizer.cooldown_exclusions(TENANT, ACCOUNT, ["urn:li:sponsoredCampaign:1", ""]) == ["1"]
    assert await optimizer.account_has_optimization(TENANT, ACCOUNT, ["urn:li:sponsoredCampaign:1"]) is False


@pytest.mark.anyio
async def test_has_optimization_uses_durable_ledger(client, settings, fake_api, session_factory):
    ledger = SqlCooldownLedger(session_factory)
    await ledger.record(TENANT, ACCOUNT, "1", 2.0)
    optimizer = OptimizerService(client, ledger, settings)
    _active(fake_api, ACCOUNT, campaign_element(1, budget=100, bid=2.0))

    # Caller-supplied IDs are ignored when the server tracks cooldowns
    assert await optimizer.cooldown_exclusions(TENANT, ACCOUNT, ["99"]) == ["1"]
    assert await optimizer.account_has_optimization(TENANT, ACCOUNT, []) is False


@pytest.mark.anyio
async def test_has_optimization_false_on_upstream_failure(optimizer):
    with patch.object(optimizer, "analyze_spend", new_callable=AsyncMock, side_effect=UpstreamTransient("down")):
        assert await optimizer.account_has_optimization(TENANT, ACCOUNT) is False


@pytest.mark.anyio
async def test_list_accounts_without_selection_shows_all(optimizer, fake_api, tmp_path):
    fake_api.accounts = [{"id": 507, "name": "A"}, {"id": 508, "name": "B"}]
    store = FileSettingsStore(tmp_path / "s.json")

    accounts = await optimizer.list_accounts(store, TENANT)

    assert [a["id"] for a in accounts] == [507, 508]
    assert "has_optimization" not in accounts[0]


@pytest.mark.anyio
async def test_list_accounts_filters_by_selection(optimizer, fake_api, tmp_path):
    fake_api.accounts = [{"id": 507, "name": "A"}, {"id": 508, "name": "B"}]
    store = FileSettingsStore(tmp_path / "s.json")
    await store.set_selected_accounts(TENANT, ["508"])

    accounts = await optimizer.list_accounts(store, TENANT)
    assert [a["id"] for a in accounts] == [508]

    await store.set_selected_accounts(TENANT, [])
    assert await optimizer.list_accounts(store, TENANT) == []


@pytest.mark.anyio
async def test_list_accounts_with_optimization_flags(optimizer, fake_api, tmp_path):
    fake_api.accounts = [{"id": 507, "name": "A"}, {"id": 508, "name": "B"}]
    _active(fake_api, "507", campaign_element(1, budget=100, bid=2.0))
    fake_api.costs["1"] = [0, 0, 0]
    store = FileSettingsStore(tmp_path / "s.json")

    accounts = await optimizer.list_accounts(store, TENANT, include_optimization=True)

    flags = {a["id"]: a["has_optimization"] for a in accounts}
    assert flags == {507: True, 508: False}


@pytest.mark.anyio
async def test_list_recently_optimized(session_factory):
    ledger = SqlCooldownLedger(session_factory)
    await ledger.record(TENANT, ACCOUNT, "1", 2.0)
    entries = await list_recently_optimized(ledger, TENANT, ACCOUNT)
    assert [e.campaign_id for e in entries] == ["1"]
    assert await list_recently_optimized(NullCooldownLedger(), TENANT, ACCOUNT) == []


@pytest.mark.anyio
async def test_delete_tenant_data(session_factory, tmp_path):
    store = FileSettingsStore(tmp_path / "s.json")
    ledger = SqlCooldownLedger(session_factory)
    sessions = AsyncMock()
    await store.set_selected_accounts(TENANT, ["507"])
    await ledger.record(TENANT, ACCOUNT, "1", 2.0)

    await delete_tenant_data(TENANT, store, ledger, sessions)

    assert await store.get_selected_accounts(TENANT) is None
    assert await ledger.list_recent(TENANT, ACCOUNT) == []
    sessions.forget.assert_awaited_once_with(TENANT)
