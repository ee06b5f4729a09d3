"""
Shared fixtures: a fake LinkedIn Marketing API behind httpx.MockTransport and
a throwaway SQLite database for the SQL-backed stores.
"""

import json
import os
import re
from typing import Optional

# Tests run without durable storage unless a fixture builds its own engine
os.environ["DATABASE_URL"] = ""
os.environ["JWT_SECRET"] = ""
os.environ.setdefault("ENVIRONMENT", "development")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bidder.database import Base
from bidder.linkedin_client import LinkedInAdsClient

BASE_URL = "https://api.linkedin.com/rest"
_CAMPAIGN_URN = re.compile(r"sponsoredCampaign:(\d+)")
GARBLED_BODY = b'{"elements": "\xff\xfe"}'


@pytest.fixture
def anyio_backend():
    return "asyncio"


def campaign_element(
    campaign_id,
    name: str = "Campaign",
    status: Optional[str] = "ACTIVE",
    budget: Optional[float] = 100.0,
    bid: Optional[float] = 2.0,
    currency: Optional[str] = "USD",
    use_urn: bool = False,
) -> dict:
    """A campaign as the REST API returns it."""
    element = {"name": name}
    if use_urn:
        element["$URN"] = f"urn:li:sponsoredCampaign:{campaign_id}"
    else:
        element["id"] = int(campaign_id)
    if status is not None:
        element["status"] = status
    if budget is not None:
        element["dailyBudget"] = {"amount": str(budget), "currencyCode": currency}
    if bid is not None:
        element["unitCost"] = {"amount": str(bid), "currencyCode": currency}
    return element


class FakeLinkedIn:
    """
    Minimal stand-in for the endpoints the optimizer calls.
    Configure the attributes, then pass the instance as a MockTransport handler.
    """

    def __init__(self):
        self.accounts: list[dict] = []
        # account -> pages of ACTIVE search results
        self.search_pages: dict[str, list[list[dict]]] = {}
        # account -> single unfiltered page
        self.listing: dict[str, list[dict]] = {}
        # campaign -> full campaign body for single reads
        self.campaigns: dict[str, dict] = {}
        # campaign -> group status; missing = no campaignGroupInfo
        self.group_status: dict[str, str] = {}
        self.group_failures: set[str] = set()
        # campaign IDs whose group lookup body is not valid UTF-8
        self.garbled_groups: set[str] = set()
        # campaign -> daily cost rows
        self.costs: dict[str, list[float]] = {}
        self.analytics_failures: set[str] = set()
        self.garbled_analytics: set[str] = set()
        self.search_error: Optional[int] = None
        self.listing_error: Optional[int] = None
        self.update_error: Optional[int] = None
        self.requests: list[httpx.Request] = []
        self.updates: list[tuple[str, dict]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        assert path.startswith("/rest/")
        parts = path[len("/rest/"):].split("/")

        if parts == ["adAccounts"]:
            return httpx.Response(200, json={"elements": self.accounts})
        if parts == ["adAnalytics"]:
            return self._analytics(request)
        if len(parts) == 3 and parts[0] == "adAccounts" and parts[2] == "adCampaigns":
            return self._search(parts[1], request)
        if len(parts) == 4 and parts[0] == "adAccounts" and parts[2] == "adCampaigns":
            if request.method == "POST":
                return self._update(parts[3], request)
            return self._read(parts[3], request)
        return httpx.Response(404, json={"message": f"Unknown path {path}"})

    def _search(self, account_id: str, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if "search" not in params:
            if self.listing_error:
                return httpx.Response(self.listing_error, json={"message": "listing failed"})
            return httpx.Response(200, json={"elements": self.listing.get(account_id, [])})

        if self.search_error:
            return httpx.Response(self.search_error, json={"message": "search rejected"})
        pages = self.search_pages.get(account_id, [])
        token = params.get("pageToken")
        index = int(token[1:]) if token else 0
        elements = pages[index] if index < len(pages) else []
        metadata = {}
        if index + 1 < len(pages):
            metadata["nextPageToken"] = f"p{index + 1}"
        return httpx.Response(200, json={"elements": elements, "metadata": metadata})

    def _read(self, campaign_id: str, request: httpx.Request) -> httpx.Response:
        if request.url.params.get("fields") == "campaignGroupInfo":
            if campaign_id in self.group_failures:
                return httpx.Response(500, json={"message": "group lookup failed"})
            if campaign_id in self.garbled_groups:
                return httpx.Response(200, content=GARBLED_BODY)
            status = self.group_status.get(campaign_id)
            if status is None:
                return httpx.Response(200, json={})
            return httpx.Response(200, json={"campaignGroupInfo": {"status": status}})
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return httpx.Response(404, json={"message": "Campaign not found"})
        return httpx.Response(200, json=campaign)

    def _update(self, campaign_id: str, request: httpx.Request) -> httpx.Response:
        if self.update_error:
            return httpx.Response(self.update_error, json={"message": "update failed"})
        self.updates.append((campaign_id, json.loads(request.content)))
        return httpx.Response(204)

    def _analytics(self, request: httpx.Request) -> httpx.Response:
        match = _CAMPAIGN_URN.search(request.url.params.get("campaigns", ""))
        campaign_id = match.group(1) if match else ""
        if campaign_id in self.analytics_failures:
            return httpx.Response(503, json={"message": "analytics unavailable"})
        if campaign_id in self.garbled_analytics:
            return httpx.Response(200, content=GARBLED_BODY)
        rows = [{"costInLocalCurrency": str(c)} for c in self.costs.get(campaign_id, [])]
        return httpx.Response(200, json={"elements": rows})


@pytest.fixture
def fake_api() -> FakeLinkedIn:
    return FakeLinkedIn()


@pytest.fixture
async def client(fake_api):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api), base_url=BASE_URL)
    ads_client = LinkedInAdsClient("test-token", base_url=BASE_URL, http=http)
    yield ads_client
    await http.aclose()


@pytest.fixture
async def session_factory(tmp_path):
    import bidder.models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
