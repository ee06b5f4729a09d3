"""
LinkedIn Marketing API Client
Thin async wrapper over the REST endpoints the optimizer needs: ad accounts,
campaign search/read/partial-update, and daily cost analytics.
Normalizes every failure into the optimizer error taxonomy.
"""

import logging
from datetime import date
from typing import Any, Optional
from urllib.parse import quote

import httpx

from bidder.config import Settings, get_settings
from bidder.errors import AuthError, UpstreamRejected, UpstreamTransient
from bidder.utils import account_urn, campaign_urn

logger = logging.getLogger(__name__)


def _restli_date(d: date) -> str:
    return f"(year:{d.year},month:{d.month},day:{d.day})"


def _restli_list(urn: str) -> str:
    return f"List({quote(urn, safe='')})"


class LinkedInAdsClient:
    """
    One instance per request scope. Use as an async context manager so the
    underlying connection pool is closed when the request is done.
    """

    def __init__(
        self,
        access_token: Optional[str],
        base_url: str = "https://api.linkedin.com/rest",
        api_version: str = "202504",
        timeout: float = 15.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._http = http
        self._owns_http = http is None

    async def __aenter__(self) -> "LinkedInAdsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._http

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
            "LinkedIn-Version": self.api_version,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict] = None,
        extra_headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Issue one call and return the decoded JSON body ({} when empty)."""
        if not self.access_token:
            raise AuthError("No valid session. Sign in again.")

        headers = self.headers
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json_body,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTransient(f"LinkedIn API timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise UpstreamTransient(f"LinkedIn API unreachable: {e}") from e

        status = response.status_code
        if status >= 400:
            detail = self._error_detail(response)
            if status in (401, 403):
                raise AuthError(f"LinkedIn rejected the credential ({status}): {detail}")
            if status < 500:
                raise UpstreamRejected(f"LinkedIn API error ({status}): {detail}", status=status)
            raise UpstreamTransient(f"LinkedIn API error ({status}): {detail}", status=status)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError (body not valid UTF-8) are both ValueErrors
            raise UpstreamTransient(f"Malformed response from {path}", status=status) from e
        if not isinstance(data, dict):
            raise UpstreamTransient(f"Unexpected response shape from {path}", status=status)
        return data

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:500]
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error_description") or body)[:500]
        return str(body)[:500]

    # ── Accounts ─────────────────────────────────────────────────────

    async def list_accounts(self) -> list[dict]:
        data = await self._request("GET", "/adAccounts", params={"q": "search"})
        return data.get("elements") or []

    # ── Campaigns ────────────────────────────────────────────────────

    def _campaigns_path(self, account_id: str) -> str:
        return f"/adAccounts/{account_id}/adCampaigns"

    async def search_campaigns(
        self,
        account_id: str,
        *,
        search: Optional[str] = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> dict:
        """One page of campaign search. Returns the raw page: {elements, metadata}."""
        params: dict[str, Any] = {"q": "search"}
        if search:
            params["search"] = search
        if sort_order:
            params["sortOrder"] = sort_order
        if page_size:
            params["pageSize"] = page_size
        if page_token:
            params["pageToken"] = page_token
        return await self._request("GET", self._campaigns_path(account_id), params=params)

    async def get_campaign(
        self,
        account_id: str,
        campaign_id: str,
        *,
        fields: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        params = {"fields": fields} if fields else None
        return await self._request(
            "GET", f"{self._campaigns_path(account_id)}/{campaign_id}", params=params, timeout=timeout,
        )

    async def partial_update_campaign(self, account_id: str, campaign_id: str, patch: dict) -> dict:
        """Rest.li PARTIAL_UPDATE: only the fields in ``patch`` are changed."""
        return await self._request(
            "POST",
            f"{self._campaigns_path(account_id)}/{campaign_id}",
            json_body={"patch": {"$set": patch}},
            extra_headers={"X-RestLi-Method": "PARTIAL_UPDATE"},
        )

    # ── Analytics ────────────────────────────────────────────────────

    async def get_campaign_costs(
        self,
        account_id: str,
        campaign_id: str,
        start: date,
        end: date,
        *,
        timeout: Optional[float] = None,
    ) -> list[dict]:
        """
        Daily cost rows for a single campaign, pivoted by campaign.
        The query string is built by hand: Rest.li expects the dateRange tuple
        unencoded and the URN lists percent-encoded.
        """
        date_range = f"(start:{_restli_date(start)},end:{_restli_date(end)})"
        query = (
            f"q=analytics&dateRange={date_range}&timeGranularity=DAILY"
            f"&accounts={_restli_list(account_urn(account_id))}"
            f"&pivot=CAMPAIGN&campaigns={_restli_list(campaign_urn(campaign_id))}"
            f"&fields=costInLocalCurrency,dateRange"
        )
        data = await self._request("GET", f"/adAnalytics?{query}", timeout=timeout)
        elements = data.get("elements") or []
        if not isinstance(elements, list):
            raise UpstreamTransient("Analytics response 'elements' is not a list")
        return elements


def create_ads_client(access_token: Optional[str], settings: Optional[Settings] = None) -> LinkedInAdsClient:
    """Factory function to create a client configured from settings."""
    settings = settings or get_settings()
    return LinkedInAdsClient(
        access_token=access_token,
        base_url=settings.linkedin_api_base,
        api_version=settings.linkedin_api_version,
        timeout=settings.request_timeout_seconds,
    )
