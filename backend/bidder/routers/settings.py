"""
Settings Router — which ad accounts appear in the optimizer.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional

from bidder.auth import require_tenant
from bidder.dependencies import get_ads_client
from bidder.linkedin_client import LinkedInAdsClient
from bidder.services.session_service import TenantSession
from bidder.services.settings_store import SettingsStore
from bidder.stores import get_settings_store

router = APIRouter()


# ── Request/Response Models ───────────────────────────────────────────

class SelectedAccountsUpdate(BaseModel):
    selected_ids: list[str | int]


class SelectedAccountsResponse(BaseModel):
    selected_ids: Optional[list[str]]  # None = never saved (show all)


# ── Endpoints ─────────────────────────────────────────────────────────

@router.get("/selected-accounts", response_model=SelectedAccountsResponse)
async def get_selected_accounts(
    session: TenantSession = Depends(require_tenant),
    store: SettingsStore = Depends(get_settings_store),
):
    return SelectedAccountsResponse(selected_ids=await store.get_selected_accounts(session.tenant_id))


@router.put("/selected-accounts", response_model=SelectedAccountsResponse)
async def set_selected_accounts(
    payload: SelectedAccountsUpdate,
    session: TenantSession = Depends(require_tenant),
    store: SettingsStore = Depends(get_settings_store),
):
    """Save which accounts to show. An empty list hides every account."""
    saved = await store.set_selected_accounts(session.tenant_id, payload.selected_ids)
    return SelectedAccountsResponse(selected_ids=saved)


@router.get("/accounts")
async def get_settings_accounts(
    session: TenantSession = Depends(require_tenant),
    client: LinkedInAdsClient = Depends(get_ads_client),
    store: SettingsStore = Depends(get_settings_store),
):
    """All ad accounts plus the saved selection, for the settings page."""
    accounts = await client.list_accounts()
    selected = await store.get_selected_accounts(session.tenant_id)
    return {"accounts": accounts, "selected_ids": selected}
