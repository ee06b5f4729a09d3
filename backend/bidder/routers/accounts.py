"""
Accounts Router — ad accounts visible to the caller, auth status, and
deletion of everything stored for the caller.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bidder.auth import get_tenant_session, require_tenant
from bidder.config import get_settings
from bidder.dependencies import get_optimizer
from bidder.services.cooldown import CooldownLedger
from bidder.services.optimizer_service import OptimizerService, delete_tenant_data
from bidder.services.session_service import TenantSession
from bidder.services.settings_store import SettingsStore
from bidder.stores import get_cooldown_ledger, get_session_directory, get_settings_store
from bidder.utils import normalize_campaign_id

logger = logging.getLogger(__name__)
router = APIRouter()


def _split_ids(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [c for c in (normalize_campaign_id(s) for s in raw.split(",")) if c]


@router.get("/auth/status")
async def auth_status(session: TenantSession = Depends(get_tenant_session)):
    settings = get_settings()
    return {
        "authenticated": session.authenticated,
        "multi_tenant": settings.multi_tenant,
    }


@router.get("/ad-accounts")
async def list_ad_accounts(
    include_optimization: bool = Query(False, description="Add has_optimization per account"),
    recently_optimized: Optional[str] = Query(
        None, description="Comma-separated campaign IDs in cooldown (used only without server-side tracking)",
    ),
    session: TenantSession = Depends(require_tenant),
    optimizer: OptimizerService = Depends(get_optimizer),
    store: SettingsStore = Depends(get_settings_store),
):
    """Ad accounts selected for optimization (all accounts if no selection was ever saved)."""
    accounts = await optimizer.list_accounts(
        store,
        session.tenant_id,
        include_optimization=include_optimization,
        recently_optimized=_split_ids(recently_optimized),
    )
    return {"accounts": accounts}


@router.delete("/account")
async def delete_account(
    session: TenantSession = Depends(require_tenant),
    store: SettingsStore = Depends(get_settings_store),
    ledger: CooldownLedger = Depends(get_cooldown_ledger),
):
    """Delete the caller's settings, cooldown entries and session user."""
    await delete_tenant_data(session.tenant_id, store, ledger, get_session_directory())
    return {"success": True}
