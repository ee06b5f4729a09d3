"""
Optimizer Router — spend vs budget analysis and the cooldown list.
"""

import logging

from fastapi import APIRouter, Depends, Query

from bidder.auth import require_tenant
from bidder.dependencies import get_account_id, get_optimizer
from bidder.services.cooldown import CooldownLedger
from bidder.services.optimizer_service import OptimizerService, list_recently_optimized
from bidder.services.recommendation import DEFAULT_ADJUSTMENT
from bidder.services.session_service import TenantSession
from bidder.stores import get_cooldown_ledger

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/spend-analysis")
async def spend_analysis(
    bid_adjustment_percent: str = Query(str(DEFAULT_ADJUSTMENT), description="2, 5 or 10 (anything else = 2)"),
    account_id: str = Depends(get_account_id),
    optimizer: OptimizerService = Depends(get_optimizer),
):
    """
    Active campaigns with average spend over the last 3 full days vs daily budget.
    Under 90% of budget → increase bid; over 100% → decrease bid.
    """
    analysis = await optimizer.analyze_spend(account_id, bid_adjustment_percent)
    return {"analysis": analysis}


@router.get("/recently-optimized")
async def recently_optimized(
    account_id: str = Depends(get_account_id),
    session: TenantSession = Depends(require_tenant),
    ledger: CooldownLedger = Depends(get_cooldown_ledger),
):
    """Campaigns in the 48h cooldown window for this account, newest first."""
    entries = await list_recently_optimized(ledger, session.tenant_id, account_id)
    return {"entries": [e.to_dict() for e in entries], "use_server": ledger.durable}
