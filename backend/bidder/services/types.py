"""
Request-scoped domain values shared by the optimizer services.
None of these are cached across requests.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from bidder.utils import normalize_campaign_id, safe_float

DEFAULT_CURRENCY = "USD"


@dataclass
class Campaign:
    """A transient copy of a platform campaign, with its ID normalized at ingress."""
    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    daily_budget: float = 0.0
    current_bid: float = 0.0
    group_status: Optional[str] = None

    @classmethod
    def from_api(cls, element: dict) -> "Campaign":
        daily_budget = element.get("dailyBudget") or {}
        unit_cost = element.get("unitCost") or {}
        group_info = element.get("campaignGroupInfo") or {}
        group_status = group_info.get("status")
        return cls(
            id=normalize_campaign_id(element),
            name=element.get("name"),
            status=element.get("status"),
            currency=daily_budget.get("currencyCode") or unit_cost.get("currencyCode"),
            daily_budget=safe_float(daily_budget.get("amount")),
            current_bid=safe_float(unit_cost.get("amount")),
            group_status=str(group_status).upper() if group_status else None,
        )

    @property
    def is_active(self) -> bool:
        return (self.status or "").upper() == "ACTIVE"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AnalyticsSample:
    """Average daily cost of one campaign over a trailing window."""
    campaign_id: str
    cost: float
    days: int


@dataclass(frozen=True)
class SampleResult:
    """Outcome of one per-campaign analytics call: a sample, or the reason there is none."""
    campaign_id: str
    sample: Optional[AnalyticsSample] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.sample is not None


@dataclass(frozen=True)
class Recommendation:
    action: str  # "increase" | "decrease"
    current_bid: float
    recommended_bid: float
    change_percent: int
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CooldownEntry:
    tenant_id: str
    account_id: str
    campaign_id: str
    applied_at: datetime
    previous_bid: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "applied_at": self.applied_at.isoformat(),
            "previous_bid": self.previous_bid,
        }
