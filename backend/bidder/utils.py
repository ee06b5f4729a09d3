"""
Shared utility functions.
"""

import logging
from typing import Any, Optional
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

ACCOUNT_URN_PREFIX = "urn:li:sponsoredAccount:"
CAMPAIGN_URN_PREFIX = "urn:li:sponsoredCampaign:"


def utcnow() -> datetime:
    """
    Return the current UTC time as a naive datetime (no tzinfo).
    Naive datetimes are used because our DB columns are TIMESTAMP WITHOUT TIME ZONE.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_campaign_id(raw: Any) -> str:
    """
    Canonical string ID for a campaign.

    The REST API returns either a bare numeric ``id`` or a ``$URN`` such as
    ``urn:li:sponsoredCampaign:123``; both normalize to ``"123"``.
    A campaign dict may be passed directly.
    """
    if isinstance(raw, dict):
        raw = raw.get("id") if raw.get("id") is not None else raw.get("$URN")
    if raw is None:
        return ""
    if isinstance(raw, bool):
        raise TypeError("Campaign ID cannot be a boolean")
    if isinstance(raw, int):
        return str(raw)
    s = str(raw).strip()
    if s.startswith("urn:"):
        return s.split(":")[-1]
    return s


def normalize_account_id(raw: Any) -> Optional[str]:
    """Account ID as the REST path expects it (numeric, URN prefix stripped). None if empty."""
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    if s.startswith(ACCOUNT_URN_PREFIX):
        s = s[len(ACCOUNT_URN_PREFIX):]
    return s or None


def account_urn(account_id: str) -> str:
    return f"{ACCOUNT_URN_PREFIX}{account_id}"


def campaign_urn(campaign_id: str) -> str:
    return f"{CAMPAIGN_URN_PREFIX}{campaign_id}"


def safe_float(val, default: float = 0.0) -> float:
    try:
        return float(val) if val is not None else default
    except (ValueError, TypeError):
        return default
