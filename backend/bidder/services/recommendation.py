"""
Recommendation Engine — maps (budget, bid, trailing spend) to a bid change.

Avg spend below 90% of the daily budget → raise the bid.
Avg spend above 100% of the daily budget → lower the bid.
The same percentage is used in both directions.
"""

from typing import Any, Optional

from bidder.services.types import Recommendation

ALLOWED_ADJUSTMENTS = (2, 5, 10)
DEFAULT_ADJUSTMENT = 2

INCREASE_BELOW_PCT = 90.0
DECREASE_ABOVE_PCT = 100.0


def normalize_adjustment_percent(value: Any) -> int:
    """Caller-selected percentage; anything outside {2, 5, 10} falls back to 2."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_ADJUSTMENT
    if number.is_integer() and int(number) in ALLOWED_ADJUSTMENTS:
        return int(number)
    return DEFAULT_ADJUSTMENT


def spend_percentage(daily_spend: float, daily_budget: float) -> float:
    if daily_budget <= 0:
        return 0.0
    return daily_spend / daily_budget * 100


def recommend(
    daily_budget: float,
    current_bid: float,
    daily_spend: float,
    adjustment_percent: Any = DEFAULT_ADJUSTMENT,
) -> Optional[Recommendation]:
    """Pure function. Returns None inside the 90–100% band, for a zero bid, or for a non-positive budget."""
    if current_bid <= 0 or daily_budget <= 0:
        return None

    pct = normalize_adjustment_percent(adjustment_percent)
    spend_pct = spend_percentage(daily_spend, daily_budget)

    if spend_pct < INCREASE_BELOW_PCT:
        return Recommendation(
            action="increase",
            current_bid=current_bid,
            recommended_bid=round(current_bid * (1 + pct / 100), 2),
            change_percent=pct,
            reason=f"Only spending {spend_pct:.1f}% of daily budget",
        )
    if spend_pct > DECREASE_ABOVE_PCT:
        return Recommendation(
            action="decrease",
            current_bid=current_bid,
            recommended_bid=round(current_bid * (1 - pct / 100), 2),
            change_percent=-pct,
            reason=f"Overspending at {spend_pct:.1f}% of daily budget",
        )
    return None
