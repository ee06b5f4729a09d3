"""
LinkedIn Ads Bid Optimizer — Database Models
Session users, per-tenant account selection, and the 48h cooldown ledger.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    String, Text, Numeric, DateTime, JSON, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column
from bidder.database import Base


def _utcnow() -> datetime:
    """Naive UTC now — matches DB columns (TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ══════════════════════════════════════════════════════════════════════
#  USERS — Tenants created by the login flow
# ══════════════════════════════════════════════════════════════════════

class User(Base):
    """A signed-in LinkedIn member. The row ID is the tenant ID."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    linkedin_user_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # Encrypted with bidder.crypto
    access_token: Mapped[str] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


# ══════════════════════════════════════════════════════════════════════
#  APP SETTINGS — Which ad accounts each tenant sees in the optimizer
# ══════════════════════════════════════════════════════════════════════

class AppSettings(Base):
    """Per-tenant settings. selected_account_ids NULL = never set (show all accounts)."""
    __tablename__ = "app_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    selected_account_ids: Mapped[list] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


# ══════════════════════════════════════════════════════════════════════
#  RECENTLY OPTIMIZED — Cooldown ledger (bid applied within the window)
# ══════════════════════════════════════════════════════════════════════

class RecentlyOptimized(Base):
    """Last applied bid change per (tenant, account, campaign). Expired rows are filtered at read time."""
    __tablename__ = "recently_optimized"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    ad_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    previous_bid: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "ad_account_id", "campaign_id", name="uq_recently_optimized_campaign"),
        Index("ix_recently_optimized_account_applied_at", "tenant_id", "ad_account_id", "applied_at"),
    )
