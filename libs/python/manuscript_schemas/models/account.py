"""Account and usage models owned by the billing collaborator."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import Field

from ..enums import TIER_TOKEN_LIMITS, SubscriptionTier
from .book import CamelModel


class UserAccount(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    tier: SubscriptionTier = SubscriptionTier.FREE
    tokens_used: int = Field(0, ge=0)
    tokens_this_month: int = Field(0, ge=0)
    token_limit: int = Field(TIER_TOKEN_LIMITS[SubscriptionTier.FREE], ge=0)
    project_count: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UsageSnapshot(CamelModel):
    """Usage counters surfaced to the client after each stage."""

    tier: SubscriptionTier
    tokens_used: int
    tokens_this_month: int
    token_limit: int
    project_count: int

    @classmethod
    def from_account(cls, account: UserAccount) -> "UsageSnapshot":
        return cls(
            tier=account.tier,
            tokens_used=account.tokens_used,
            tokens_this_month=account.tokens_this_month,
            token_limit=account.token_limit,
            project_count=account.project_count,
        )
