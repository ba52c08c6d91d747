"""Usage and recharge audit log models."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class UsageLogEntry(BaseModel):
    """A single metered request outcome."""

    user_id: str
    endpoint: str = Field(..., description='"METHOD /path" of the request')
    status_code: int
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RechargeLogEntry(BaseModel):
    """A single recharge attempt."""

    user_id: str
    successful: bool
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
