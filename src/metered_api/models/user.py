"""User and credit state models."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class RechargeState(str, Enum):
    """One-time recharge state of a user."""

    AVAILABLE = "available"
    CONSUMED = "consumed"


# CONSUMED is terminal
RECHARGE_TRANSITIONS: dict[RechargeState, set[RechargeState]] = {
    RechargeState.AVAILABLE: {RechargeState.CONSUMED},
    RechargeState.CONSUMED: set(),
}


def can_transition(from_state: RechargeState, to_state: RechargeState) -> bool:
    """Check if a recharge state transition is valid."""
    return to_state in RECHARGE_TRANSITIONS.get(from_state, set())


class User(BaseModel):
    """User model."""

    id: str = Field(..., description="Unique user identifier")
    api_key: str = Field(..., description="User API key")
    email: EmailStr = Field(..., description="User email address")
    name: str | None = Field(default=None)
    image: str | None = Field(default=None)
    external_id: str = Field(..., description="Identity provider subject")
    credits: int = Field(default=0, ge=0, description="Remaining request allowance")
    credits_used: int = Field(default=0, ge=0, description="Credits consumed so far")
    recharged: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"from_attributes": True}

    @property
    def recharge_state(self) -> RechargeState:
        return RechargeState.CONSUMED if self.recharged else RechargeState.AVAILABLE

    @property
    def can_recharge(self) -> bool:
        return can_transition(self.recharge_state, RechargeState.CONSUMED)


@dataclass(frozen=True)
class UserRef:
    """Opaque reference to an authorized user, used as the ownership filter."""

    id: str
