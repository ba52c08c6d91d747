"""Standard API response models."""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, EmailStr, Field

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for tracking")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: ErrorDetail


class PaginationMeta(BaseModel):
    """Pagination metadata."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number (1-indexed)")
    per_page: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there are more pages")
    has_prev: bool = Field(..., description="Whether there are previous pages")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response."""

    items: list[T] = Field(..., description="List of items")
    meta: PaginationMeta = Field(..., description="Pagination metadata")

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        page: int,
        per_page: int,
    ) -> "PaginatedResponse[T]":
        """Create a paginated response."""
        total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0
        return cls(
            items=items,
            meta=PaginationMeta(
                total=total,
                page=page,
                per_page=per_page,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )


class StatusResponse(BaseModel):
    """Plain acknowledgement."""

    status: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    components: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Component health status"
    )
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AccountResponse(BaseModel):
    """Account details and credit balance."""

    id: str
    email: str
    name: str | None
    image: str | None
    api_key: str
    credits_remaining: int
    credits_used: int
    can_recharge: bool


class EndpointCount(BaseModel):
    endpoint: str
    count: int


class StatusCodeCount(BaseModel):
    status_code: int
    count: int


class UsageStatsResponse(BaseModel):
    """Aggregated usage statistics."""

    user_id: str
    total_count: int
    endpoint_stats: list[EndpointCount]
    status_stats: list[StatusCodeCount]


class RechargeResponse(BaseModel):
    """Balance after a successful recharge."""

    id: str
    email: str
    credits_remaining: int
    can_recharge: bool
    message: str


class ProvisionUserRequest(BaseModel):
    """Identity already verified by the external provider."""

    external_id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    name: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=2048)


class ProvisionUserResponse(BaseModel):
    """Provisioned user including the issued API key."""

    id: str
    email: str
    name: str | None
    image: str | None
    api_key: str
    credits_remaining: int
    can_recharge: bool
