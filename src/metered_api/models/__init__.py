"""Pydantic models for the metered API."""

from metered_api.models.item import Item, ItemCreateRequest, ItemResponse, ItemUpdateRequest
from metered_api.models.responses import ErrorDetail, ErrorResponse, PaginatedResponse
from metered_api.models.usage import RechargeLogEntry, UsageLogEntry
from metered_api.models.user import RechargeState, User, UserRef

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "Item",
    "ItemCreateRequest",
    "ItemResponse",
    "ItemUpdateRequest",
    "PaginatedResponse",
    "RechargeLogEntry",
    "RechargeState",
    "UsageLogEntry",
    "User",
    "UserRef",
]
