"""Item endpoints. Every call costs one credit."""

from fastapi import APIRouter, Depends, Query

from metered_api.auth.dependencies import charge_credit
from metered_api.models.item import (
    ItemCreatedResponse,
    ItemCreateRequest,
    ItemResponse,
    ItemUpdateRequest,
)
from metered_api.models.responses import PaginatedResponse, StatusResponse
from metered_api.models.user import UserRef
from metered_api.services.item_service import ItemService, get_item_service

router = APIRouter(prefix="/items", tags=["Items"])


@router.post(
    "",
    response_model=ItemCreatedResponse,
    status_code=201,
    summary="Create Item",
    description="Store a new item. Costs one credit.",
)
async def create_item(
    body: ItemCreateRequest,
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> ItemCreatedResponse:
    """
    Create an item owned by the caller.

    `txHash` is optional; a random one is generated when omitted.
    """
    item = await item_service.create_item(user, value=body.value, tx_hash=body.tx_hash)
    return ItemCreatedResponse(id=item.id)


@router.get(
    "",
    response_model=PaginatedResponse[ItemResponse],
    summary="List Items",
    description="List the caller's items, newest first. Costs one credit.",
)
async def list_items(
    page: int = Query(default=1, ge=1, description="Page number"),
    per_page: int = Query(default=20, ge=1, le=100, description="Items per page"),
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> PaginatedResponse[ItemResponse]:
    items, total = await item_service.list_items(user, page=page, per_page=per_page)

    return PaginatedResponse.create(
        items=[ItemResponse.from_item(item) for item in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/tx/{tx_hash}",
    response_model=ItemResponse,
    summary="Get Item By Transaction Hash",
    description="Look up one of the caller's items by its txHash. Costs one credit.",
)
async def get_item_by_tx_hash(
    tx_hash: str,
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    item = await item_service.get_item_by_tx_hash(tx_hash, user)
    return ItemResponse.from_item(item)


@router.get(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Get Item",
    description="Get one of the caller's items. Costs one credit.",
)
async def get_item(
    item_id: str,
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    """
    Get item details by ID.

    Items owned by other users are reported as not found.
    """
    item = await item_service.get_item(item_id, user)
    return ItemResponse.from_item(item)


@router.put(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Update Item",
    description="Update value and/or txHash of an item. Costs one credit.",
)
async def update_item(
    item_id: str,
    body: ItemUpdateRequest,
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    item = await item_service.update_item(
        item_id,
        user,
        value=body.value,
        tx_hash=body.tx_hash,
    )
    return ItemResponse.from_item(item)


@router.delete(
    "/{item_id}",
    response_model=StatusResponse,
    summary="Delete Item",
    description="Delete an item. Costs one credit.",
)
async def delete_item(
    item_id: str,
    user: UserRef = Depends(charge_credit),
    item_service: ItemService = Depends(get_item_service),
) -> StatusResponse:
    await item_service.delete_item(item_id, user)
    return StatusResponse(status="deleted successfully")
