"""Item models."""

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, Field, model_validator


class Item(BaseModel):
    """A stored item owned by exactly one user."""

    id: str = Field(..., description="Unique item identifier")
    user_id: str = Field(..., description="ID of the user who owns this item")
    value: float = Field(..., description="Stored numeric value")
    tx_hash: str = Field(..., description="Transaction hash")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"from_attributes": True}


class ItemCreateRequest(BaseModel):
    """Request to create an item."""

    value: float = Field(..., description="Numeric value to store")
    tx_hash: str | None = Field(
        default=None,
        min_length=1,
        max_length=256,
        alias="txHash",
        description="Transaction hash; generated when omitted",
    )

    model_config = {"populate_by_name": True}


class ItemUpdateRequest(BaseModel):
    """Request to update an item. At least one field is required."""

    value: float | None = Field(default=None)
    tx_hash: str | None = Field(default=None, min_length=1, max_length=256, alias="txHash")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def require_some_field(self) -> "ItemUpdateRequest":
        if self.value is None and self.tx_hash is None:
            raise ValueError("No update data provided")
        return self


class ItemResponse(BaseModel):
    """API representation of an item."""

    id: str
    value: float
    tx_hash: str = Field(
        ...,
        validation_alias=AliasChoices("txHash", "tx_hash"),
        serialization_alias="txHash",
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            value=item.value,
            tx_hash=item.tx_hash,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class ItemCreatedResponse(BaseModel):
    """Response for a newly created item."""

    id: str
    status: str = "created successfully"
