"""Purchase Session Schemas — Pydantic models for the purchase page API.

Invariants:
    - Search text stripped of surrounding whitespace; lowercasing happens in the core
    - DraftUpdate price is free text (form input) — parsing is the core's job
    - Responses are built from the session snapshot, never from ORM rows

Design Decisions:
    - Decimal money fields serialize as strings: no float rounding on the wire
    - Events passed through as dicts: their shape is owned by core.notifications
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class SessionOpen(BaseModel):
    """Open a purchase page — account_id optional (no account = nothing loaded)."""
    account_id: str | None = Field(None, max_length=64)


class FilterUpdate(BaseModel):
    search: str | None = Field(None, max_length=255)
    types: list[str] = Field(default_factory=list)
    families: list[str] = Field(default_factory=list)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v


class CartAdd(BaseModel):
    item_id: str = Field(min_length=1, max_length=64)


class DraftUpdate(BaseModel):
    """Create-item form contents."""
    name: str | None = Field(None, max_length=255)
    price: str | float | None = None
    description: str | None = Field(None, max_length=10_000)
    item_type: str | None = Field(None, max_length=100)
    family: str | None = Field(None, max_length=100)


class ItemResponse(BaseModel):
    id: str
    name: str | None
    price: Decimal | None
    description: str | None = None
    item_type: str | None = None
    family: str | None = None
    image_url: str | None = None


class CartLineResponse(BaseModel):
    item_id: str
    name: str | None
    quantity: int
    price: Decimal | None
    total: Decimal


class CartResponse(BaseModel):
    lines: list[CartLineResponse]
    grand_total: Decimal
    total_items: int
    checkout_disabled: bool


class FilterResponse(BaseModel):
    search_key: str
    selected_types: list[str]
    selected_families: list[str]


class DraftResponse(BaseModel):
    name: str
    price: Decimal | None
    description: str | None
    item_type: str | None
    family: str | None
    is_saving: bool


class SessionSnapshot(BaseModel):
    """Everything the host renders for the purchase page."""
    id: str
    account_id: str | None
    account: dict
    is_manager: bool
    can_create_items: bool
    is_loading: bool
    items: list[ItemResponse]
    types: list[str]
    families: list[str]
    filters: FilterResponse
    selected_item_id: str | None
    cart: CartResponse
    draft: DraftResponse
    events: list[dict] = Field(default_factory=list)


class WorkflowResponse(BaseModel):
    """Outcome of a create-item or checkout attempt."""
    status: str
    record_id: str | None = None
    message: str | None = None
    error_code: str | None = None
    navigate_to: str | None = None
    session: SessionSnapshot
