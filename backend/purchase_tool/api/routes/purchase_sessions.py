"""Purchase Session Routes — host-facing endpoints for browsing, cart, creation and checkout.

Invariants:
    - PurchaseSession is per-page-open, in-memory (module-level dict)
    - Every response carries the events the interaction produced (drained once)
    - Workflow failures are 200 responses with status "failed": they are reported, not raised
    - Unknown session id → 404 with ResourceNotFoundError envelope

Design Decisions:
    - _purchase_sessions as module-level dict: single-process uvicorn, state lost on
      restart (ADR: the cart lives only as long as the shopper's session anyway)
    - Collaborators injected via Depends(get_collaborators) so tests swap in fakes
"""

import logging
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, status

from purchase_tool.api.dependencies import Collaborators, get_collaborators
from purchase_tool.config import get_settings
from purchase_tool.core.catalog import Item
from purchase_tool.core.errors import ResourceNotFoundError
from purchase_tool.schemas.purchase_session import (
    CartAdd, CartLineResponse, CartResponse, DraftResponse, DraftUpdate,
    FilterResponse, FilterUpdate, ItemResponse, SessionOpen, SessionSnapshot,
    WorkflowResponse,
)
from purchase_tool.services.checkout import CheckoutWorkflow
from purchase_tool.services.collaborator_calls import WorkflowOutcome
from purchase_tool.services.create_item import ItemCreationWorkflow
from purchase_tool.services.purchase_session import PurchaseSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/purchase-sessions", tags=["purchase-sessions"])

_purchase_sessions: dict[UUID, PurchaseSession] = {}


def build_purchase_session(
    collaborators: Collaborators, account_id: str | None,
) -> PurchaseSession:
    settings = get_settings()
    timeout = settings.collaborator_timeout_seconds
    return PurchaseSession(
        items=collaborators.items,
        accounts=collaborators.accounts,
        creator=ItemCreationWorkflow(
            collaborators.items, collaborators.images, timeout_seconds=timeout,
        ),
        checkout_flow=CheckoutWorkflow(
            collaborators.purchases, timeout_seconds=timeout,
            record_path_template=settings.purchase_record_path_template,
        ),
        account_id=account_id,
        timeout_seconds=timeout,
    )


def get_purchase_session_or_404(session_id: UUID) -> PurchaseSession:
    session = _purchase_sessions.get(session_id)
    if session is None:
        raise ResourceNotFoundError("Purchase session", str(session_id))
    return session


# ─── Response builders ──────────────────────────────────────────

def _item_response(item: Item) -> ItemResponse:
    return ItemResponse(
        id=item.id, name=item.name, price=item.price,
        description=item.description, item_type=item.item_type,
        family=item.family, image_url=item.image_url,
    )


def _snapshot(session_id: UUID, session: PurchaseSession) -> SessionSnapshot:
    snap = session.snapshot()
    filters = snap["filters"]
    cart = snap["cart"]
    draft = snap["draft"]
    return SessionSnapshot(
        id=str(session_id),
        account_id=snap["account_id"],
        account=snap["account"],
        is_manager=snap["is_manager"],
        can_create_items=snap["can_create_items"],
        is_loading=snap["is_loading"],
        items=[_item_response(i) for i in snap["items"]],
        types=snap["types"],
        families=snap["families"],
        filters=FilterResponse(
            search_key=filters.search_key,
            selected_types=sorted(filters.selected_types),
            selected_families=sorted(filters.selected_families),
        ),
        selected_item_id=snap["selected_item_id"],
        cart=CartResponse(
            lines=[CartLineResponse(**line) for line in cart["lines"]],
            grand_total=cart["grand_total"],
            total_items=cart["total_items"],
            checkout_disabled=cart["checkout_disabled"],
        ),
        draft=DraftResponse(
            name=draft.name, price=draft.price, description=draft.description,
            item_type=draft.item_type, family=draft.family,
            is_saving=draft.is_saving,
        ),
        events=session.drain_events(),
    )


def _workflow_response(
    session_id: UUID, session: PurchaseSession, outcome: WorkflowOutcome,
) -> WorkflowResponse:
    navigate_to = None
    for event in outcome.events:
        if event["type"] == "checkout_succeeded":
            navigate_to = event["data"]["navigate_to"]
    return WorkflowResponse(
        status=outcome.status.value,
        record_id=outcome.record_id,
        message=outcome.message,
        error_code=outcome.error.code if outcome.error else None,
        navigate_to=navigate_to,
        session=_snapshot(session_id, session),
    )


# ─── Session lifecycle ──────────────────────────────────────────

@router.post(
    "", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED,
)
async def open_purchase_session(
    body: SessionOpen,
    collaborators: Collaborators = Depends(get_collaborators),
):
    """Open the purchase page for an account (loads account context + items)."""
    session_id = uuid4()
    session = build_purchase_session(collaborators, body.account_id)
    await session.open()
    _purchase_sessions[session_id] = session
    logger.info(
        "Purchase session opened",
        extra={"session_id": str(session_id), "account_id": body.account_id},
    )
    return _snapshot(session_id, session)


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_purchase_session(session_id: UUID):
    session = get_purchase_session_or_404(session_id)
    return _snapshot(session_id, session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_purchase_session(session_id: UUID):
    get_purchase_session_or_404(session_id)
    _purchase_sessions.pop(session_id, None)
    logger.info("Purchase session closed", extra={"session_id": str(session_id)})


@router.post("/{session_id}/reload", response_model=SessionSnapshot)
async def reload_items(session_id: UUID):
    """Refresh the item list wholesale."""
    session = get_purchase_session_or_404(session_id)
    await session.load_items()
    return _snapshot(session_id, session)


# ─── Browsing ───────────────────────────────────────────────────

@router.put("/{session_id}/filter", response_model=SessionSnapshot)
async def update_filter(session_id: UUID, body: FilterUpdate):
    session = get_purchase_session_or_404(session_id)
    session.set_filters(body.search, body.types, body.families)
    return _snapshot(session_id, session)


@router.put("/{session_id}/details/{item_id}", response_model=SessionSnapshot)
async def show_details(session_id: UUID, item_id: str):
    session = get_purchase_session_or_404(session_id)
    session.show_details(item_id)
    return _snapshot(session_id, session)


@router.delete("/{session_id}/details", response_model=SessionSnapshot)
async def close_details(session_id: UUID):
    session = get_purchase_session_or_404(session_id)
    session.close_details()
    return _snapshot(session_id, session)


# ─── Cart & checkout ────────────────────────────────────────────

@router.post("/{session_id}/cart", response_model=SessionSnapshot)
async def add_to_cart(session_id: UUID, body: CartAdd):
    session = get_purchase_session_or_404(session_id)
    session.add_to_cart(body.item_id)
    return _snapshot(session_id, session)


@router.post("/{session_id}/checkout", response_model=WorkflowResponse)
async def checkout(session_id: UUID):
    session = get_purchase_session_or_404(session_id)
    outcome = await session.checkout()
    return _workflow_response(session_id, session, outcome)


# ─── Item creation ──────────────────────────────────────────────

@router.put("/{session_id}/draft", response_model=SessionSnapshot)
async def edit_draft(session_id: UUID, body: DraftUpdate):
    session = get_purchase_session_or_404(session_id)
    session.edit_draft(**body.model_dump(exclude_unset=True))
    return _snapshot(session_id, session)


@router.post("/{session_id}/items", response_model=WorkflowResponse)
async def create_item(session_id: UUID, body: DraftUpdate | None = None):
    """Submit the draft (optionally applying form fields first)."""
    session = get_purchase_session_or_404(session_id)
    if body is not None:
        session.edit_draft(**body.model_dump(exclude_unset=True))
    outcome = await session.create_item()
    return _workflow_response(session_id, session, outcome)
