"""Collaborator Wiring — builds the repository/image-client bundle routes depend on.

Invariants:
    - Repositories bound to database.db_manager.session at call time (after lifespan init)
    - One image client per process, created lazily from settings

Design Decisions:
    - get_collaborators is a FastAPI dependency: tests override it with fakes via
      app.dependency_overrides instead of patching modules
"""

from dataclasses import dataclass

from purchase_tool.config import get_settings
from purchase_tool.core.repository_protocols import (
    AccountRepository, ImageLookup, ItemRepository, PurchaseRepository,
)
from purchase_tool.infrastructure import database
from purchase_tool.infrastructure.image_client import ResilientImageClient
from purchase_tool.infrastructure.repositories import (
    SqlAccountRepository, SqlItemRepository, SqlPurchaseRepository,
)


@dataclass
class Collaborators:
    items: ItemRepository
    accounts: AccountRepository
    purchases: PurchaseRepository
    images: ImageLookup


_image_client: ResilientImageClient | None = None


def get_image_client() -> ResilientImageClient:
    global _image_client
    if _image_client is None:
        settings = get_settings()
        _image_client = ResilientImageClient(
            base_url=settings.image_lookup_base_url,
            access_key=settings.image_lookup_access_key,
            max_retries=settings.image_lookup_max_retries,
            base_delay_ms=settings.image_lookup_base_delay_ms,
            max_delay_ms=settings.image_lookup_max_delay_ms,
            timeout_seconds=settings.image_lookup_timeout_seconds,
        )
    return _image_client


async def close_image_client() -> None:
    global _image_client
    if _image_client is not None:
        await _image_client.aclose()
        _image_client = None


def _session_scope():
    if not database.db_manager:
        raise RuntimeError("Database not initialized")
    return database.db_manager.session()


def get_collaborators() -> Collaborators:
    """FastAPI dependency — production collaborators."""
    return Collaborators(
        items=SqlItemRepository(_session_scope),
        accounts=SqlAccountRepository(_session_scope),
        purchases=SqlPurchaseRepository(_session_scope),
        images=get_image_client(),
    )
