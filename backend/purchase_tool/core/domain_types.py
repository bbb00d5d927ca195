"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ItemId, AccountId, PurchaseId wrap opaque record ids — never compare ids of different kinds
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: events go straight to the host UI)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ItemId = NewType("ItemId", str)
AccountId = NewType("AccountId", str)
PurchaseId = NewType("PurchaseId", str)


# ─── Enums ───────────────────────────────────────────────────────

class ToastVariant(str, Enum):
    """Notification kinds understood by the host UI."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class CartChange(str, Enum):
    """Which branch add_to_cart took — drives the confirmation message."""
    ADDED = "added"
    QUANTITY_UPDATED = "quantity_updated"


class WorkflowStatus(str, Enum):
    """Per-attempt workflow lifecycle: idle -> submitting -> succeeded | failed -> idle."""
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
