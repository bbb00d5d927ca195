"""Collaborator Calls — timeout-bounded awaits and shared workflow outcome type.

Invariants:
    - bounded() converts expiry into SubmissionTimeoutError (a RemoteError), never asyncio.TimeoutError
    - CancelledError is never swallowed

Design Decisions:
    - asyncio.wait_for over per-client timeouts: one knob covers DB and HTTP collaborators alike
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, TypeVar

from purchase_tool.core.domain_types import WorkflowStatus
from purchase_tool.core.errors import (
    ErrorContext, PurchaseToolError, SubmissionTimeoutError,
)

T = TypeVar("T")


async def bounded(
    awaitable: Awaitable[T],
    operation: str,
    timeout_seconds: float | None,
    context: ErrorContext | None = None,
) -> T:
    """Await a collaborator call with an upper bound."""
    if timeout_seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise SubmissionTimeoutError(operation, timeout_seconds, context=context)


@dataclass
class WorkflowOutcome:
    """Result of one submission attempt: status, produced id, error, and host events."""
    status: WorkflowStatus
    record_id: str | None = None
    error: PurchaseToolError | None = None
    message: str | None = None
    events: list[dict] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is WorkflowStatus.SUCCEEDED
