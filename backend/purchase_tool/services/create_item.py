"""Item Creation Workflow — validate draft, look up an image, create the record, notify.

Invariants:
    - Preconditions (name, then price) checked before ANY collaborator call
    - Image lookup failure or timeout is non-fatal: the record is created without an image
    - Record-creation failure reports the collaborator's own message verbatim, else a generic one
    - draft.is_saving is True only between the precondition check and the finally block
    - A submit while another is in flight fails with SubmissionInProgressError, no calls issued

Design Decisions:
    - Non-fatal image lookup (ADR: an image is decoration; losing the item is worse)
    - In-flight guard per workflow instance instead of request dedup (ADR: double-click
      on "create" must not persist twice)
    - Status returns to IDLE after every attempt; last_outcome keeps SUCCEEDED/FAILED
"""

import logging
from dataclasses import replace

from purchase_tool.core.domain_types import ItemId, WorkflowStatus
from purchase_tool.core.draft import (
    DraftItem, build_item_fields, check_draft, cleared,
)
from purchase_tool.core.error_decoding import reported_message
from purchase_tool.core.errors import (
    DraftValidationError, ErrorContext, PurchaseToolError, RemoteError,
    SubmissionInProgressError,
)
from purchase_tool.core.notifications import error_toast, item_created_events
from purchase_tool.core.repository_protocols import ImageLookup, ItemRepository
from purchase_tool.services.collaborator_calls import WorkflowOutcome, bounded

logger = logging.getLogger(__name__)

CREATE_FAILED_MESSAGE = "Failed to create item"


class ItemCreationWorkflow:
    """Idle -> Submitting -> (Succeeded | Failed) -> Idle, restartable."""

    def __init__(
        self,
        items: ItemRepository,
        images: ImageLookup,
        timeout_seconds: float | None = 30.0,
    ):
        self.items = items
        self.images = images
        self.timeout_seconds = timeout_seconds
        self.draft = DraftItem()
        self.status = WorkflowStatus.IDLE
        self.last_outcome: WorkflowOutcome | None = None

    @property
    def is_saving(self) -> bool:
        return self.draft.is_saving

    async def submit(self, account_id: str | None = None) -> WorkflowOutcome:
        """Run one creation attempt against the current draft."""
        if self.draft.is_saving:
            return self._rejected(SubmissionInProgressError("item creation"))

        failure = check_draft(self.draft)
        if failure:
            field, message = failure
            return self._rejected(DraftValidationError(message, field))

        draft = self.draft
        self.draft = replace(draft, is_saving=True)
        self.status = WorkflowStatus.SUBMITTING
        try:
            outcome = await self._create(draft, account_id)
        finally:
            self.draft = replace(self.draft, is_saving=False)
            self.status = WorkflowStatus.IDLE
        self.last_outcome = outcome
        return outcome

    async def _create(self, draft: DraftItem, account_id: str | None) -> WorkflowOutcome:
        context = ErrorContext(account_id=account_id)
        try:
            image_url = await self._lookup_image(draft.name, context)
            fields = build_item_fields(draft, image_url, account_id)
            item_id: ItemId = await bounded(
                self.items.create_item_record(fields),
                "create item", self.timeout_seconds, context,
            )
        except PurchaseToolError as e:
            logger.warning(
                f"Item creation failed: {e.message}",
                extra={"account_id": account_id, "error_code": e.code},
            )
            message = reported_message(e, CREATE_FAILED_MESSAGE)
            return WorkflowOutcome(
                WorkflowStatus.FAILED, error=e, message=message,
                events=[error_toast(message)],
            )
        except Exception as e:
            logger.error(
                f"Unexpected error creating item: {e}",
                extra={"account_id": account_id}, exc_info=True,
            )
            return WorkflowOutcome(
                WorkflowStatus.FAILED, message=CREATE_FAILED_MESSAGE,
                events=[error_toast(CREATE_FAILED_MESSAGE)],
            )

        logger.info(
            "Item created", extra={"item_id": item_id, "account_id": account_id},
        )
        self.draft = cleared(self.draft)
        return WorkflowOutcome(
            WorkflowStatus.SUCCEEDED, record_id=item_id, message="Item created",
            events=item_created_events(item_id),
        )

    async def _lookup_image(self, query: str, context: ErrorContext) -> str | None:
        """Image URL for the item name, or None if the lookup fails."""
        try:
            url = await bounded(
                self.images.lookup_image(query),
                "image lookup", self.timeout_seconds, context,
            )
        except RemoteError as e:
            logger.warning(
                f"Image lookup failed, creating item without image: {e.message}",
                extra={"error_code": e.code},
            )
            return None
        except Exception as e:
            logger.warning(
                f"Image lookup raised {type(e).__name__}, creating item without image: {e}",
                exc_info=True,
            )
            return None
        return url if isinstance(url, str) and url else None

    def _rejected(self, error: PurchaseToolError) -> WorkflowOutcome:
        """Fail an attempt that never reached a collaborator."""
        logger.info(
            f"Item creation rejected: {error.message}",
            extra={"error_code": error.code},
        )
        outcome = WorkflowOutcome(
            WorkflowStatus.FAILED, error=error, message=error.message,
            events=[error.to_event()],
        )
        self.last_outcome = outcome
        return outcome
