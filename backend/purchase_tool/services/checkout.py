"""Checkout Workflow — validate cart, submit purchase lines, report or navigate.

Invariants:
    - Checks in order: account set, cart non-empty, every line valid — all before any remote call
    - Invalid lines are named in the error; the purchase collaborator is never called
    - Remote failures decoded with decode_error_message (never raises)
    - in_flight released in finally; a concurrent checkout is rejected, not queued

Design Decisions:
    - The workflow does not clear the cart: success hands back the purchase id and the
      caller (PurchaseSession) owns the cart (ADR: workflow holds no session state)
    - Record path built from settings template so hosts can point at their own detail view
"""

import logging

from purchase_tool.core.cart import Cart, CheckoutValidation, is_empty, validate_for_checkout
from purchase_tool.core.domain_types import PurchaseId, WorkflowStatus
from purchase_tool.core.error_decoding import decode_error_message
from purchase_tool.core.errors import (
    CheckoutValidationError, ErrorContext, PurchaseToolError,
    SubmissionInProgressError,
)
from purchase_tool.core.notifications import checkout_succeeded_events, error_toast
from purchase_tool.core.repository_protocols import PurchaseRepository
from purchase_tool.services.collaborator_calls import WorkflowOutcome, bounded

logger = logging.getLogger(__name__)

ACCOUNT_NOT_SET = "account not set"
CART_EMPTY = "cart empty"
DEFAULT_RECORD_PATH = "/lightning/r/Purchase__c/{purchase_id}/view"


def _invalid_lines_message(validation: CheckoutValidation) -> str:
    details = "; ".join(f"{p.item_name} ({p.reason})" for p in validation.problems)
    return f"Cannot check out invalid cart lines: {details}"


class CheckoutWorkflow:
    """Converts a cart into a purchase record."""

    def __init__(
        self,
        purchases: PurchaseRepository,
        timeout_seconds: float | None = 30.0,
        record_path_template: str = DEFAULT_RECORD_PATH,
    ):
        self.purchases = purchases
        self.timeout_seconds = timeout_seconds
        self.record_path_template = record_path_template
        self.in_flight = False
        self.status = WorkflowStatus.IDLE
        self.last_outcome: WorkflowOutcome | None = None

    def record_path(self, purchase_id: str) -> str:
        return self.record_path_template.format(purchase_id=purchase_id)

    def _precheck(self, account_id: str | None, cart: Cart):
        """Local checks. Returns (error, None) or (None, validation)."""
        if self.in_flight:
            return SubmissionInProgressError("checkout"), None
        if not account_id:
            return CheckoutValidationError(ACCOUNT_NOT_SET), None
        if is_empty(cart):
            return CheckoutValidationError(CART_EMPTY), None
        validation = validate_for_checkout(cart)
        if not validation.is_valid:
            return CheckoutValidationError(
                _invalid_lines_message(validation), validation.problem_names,
            ), None
        return None, validation

    async def checkout(self, account_id: str | None, cart: Cart) -> WorkflowOutcome:
        """Run one checkout attempt."""
        error, validation = self._precheck(account_id, cart)
        if error is not None:
            logger.info(
                f"Checkout rejected: {error.message}",
                extra={"account_id": account_id, "error_code": error.code},
            )
            outcome = WorkflowOutcome(
                WorkflowStatus.FAILED, error=error, message=error.message,
                events=[error.to_event()],
            )
            self.last_outcome = outcome
            return outcome

        self.in_flight = True
        self.status = WorkflowStatus.SUBMITTING
        try:
            outcome = await self._submit(account_id, validation)
        finally:
            self.in_flight = False
            self.status = WorkflowStatus.IDLE
        self.last_outcome = outcome
        return outcome

    async def _submit(
        self, account_id: str, validation: CheckoutValidation,
    ) -> WorkflowOutcome:
        context = ErrorContext(account_id=account_id)
        try:
            purchase_id: PurchaseId = await bounded(
                self.purchases.create_purchase(account_id, validation.lines),
                "create purchase", self.timeout_seconds, context,
            )
        except PurchaseToolError as e:
            message = decode_error_message(e)
            logger.warning(
                f"Purchase creation failed: {message}",
                extra={"account_id": account_id, "error_code": e.code},
            )
            return WorkflowOutcome(
                WorkflowStatus.FAILED, error=e, message=message,
                events=[error_toast(message)],
            )
        except Exception as e:
            logger.error(
                f"Unexpected error creating purchase: {e}",
                extra={"account_id": account_id}, exc_info=True,
            )
            message = decode_error_message(e)
            return WorkflowOutcome(
                WorkflowStatus.FAILED, message=message,
                events=[error_toast(message)],
            )

        logger.info(
            "Purchase created",
            extra={"purchase_id": purchase_id, "account_id": account_id},
        )
        return WorkflowOutcome(
            WorkflowStatus.SUCCEEDED, record_id=purchase_id,
            message="Purchase created",
            events=checkout_succeeded_events(
                purchase_id, self.record_path(purchase_id),
            ),
        )
