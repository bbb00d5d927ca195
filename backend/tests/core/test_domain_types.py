"""Domain Types — verifies identity wrappers and enum values.

Tests:
    - NewType wrappers exist and are callable
    - Enums have expected members and serialize to string
"""

from purchase_tool.core.domain_types import (
    AccountId, CartChange, ItemId, PurchaseId, ToastVariant, WorkflowStatus,
)


def test_identity_types_wrap_str():
    assert ItemId("a") == "a"
    assert AccountId("acc") == "acc"
    assert PurchaseId("p-1") == "p-1"


def test_toast_variants():
    assert {v.value for v in ToastVariant} == {"info", "success", "error"}


def test_cart_change_has_two_branches():
    assert set(CartChange) == {CartChange.ADDED, CartChange.QUANTITY_UPDATED}


def test_workflow_status_lifecycle_states():
    assert [s.value for s in WorkflowStatus] == [
        "idle", "submitting", "succeeded", "failed",
    ]


def test_enums_serialize_to_string():
    assert WorkflowStatus.SUCCEEDED == "succeeded"
    assert ToastVariant.ERROR == "error"
