"""
Tests for the operator delivery-verdict override on a purchase order's GRNs.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import OrderLine
from fulfillment_kernel.domain.dtos import WorkflowStatus
from fulfillment_kernel.domain.statuses import DeliveryVerdict, GRNItemStatus, GRNStatus
from fulfillment_kernel.models import GoodsReceiptItem, GoodsReceiptNote


@pytest.fixture
def received_po(issue_purchase_orders, make_dispatch, make_receipt, vendors):
    """PO with two lines; each line shipped in its own dispatch with a clean GRN."""
    a, _, _ = vendors
    built, purchase_orders = issue_purchase_orders(
        [
            OrderLine(4, Decimal("5.00"), [(a, 4)]),
            OrderLine(6, Decimal("2.00"), [(a, 6)]),
        ]
    )
    grn_ids = [
        make_receipt(make_dispatch(a, [(assignment_id, 1)]))
        for assignment_id in built.assignment_ids
    ]
    return purchase_orders[a], grn_ids


class TestUpdateDeliveryStatus:
    def test_partial_applies_to_every_grn(self, orchestrator, received_po, db, actor_id):
        purchase_order, grn_ids = received_po

        result = orchestrator.update_delivery_status(
            purchase_order.id, DeliveryVerdict.PARTIAL, actor_id, remarks="2 cartons crushed"
        )

        assert result.is_success, result.message
        assert result.message == "Delivery status updated to Partial"
        assert sorted(result.details["grn_ids"]) == sorted(grn_ids)
        for grn_id in grn_ids:
            grn = db.get(GoodsReceiptNote, grn_id)
            assert grn.status == GRNStatus.PARTIALLY_VERIFIED
            assert grn.verified_at is None
            assert grn.verified_by_id == actor_id
            assert grn.operator_remarks == "2 cartons crushed"
            items = db.all(GoodsReceiptItem, goods_receipt_note_id=grn_id)
            assert {item.status for item in items} == {GRNItemStatus.QUANTITY_MISMATCH.value}

    def test_yes_sets_verified_time(self, orchestrator, received_po, db, actor_id):
        purchase_order, grn_ids = received_po
        orchestrator.update_delivery_status(purchase_order.id, DeliveryVerdict.NO, actor_id)

        orchestrator.update_delivery_status(purchase_order.id, DeliveryVerdict.YES, actor_id)

        grn = db.get(GoodsReceiptNote, grn_ids[0])
        assert grn.status == GRNStatus.VERIFIED_OK
        assert grn.verified_at is not None

    def test_no_resets_to_pending(self, orchestrator, received_po, db, actor_id):
        purchase_order, grn_ids = received_po

        result = orchestrator.update_delivery_status(purchase_order.id, "No", actor_id)

        assert result.message == "Delivery status updated to No"
        grn = db.get(GoodsReceiptNote, grn_ids[1])
        assert grn.status == GRNStatus.PENDING_VERIFICATION
        items = db.all(GoodsReceiptItem, goods_receipt_note_id=grn_ids[1])
        assert items[0].status == GRNItemStatus.SHORTAGE_REPORTED

    def test_remarks_kept_when_not_given(self, orchestrator, received_po, db, actor_id):
        purchase_order, grn_ids = received_po
        orchestrator.update_delivery_status(
            purchase_order.id, DeliveryVerdict.PARTIAL, actor_id, remarks="first note"
        )
        orchestrator.update_delivery_status(purchase_order.id, DeliveryVerdict.YES, actor_id)
        assert db.get(GoodsReceiptNote, grn_ids[0]).operator_remarks == "first note"

    def test_purchase_order_without_receipts(self, orchestrator, issue_purchase_orders, vendors, actor_id):
        a, _, _ = vendors
        _, purchase_orders = issue_purchase_orders([OrderLine(1, Decimal("1.00"), [(a, 1)])])

        result = orchestrator.update_delivery_status(purchase_orders[a].id, DeliveryVerdict.YES, actor_id)

        assert result.status == WorkflowStatus.PRECONDITION_UNMET
        assert result.message == "No GRNs found for this purchase order"

    def test_unknown_purchase_order(self, orchestrator, db_engine, actor_id):
        result = orchestrator.update_delivery_status(uuid4(), DeliveryVerdict.YES, actor_id)
        assert result.status == WorkflowStatus.NOT_FOUND
