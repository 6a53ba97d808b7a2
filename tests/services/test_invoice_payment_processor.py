"""
Tests for invoice approval, payment release and invoice amount correction.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from conftest import OrderLine
from fulfillment_kernel.db.engine import session_scope
from fulfillment_kernel.domain.dtos import WorkflowStatus
from fulfillment_kernel.domain.statuses import (
    InvoiceStatus,
    PaymentStatus,
    PurchaseOrderStatus,
)
from fulfillment_kernel.models import Payment, PurchaseOrder, VendorInvoice


@pytest.fixture
def purchase_order(issue_purchase_orders, vendors):
    """An issued PO of 4 x 25.00 for the first vendor."""
    a, _, _ = vendors
    _, purchase_orders = issue_purchase_orders([OrderLine(4, Decimal("25.00"), [(a, 4)])])
    return purchase_orders[a]


class TestApproveInvoice:
    def test_approval_creates_pending_payment(
        self, orchestrator, purchase_order, make_invoice, db, actor_id
    ):
        invoice_id = make_invoice(purchase_order.id, Decimal("110.00"))

        result = orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        assert result.is_success, result.message
        assert result.message == "Invoice approved and payment created successfully"
        assert result.details["payment_number"] == "PAY-2025-0001"

        invoice = db.get(VendorInvoice, invoice_id)
        assert invoice.status == InvoiceStatus.APPROVED
        assert invoice.approved_by_id == actor_id
        assert invoice.approved_at is not None

        payments = db.all(Payment, purchase_order_id=purchase_order.id)
        assert len(payments) == 1
        assert payments[0].id == result.created_ids[0]
        assert payments[0].status == PaymentStatus.PENDING
        assert payments[0].amount == Decimal("110.00")

        assert db.get(PurchaseOrder, purchase_order.id).status == PurchaseOrderStatus.PARTIALLY_PAID

    def test_second_approval_rejected(self, orchestrator, purchase_order, make_invoice, db, actor_id):
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"))
        assert orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id).is_success

        again = orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        assert again.status == WorkflowStatus.INVALID_STATE
        assert again.message == "Invoice cannot be processed. Current status: APPROVED"
        assert db.count(Payment, purchase_order_id=purchase_order.id) == 1

    def test_reapproval_updates_the_single_payment(
        self, orchestrator, purchase_order, make_invoice, db, actor_id
    ):
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"))
        first = orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        # invoice sent back for verification with a corrected amount
        with session_scope() as s:
            s.execute(
                update(VendorInvoice)
                .where(VendorInvoice.id == invoice_id)
                .values(
                    status=InvoiceStatus.PENDING_VERIFICATION.value,
                    invoice_amount=Decimal("95.00"),
                )
            )

        second = orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        assert second.is_success
        assert second.created_ids == first.created_ids
        assert second.details["payment_number"] == first.details["payment_number"]
        payments = db.all(Payment, purchase_order_id=purchase_order.id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("95.00")

    @pytest.mark.parametrize("status", [InvoiceStatus.REJECTED, InvoiceStatus.PAID])
    def test_non_pending_invoice_rejected(
        self, orchestrator, purchase_order, make_invoice, db, actor_id, status
    ):
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"), status=status)
        result = orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)
        assert result.status == WorkflowStatus.INVALID_STATE
        assert result.details["status"] == status.value
        assert db.count(Payment) == 0

    def test_unknown_invoice(self, orchestrator, db_engine, actor_id):
        result = orchestrator.approve_invoice_and_create_payment(uuid4(), actor_id)
        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.message == "Invoice not found"


class TestReleasePayment:
    def test_release_completes_staged_payment(
        self, orchestrator, purchase_order, make_invoice, db, actor_id
    ):
        invoice_id = make_invoice(purchase_order.id, Decimal("110.00"))
        orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        result = orchestrator.release_payment(purchase_order.id, "UTR-778899", actor_id)

        assert result.is_success, result.message
        assert result.message == "Payment released successfully"
        payment = db.all(Payment, purchase_order_id=purchase_order.id)[0]
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.transaction_id == "UTR-778899"
        assert payment.processed_at is not None
        assert payment.processed_by_id == actor_id
        assert payment.amount == Decimal("110.00")
        assert db.get(PurchaseOrder, purchase_order.id).status == PurchaseOrderStatus.PAID

    def test_release_without_staged_payment_uses_line_total(
        self, orchestrator, purchase_order, db, actor_id
    ):
        result = orchestrator.release_payment(purchase_order.id, "UTR-1", actor_id)

        assert result.is_success, result.message
        payments = db.all(Payment, purchase_order_id=purchase_order.id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("100.00")
        assert payments[0].status == PaymentStatus.COMPLETED

    def test_release_twice_keeps_one_payment(self, orchestrator, purchase_order, db, actor_id):
        orchestrator.release_payment(purchase_order.id, "UTR-1", actor_id)
        orchestrator.release_payment(purchase_order.id, "UTR-2", actor_id)

        payments = db.all(Payment, purchase_order_id=purchase_order.id)
        assert len(payments) == 1
        assert payments[0].transaction_id == "UTR-2"

    def test_unknown_purchase_order(self, orchestrator, db_engine, actor_id):
        result = orchestrator.release_payment(uuid4(), "UTR-1", actor_id)
        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.message == "Purchase order not found"


class TestEditInvoiceAmount:
    def test_amount_updated(self, orchestrator, purchase_order, make_invoice, db, actor_id):
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"))

        result = orchestrator.edit_invoice_amount(purchase_order.id, Decimal("98.40"), actor_id)

        assert result.is_success, result.message
        assert result.message == "Invoice amount updated successfully"
        assert db.get(VendorInvoice, invoice_id).invoice_amount == Decimal("98.40")

    def test_negative_amount_rejected(self, orchestrator, purchase_order, make_invoice, db, actor_id):
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"))

        result = orchestrator.edit_invoice_amount(purchase_order.id, Decimal("-1"), actor_id)

        assert result.status == WorkflowStatus.PRECONDITION_UNMET
        assert result.error_code == "INVALID_AMOUNT"
        assert db.get(VendorInvoice, invoice_id).invoice_amount == Decimal("100.00")

    def test_missing_invoice(self, orchestrator, purchase_order, actor_id):
        result = orchestrator.edit_invoice_amount(purchase_order.id, Decimal("10"), actor_id)
        assert result.status == WorkflowStatus.PRECONDITION_UNMET
        assert result.error_code == "INVOICE_MISSING"
