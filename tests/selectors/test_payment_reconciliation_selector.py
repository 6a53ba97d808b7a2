"""
Tests for delivery/payment reconciliation and the reports built on it:
payment listing, vendor payment aging and invoice compliance.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import OrderLine
from fulfillment_kernel.config import FulfillmentConfig
from fulfillment_kernel.domain.policies import DeliveryAggregationPolicy
from fulfillment_kernel.domain.statuses import (
    AmountSource,
    DeliveryVerdict,
    GRNStatus,
    PaymentDisplayStatus,
)
from fulfillment_kernel.exceptions import PurchaseOrderNotFoundError
from fulfillment_kernel.services.workflow_orchestrator import WorkflowOrchestrator


@pytest.fixture
def single_po(issue_purchase_orders):
    """Issue a one-line PO for a vendor; returns (purchase_order, assignment_id)."""

    def _single(vendor_id, quantity=10, unit_price=Decimal("10.00"), **kwargs):
        built, purchase_orders = issue_purchase_orders(
            [OrderLine(quantity, unit_price, [(vendor_id, quantity)])], **kwargs
        )
        return purchase_orders[vendor_id], built.assignment_ids[0]

    return _single


@pytest.fixture
def two_line_po(issue_purchase_orders, vendors):
    """PO of 10 x 10.00 + 5 x 6.00 for one vendor; returns (po, assignment_ids)."""
    a, _, _ = vendors
    built, purchase_orders = issue_purchase_orders(
        [
            OrderLine(10, Decimal("10.00"), [(a, 10)]),
            OrderLine(5, Decimal("6.00"), [(a, 5)]),
        ],
        client_order_id="CLIENT-42",
    )
    return purchase_orders[a], built.assignment_ids


class TestReconcilePurchaseOrder:
    def test_one_verified_line_trusts_invoice(
        self, orchestrator, two_line_po, make_invoice, make_dispatch, make_receipt, vendors
    ):
        # line one received and verified, line two never dispatched
        purchase_order, assignment_ids = two_line_po
        make_invoice(purchase_order.id, Decimal("125.00"))
        make_receipt(make_dispatch(vendors[0], [(assignment_ids[0], 10)]))

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.delivery == DeliveryVerdict.YES
        assert row.computed_total == Decimal("130.00")
        assert row.invoice_amount == Decimal("125.00")
        assert row.amount == Decimal("125.00")
        assert row.amount_source == AmountSource.VENDOR_INVOICE
        assert row.order_reference == "CLIENT-42"
        assert row.po_number == purchase_order.po_number

    def test_all_lines_policy_is_stricter(
        self, session_factory, clock, two_line_po, make_invoice, make_dispatch, make_receipt, vendors
    ):
        purchase_order, assignment_ids = two_line_po
        make_invoice(purchase_order.id, Decimal("125.00"))
        make_receipt(make_dispatch(vendors[0], [(assignment_ids[0], 10)]))
        strict = WorkflowOrchestrator(
            session_factory,
            clock=clock,
            config=FulfillmentConfig(delivery_policy=DeliveryAggregationPolicy.ALL_LINES_VERIFIED),
        )

        row = strict.reconcile_purchase_order(purchase_order.id)

        assert row.delivery == DeliveryVerdict.PARTIAL
        assert row.amount == Decimal("130.00")
        assert row.amount_source == AmountSource.PURCHASE_ORDER_LINES

    def test_unverified_receipt_uses_computed_total(
        self, orchestrator, two_line_po, make_invoice, make_dispatch, make_receipt, vendors
    ):
        purchase_order, assignment_ids = two_line_po
        make_invoice(purchase_order.id, Decimal("140.00"))
        make_receipt(
            make_dispatch(vendors[0], [(assignment_ids[0], 10)]),
            status=GRNStatus.VERIFIED_MISMATCH,
        )

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.delivery == DeliveryVerdict.PARTIAL
        assert row.amount == Decimal("130.00")

    def test_no_receipts_no_invoice(self, orchestrator, two_line_po):
        purchase_order, _ = two_line_po

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.delivery == DeliveryVerdict.NO
        assert row.invoice_number is None
        assert row.due_date is None
        assert row.payment_status == PaymentDisplayStatus.PENDING
        assert row.amount == Decimal("130.00")

    def test_order_number_used_without_client_reference(self, orchestrator, single_po, vendors):
        purchase_order, _ = single_po(vendors[1])
        row = orchestrator.reconcile_purchase_order(purchase_order.id)
        assert row.order_reference.startswith("ORD-")

    def test_due_date_and_overdue(self, orchestrator, single_po, make_invoice, vendors):
        purchase_order, _ = single_po(vendors[0])
        make_invoice(purchase_order.id, Decimal("100.00"), invoice_date=date(2025, 2, 1))

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.due_date == date(2025, 2, 8)
        assert row.payment_status == PaymentDisplayStatus.OVERDUE

    def test_overdue_for_whole_due_date(self, orchestrator, single_po, make_invoice, vendors):
        purchase_order, _ = single_po(vendors[0])
        # clock is 2025-03-01 12:00 UTC
        make_invoice(purchase_order.id, Decimal("100.00"), invoice_date=date(2025, 2, 22))

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.due_date == date(2025, 3, 1)
        assert row.payment_status == PaymentDisplayStatus.OVERDUE

    def test_not_yet_due_is_pending(self, orchestrator, single_po, make_invoice, vendors):
        purchase_order, _ = single_po(vendors[0])
        make_invoice(purchase_order.id, Decimal("100.00"), invoice_date=date(2025, 2, 25))

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.due_date == date(2025, 3, 4)
        assert row.payment_status == PaymentDisplayStatus.PENDING

    def test_clock_drives_overdue(self, orchestrator, clock, single_po, make_invoice, vendors):
        purchase_order, _ = single_po(vendors[0])
        make_invoice(purchase_order.id, Decimal("100.00"), invoice_date=date(2025, 2, 25))
        clock.advance_days(4)

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.payment_status == PaymentDisplayStatus.OVERDUE

    def test_released_payment(self, orchestrator, single_po, make_invoice, vendors, actor_id):
        purchase_order, _ = single_po(vendors[0])
        make_invoice(purchase_order.id, Decimal("100.00"), invoice_date=date(2025, 1, 1))
        orchestrator.release_payment(purchase_order.id, "UTR-55", actor_id)

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.payment_status == PaymentDisplayStatus.RELEASED
        assert row.reference_id == "UTR-55"
        assert row.released_at is not None

    def test_pending_payment_has_no_release_time(
        self, orchestrator, single_po, make_invoice, vendors, actor_id
    ):
        purchase_order, _ = single_po(vendors[0])
        invoice_id = make_invoice(purchase_order.id, Decimal("100.00"))
        orchestrator.approve_invoice_and_create_payment(invoice_id, actor_id)

        row = orchestrator.reconcile_purchase_order(purchase_order.id)

        assert row.payment_status == PaymentDisplayStatus.PENDING
        assert row.released_at is None

    def test_unknown_purchase_order(self, orchestrator, db_engine):
        with pytest.raises(PurchaseOrderNotFoundError):
            orchestrator.reconcile_purchase_order(uuid4())


class TestListPayments:
    @pytest.fixture
    def ledger(self, orchestrator, single_po, make_invoice, make_dispatch, make_receipt, vendors, actor_id):
        a, b, c = vendors
        overdue, _ = single_po(a)
        make_invoice(overdue.id, Decimal("100.00"), invoice_date=date(2025, 1, 15))

        delivered, assignment_id = single_po(b)
        make_invoice(delivered.id, Decimal("99.00"), invoice_date=date(2025, 2, 27))
        make_receipt(make_dispatch(b, [(assignment_id, 10)]))

        released, _ = single_po(c)
        orchestrator.release_payment(released.id, "UTR-9", actor_id)
        return overdue, delivered, released

    def test_unfiltered(self, orchestrator, ledger):
        page = orchestrator.list_payments()
        assert page.total == 3
        assert {row.purchase_order_id for row in page.rows} == {po.id for po in ledger}

    def test_filter_by_payment_status(self, orchestrator, ledger):
        overdue, delivered, released = ledger
        assert [r.purchase_order_id for r in orchestrator.list_payments(status=PaymentDisplayStatus.OVERDUE).rows] == [overdue.id]
        assert [r.purchase_order_id for r in orchestrator.list_payments(status="Released").rows] == [released.id]
        assert [r.purchase_order_id for r in orchestrator.list_payments(status=PaymentDisplayStatus.PENDING).rows] == [delivered.id]

    def test_filter_by_delivery(self, orchestrator, ledger):
        _, delivered, _ = ledger
        page = orchestrator.list_payments(delivery=DeliveryVerdict.YES)
        assert page.total == 1
        assert page.rows[0].purchase_order_id == delivered.id
        assert page.rows[0].amount == Decimal("99.00")
        assert orchestrator.list_payments(delivery="No").total == 2

    def test_pagination(self, orchestrator, ledger):
        first = orchestrator.list_payments(page=1, limit=2)
        second = orchestrator.list_payments(page=2, limit=2)
        assert len(first.rows) == 2
        assert len(second.rows) == 1
        assert first.pages == second.pages == 2
        ids = [r.purchase_order_id for r in first.rows + second.rows]
        assert len(set(ids)) == 3
        assert orchestrator.list_payments(page=3, limit=2).rows == ()

    @pytest.mark.parametrize("page,limit", [(0, 20), (1, 0)])
    def test_invalid_paging(self, orchestrator, db_engine, page, limit):
        with pytest.raises(ValueError):
            orchestrator.list_payments(page=page, limit=limit)


class TestVendorPaymentAging:
    def test_outstanding_grouped_by_vendor(
        self, orchestrator, single_po, make_invoice, vendors, actor_id
    ):
        a, b, _ = vendors
        first, _ = single_po(a, quantity=10, unit_price=Decimal("10.00"))
        make_invoice(first.id, Decimal("100.00"), invoice_date=date(2025, 2, 1))
        second, _ = single_po(a, quantity=5, unit_price=Decimal("4.00"))
        make_invoice(second.id, Decimal("20.00"), invoice_date=date(2025, 2, 21))
        paid, _ = single_po(b)
        make_invoice(paid.id, Decimal("100.00"), invoice_date=date(2025, 1, 1))
        orchestrator.release_payment(paid.id, "UTR-1", actor_id)

        rows = orchestrator.vendor_payment_aging()

        assert [row.vendor_id for row in rows] == [a]
        row = rows[0]
        assert row.outstanding_amount == Decimal("120.00")
        assert row.pending_count == 2
        # 28 and 8 days pending on 2025-03-01
        assert row.average_pending_days == Decimal("18.00")
        assert row.oldest_invoice_date == date(2025, 2, 1)

    def test_sorted_by_outstanding_and_filtered(self, orchestrator, single_po, vendors):
        a, b, c = vendors
        single_po(a, quantity=1, unit_price=Decimal("5.00"))
        single_po(b, quantity=1, unit_price=Decimal("50.00"))
        single_po(c, quantity=1, unit_price=Decimal("500.00"))

        rows = orchestrator.vendor_payment_aging()
        assert [row.vendor_id for row in rows] == [c, b, a]
        assert rows[0].oldest_invoice_date is None
        assert rows[0].average_pending_days == Decimal("0")

        only = orchestrator.vendor_payment_aging([a, b])
        assert [row.vendor_id for row in only] == [b, a]


class TestInvoiceCompliance:
    def test_compliance_percentages(self, orchestrator, single_po, make_invoice, vendors):
        a, b, c = vendors
        ok, _ = single_po(a)
        make_invoice(ok.id, Decimal("100.40"))
        off, _ = single_po(a)
        make_invoice(off.id, Decimal("90.00"))
        exact, _ = single_po(b)
        make_invoice(exact.id, Decimal("100.00"))
        single_po(c)  # no invoice, not counted

        report = orchestrator.invoice_compliance()

        by_vendor = {row.vendor_id: row for row in report.vendors}
        assert set(by_vendor) == {a, b}
        assert by_vendor[a].total_invoices == 2
        assert by_vendor[a].compliant_invoices == 1
        assert by_vendor[a].compliance_percent == Decimal("50.00")
        assert by_vendor[b].compliance_percent == Decimal("100.00")
        assert report.total_invoices == 3
        assert report.compliant_invoices == 2
        assert report.overall_percent == Decimal("66.67")

    def test_empty_report(self, orchestrator, db_engine):
        report = orchestrator.invoice_compliance()
        assert report.vendors == ()
        assert report.overall_percent == Decimal("0")
