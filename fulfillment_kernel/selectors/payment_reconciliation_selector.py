"""
Module: fulfillment_kernel.selectors.payment_reconciliation_selector
Responsibility: Delivery/payment status reconciliation.  For each purchase
    order, walks assignment -> dispatch line -> dispatch -> GRN to derive the
    delivery verdict, picks the authoritative amount and the caller-facing
    payment status, and rolls those rows up into the payment listing, vendor
    aging and invoice compliance reports.
Architecture position: Kernel > Selectors.  Read-only; every decision is
    delegated to ``domain.policies``.

Invariants enforced:
    - The vendor invoice amount is authoritative only when the delivery
      verdict is ``Yes`` and the amount is positive; otherwise the sum of
      purchase-order line totals is.
    - Due date = invoice date + ``payment_grace_days``.

Failure modes:
    - PurchaseOrderNotFoundError from reconcile_purchase_order().
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from fulfillment_kernel.db.types import round_money
from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.dtos import (
    ComplianceReport,
    PaymentPage,
    PurchaseOrderReconciliation,
    VendorAgingRow,
    VendorComplianceRow,
)
from fulfillment_kernel.domain.policies import (
    DeliveryAggregationPolicy,
    derive_delivery_verdict,
    is_invoice_compliant,
    payment_display_status,
    payment_due_date,
    select_authoritative_amount,
)
from fulfillment_kernel.domain.statuses import (
    DeliveryVerdict,
    PaymentDisplayStatus,
    PaymentStatus,
)
from fulfillment_kernel.exceptions import PurchaseOrderNotFoundError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import PurchaseOrder
from fulfillment_kernel.models.graphs import purchase_order_graph
from fulfillment_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.payment_reconciliation")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def line_receipts(purchase_order: PurchaseOrder) -> list[list[str]]:
    """GRN statuses reachable from each assignment line of a purchase order."""
    lines = []
    for item in purchase_order.items:
        statuses = []
        for dispatch_item in item.assignment.dispatch_items:
            grn = dispatch_item.dispatch.goods_receipt_note
            if grn is not None:
                statuses.append(grn.status)
        lines.append(statuses)
    return lines


class PaymentReconciliationSelector(BaseSelector):
    """
    Reconciles delivery verification against invoiced and computed amounts.

    Usage:
        selector = PaymentReconciliationSelector(session, clock)
        row = selector.reconcile_purchase_order(po_id)
        row.delivery, row.amount, row.payment_status
    """

    def __init__(
        self,
        session,
        clock: Clock,
        delivery_policy: DeliveryAggregationPolicy = DeliveryAggregationPolicy.ANY_LINE_VERIFIED,
        payment_grace_days: int = 7,
        compliance_tolerance: Decimal = Decimal("0.50"),
    ):
        super().__init__(session)
        self._clock = clock
        self._delivery_policy = DeliveryAggregationPolicy(delivery_policy)
        self._grace_days = payment_grace_days
        self._tolerance = compliance_tolerance

    # -- single purchase order ------------------------------------------------

    def reconcile(self, purchase_order: PurchaseOrder) -> PurchaseOrderReconciliation:
        """Reconcile an already-loaded purchase order graph."""
        verdict = derive_delivery_verdict(
            line_receipts(purchase_order), self._delivery_policy
        )
        invoice = purchase_order.invoice
        payment = purchase_order.payment
        computed_total = purchase_order.line_total
        invoice_amount = invoice.invoice_amount if invoice is not None else None
        amount, source = select_authoritative_amount(
            verdict, invoice_amount, computed_total
        )

        invoice_date = invoice.invoice_date if invoice is not None else None
        due_date = payment_due_date(invoice_date, self._grace_days)
        payment_status = payment.status if payment is not None else None
        released = (
            payment is not None and payment.status == PaymentStatus.COMPLETED
        )
        order = purchase_order.order

        return PurchaseOrderReconciliation(
            purchase_order_id=purchase_order.id,
            po_number=purchase_order.po_number,
            vendor_id=purchase_order.vendor_id,
            order_reference=order.client_order_id or order.order_number,
            invoice_number=invoice.invoice_number if invoice is not None else None,
            invoice_amount=invoice_amount,
            computed_total=computed_total,
            amount=amount,
            amount_source=source,
            delivery=verdict,
            payment_status=payment_display_status(
                payment_status, due_date, self._clock.today()
            ),
            invoice_date=invoice_date,
            due_date=due_date,
            released_at=payment.processed_at if released else None,
            reference_id=payment.transaction_id if payment is not None else None,
            created_at=purchase_order.created_at,
        )

    def reconcile_purchase_order(
        self, purchase_order_id: UUID
    ) -> PurchaseOrderReconciliation:
        purchase_order = self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .options(*purchase_order_graph())
        ).scalar_one_or_none()
        if purchase_order is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))
        return self.reconcile(purchase_order)

    # -- collections ----------------------------------------------------------

    def reconcile_all(
        self, vendor_ids: Iterable[UUID] | None = None
    ) -> list[PurchaseOrderReconciliation]:
        """Reconciled rows for all (or the given vendors') POs, newest first."""
        stmt = select(PurchaseOrder).options(*purchase_order_graph())
        if vendor_ids is not None:
            stmt = stmt.where(PurchaseOrder.vendor_id.in_(list(vendor_ids)))
        stmt = stmt.order_by(
            PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc()
        )
        purchase_orders = self.session.execute(stmt).scalars().all()
        return [self.reconcile(po) for po in purchase_orders]

    def list_payments(
        self,
        status: PaymentDisplayStatus | None = None,
        delivery: DeliveryVerdict | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> PaymentPage:
        """
        One reconciled row per purchase order, filtered then paginated.

        Filters apply to derived values, so they run after reconciliation.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be >= 1")

        rows = self.reconcile_all()
        if status is not None:
            status = PaymentDisplayStatus(status)
            rows = [row for row in rows if row.payment_status == status]
        if delivery is not None:
            delivery = DeliveryVerdict(delivery)
            rows = [row for row in rows if row.delivery == delivery]

        start = (page - 1) * limit
        return PaymentPage(
            rows=tuple(rows[start : start + limit]),
            page=page,
            limit=limit,
            total=len(rows),
        )

    def vendor_payment_aging(
        self, vendor_ids: Iterable[UUID] | None = None
    ) -> list[VendorAgingRow]:
        """
        Outstanding (unreleased, positive-amount) payables per vendor.

        Rows are ordered by outstanding amount, largest first.
        """
        today = self._clock.today()
        grouped = defaultdict(list)
        for row in self.reconcile_all(vendor_ids):
            if row.payment_status == PaymentDisplayStatus.RELEASED or row.amount <= 0:
                continue
            grouped[row.vendor_id].append(row)

        result = []
        for vendor_id, rows in grouped.items():
            dated = [row.invoice_date for row in rows if row.invoice_date is not None]
            pending_days = [(today - d).days for d in dated]
            average = (
                round_money(Decimal(sum(pending_days)) / len(pending_days))
                if pending_days
                else ZERO
            )
            result.append(
                VendorAgingRow(
                    vendor_id=vendor_id,
                    outstanding_amount=sum((row.amount for row in rows), ZERO),
                    pending_count=len(rows),
                    average_pending_days=average,
                    oldest_invoice_date=min(dated) if dated else None,
                )
            )
        result.sort(key=lambda r: r.outstanding_amount, reverse=True)
        return result

    def invoice_compliance(
        self, vendor_ids: Iterable[UUID] | None = None
    ) -> ComplianceReport:
        """
        Share of invoices whose amount matches the PO lines within tolerance.
        """
        totals: dict[UUID, list[int]] = defaultdict(lambda: [0, 0])
        for row in self.reconcile_all(vendor_ids):
            if row.invoice_amount is None:
                continue
            counts = totals[row.vendor_id]
            counts[0] += 1
            if is_invoice_compliant(
                row.invoice_amount, row.computed_total, self._tolerance
            ):
                counts[1] += 1

        vendors = tuple(
            VendorComplianceRow(
                vendor_id=vendor_id,
                total_invoices=total,
                compliant_invoices=compliant,
                compliance_percent=_percent(compliant, total),
            )
            for vendor_id, (total, compliant) in totals.items()
        )
        total_invoices = sum(v.total_invoices for v in vendors)
        compliant_invoices = sum(v.compliant_invoices for v in vendors)

        logger.debug(
            "invoice_compliance_computed",
            extra={
                "vendor_count": len(vendors),
                "total_invoices": total_invoices,
                "compliant_invoices": compliant_invoices,
            },
        )
        return ComplianceReport(
            vendors=vendors,
            total_invoices=total_invoices,
            compliant_invoices=compliant_invoices,
            overall_percent=_percent(compliant_invoices, total_invoices),
        )


def _percent(part: int, whole: int) -> Decimal:
    if whole == 0:
        return ZERO
    return round_money(Decimal(part) * HUNDRED / Decimal(whole))
