"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable structures returned across the orchestrator
    boundary: ``WorkflowResult`` for every write step, the denormalized
    ``OrderWorkflowView`` tree for status queries, and the reconciliation
    rows produced by the payment selector.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Selectors build these from ORM
    entities; callers never receive ORM instances.

Data flow:
    Order graph -> OrderWorkflowView (status aggregation)
    PurchaseOrder graph -> PurchaseOrderReconciliation -> PaymentPage /
        VendorAgingRow / VendorComplianceRow
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from fulfillment_kernel.domain.statuses import (
    AmountSource,
    DeliveryVerdict,
    PaymentDisplayStatus,
)


class WorkflowStatus(str, Enum):
    """Outcome class of a workflow step."""

    SUCCEEDED = "succeeded"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    PRECONDITION_UNMET = "precondition_unmet"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class WorkflowResult:
    """
    Structured outcome of one orchestration step.

    ``created_ids`` lists records the step created (purchase orders, GRN,
    payment, ticket); ``entity_id`` is the primary record it acted on.
    """

    status: WorkflowStatus
    message: str
    entity_id: UUID | None = None
    created_ids: tuple[UUID, ...] = ()
    error_code: str | None = None
    details: dict = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == WorkflowStatus.SUCCEEDED

    @classmethod
    def succeeded(
        cls,
        message: str,
        entity_id: UUID | None = None,
        created_ids: tuple[UUID, ...] = (),
        **details,
    ) -> WorkflowResult:
        return cls(
            status=WorkflowStatus.SUCCEEDED,
            message=message,
            entity_id=entity_id,
            created_ids=tuple(created_ids),
            details=details,
        )


# ---------------------------------------------------------------------------
# Order workflow status view
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentView:
    id: UUID
    payment_number: str
    amount: Decimal
    status: str
    transaction_id: str | None
    processed_at: datetime | None


@dataclass(frozen=True)
class InvoiceView:
    id: UUID
    invoice_number: str
    invoice_date: date
    invoice_amount: Decimal
    status: str


@dataclass(frozen=True)
class PurchaseOrderView:
    id: UUID
    po_number: str
    vendor_id: UUID
    total_amount: Decimal
    status: str
    invoice: InvoiceView | None
    payment: PaymentView | None


@dataclass(frozen=True)
class DispatchLineView:
    dispatch_id: UUID
    dispatch_status: str
    dispatched_quantity: int


@dataclass(frozen=True)
class ReceiptLineView:
    grn_id: UUID
    grn_number: str
    grn_status: str
    item_status: str
    received_quantity: int


@dataclass(frozen=True)
class AssignmentView:
    id: UUID
    vendor_id: UUID
    assigned_quantity: int
    status: str
    purchase_order: PurchaseOrderView | None
    dispatches: tuple[DispatchLineView, ...]
    receipts: tuple[ReceiptLineView, ...]


@dataclass(frozen=True)
class OrderItemView:
    id: UUID
    line_number: int
    product_name: str
    quantity: int
    unit_price: Decimal
    assignments: tuple[AssignmentView, ...]


@dataclass(frozen=True)
class OrderWorkflowView:
    """Denormalized snapshot of one order's progress."""

    id: UUID
    order_number: str
    client_order_id: str | None
    status: str
    total_value: Decimal
    created_at: datetime | None
    items: tuple[OrderItemView, ...]

    @property
    def purchase_orders(self) -> tuple[PurchaseOrderView, ...]:
        """Distinct purchase orders across all assignments, in line order."""
        seen: dict[UUID, PurchaseOrderView] = {}
        for item in self.items:
            for assignment in item.assignments:
                po = assignment.purchase_order
                if po is not None and po.id not in seen:
                    seen[po.id] = po
        return tuple(seen.values())

    @property
    def assignment_count(self) -> int:
        return sum(len(item.assignments) for item in self.items)


# ---------------------------------------------------------------------------
# Payment reconciliation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PurchaseOrderReconciliation:
    """Delivery verdict and authoritative amount for one purchase order."""

    purchase_order_id: UUID
    po_number: str
    vendor_id: UUID
    order_reference: str | None
    invoice_number: str | None
    invoice_amount: Decimal | None
    computed_total: Decimal
    amount: Decimal
    amount_source: AmountSource
    delivery: DeliveryVerdict
    payment_status: PaymentDisplayStatus
    invoice_date: date | None
    due_date: date | None
    released_at: datetime | None
    reference_id: str | None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentPage:
    rows: tuple[PurchaseOrderReconciliation, ...]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class VendorAgingRow:
    vendor_id: UUID
    outstanding_amount: Decimal
    pending_count: int
    average_pending_days: Decimal
    oldest_invoice_date: date | None


@dataclass(frozen=True)
class VendorComplianceRow:
    vendor_id: UUID
    total_invoices: int
    compliant_invoices: int
    compliance_percent: Decimal


@dataclass(frozen=True)
class ComplianceReport:
    vendors: tuple[VendorComplianceRow, ...]
    total_invoices: int
    compliant_invoices: int
    overall_percent: Decimal
