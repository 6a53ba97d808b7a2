"""
Pure domain layer.

Status enums, workflow policies, result/view DTOs and the clock.  NO
dependencies on the ORM, the database or any I/O other than SystemClock.
"""

from fulfillment_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fulfillment_kernel.domain.dtos import (
    ComplianceReport,
    OrderWorkflowView,
    PaymentPage,
    PurchaseOrderReconciliation,
    VendorAgingRow,
    VendorComplianceRow,
    WorkflowResult,
    WorkflowStatus,
)
from fulfillment_kernel.domain.policies import (
    CompletionPolicy,
    DeliveryAggregationPolicy,
    derive_delivery_verdict,
    select_authoritative_amount,
)
from fulfillment_kernel.domain.statuses import (
    AmountSource,
    AssignmentStatus,
    DeliveryVerdict,
    DispatchStatus,
    GRNItemStatus,
    GRNStatus,
    InvoiceStatus,
    OrderStatus,
    PaymentDisplayStatus,
    PaymentStatus,
    PurchaseOrderStatus,
    TicketPriority,
    TicketStatus,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "WorkflowResult",
    "WorkflowStatus",
    "OrderWorkflowView",
    "PurchaseOrderReconciliation",
    "PaymentPage",
    "VendorAgingRow",
    "VendorComplianceRow",
    "ComplianceReport",
    "CompletionPolicy",
    "DeliveryAggregationPolicy",
    "derive_delivery_verdict",
    "select_authoritative_amount",
    "AmountSource",
    "AssignmentStatus",
    "DeliveryVerdict",
    "DispatchStatus",
    "GRNItemStatus",
    "GRNStatus",
    "InvoiceStatus",
    "OrderStatus",
    "PaymentDisplayStatus",
    "PaymentStatus",
    "PurchaseOrderStatus",
    "TicketPriority",
    "TicketStatus",
]
