"""Selectors for the fulfillment kernel (read side)."""

from fulfillment_kernel.selectors.order_workflow_selector import OrderWorkflowSelector
from fulfillment_kernel.selectors.payment_reconciliation_selector import (
    PaymentReconciliationSelector,
    line_receipts,
)

__all__ = [
    "OrderWorkflowSelector",
    "PaymentReconciliationSelector",
    "line_receipts",
]
