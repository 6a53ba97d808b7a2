"""Services for the fulfillment kernel (write side)."""

from fulfillment_kernel.services.delivery_verification_service import (
    DeliveryVerificationService,
)
from fulfillment_kernel.services.dispatch_receipt_converter import (
    DispatchReceiptConverter,
)
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.invoice_payment_processor import (
    InvoicePaymentProcessor,
)
from fulfillment_kernel.services.order_completion_checker import (
    OrderCompletionChecker,
)
from fulfillment_kernel.services.purchase_order_converter import (
    PurchaseOrderConverter,
)
from fulfillment_kernel.services.sequence_service import DocumentType, SequenceService
from fulfillment_kernel.services.ticket_service import TicketService
from fulfillment_kernel.services.transaction_runner import TransactionRunner
from fulfillment_kernel.services.workflow_orchestrator import WorkflowOrchestrator

__all__ = [
    "DeliveryVerificationService",
    "DispatchReceiptConverter",
    "DocumentType",
    "EntityRepository",
    "InvoicePaymentProcessor",
    "OrderCompletionChecker",
    "PurchaseOrderConverter",
    "SequenceService",
    "TicketService",
    "TransactionRunner",
    "WorkflowOrchestrator",
]
