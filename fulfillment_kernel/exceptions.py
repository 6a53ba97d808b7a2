"""
Typed Exception Hierarchy for the Fulfillment Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Workflow steps fail for a small number of well-understood reasons, and the
caller must be able to tell them apart without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (ids, current status)

Inside a unit of work, services raise these exceptions so the transaction is
rolled back.  The WorkflowOrchestrator converts them into a WorkflowResult at
the boundary; callers never see a low-level database exception.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FulfillmentError (base)
    |
    +-- NotFoundError                      (terminal, never retried)
    |   +-- OrderNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- DispatchNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- ReceiptNotFoundError
    |   +-- TicketNotFoundError
    |
    +-- InvalidStateError                  (terminal, business rule)
    |   +-- OrderNotAssignableError
    |   +-- OrderAlreadyFulfilledError
    |   +-- InvoiceNotPendingError
    |   +-- DispatchNotDeliveredError
    |   +-- TicketAlreadyResolvedError
    |
    +-- PreconditionError                  (terminal, missing data)
    |   +-- NoVendorAssignmentsError
    |   +-- GRNAlreadyExistsError
    |   +-- ItemsNotVerifiedError
    |   +-- InvoiceMissingError
    |   +-- NoReceiptsError
    |   +-- TicketAlreadyExistsError
    |   +-- InvalidAmountError
    |
    +-- ConcurrencyError                   (the only retried class)
        +-- TransientConflictError
        +-- RetriesExhaustedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|-----------------------------------------
Not found     | ORDER_NOT_FOUND             | Order id doesn't exist
              | INVOICE_NOT_FOUND           | Vendor invoice id doesn't exist
              | DISPATCH_NOT_FOUND          | Dispatch id doesn't exist
              | PURCHASE_ORDER_NOT_FOUND    | Purchase order id doesn't exist
              | RECEIPT_NOT_FOUND           | GRN id doesn't exist
              | TICKET_NOT_FOUND            | Ticket id doesn't exist
--------------|-----------------------------|-----------------------------------------
Invalid state | ORDER_NOT_ASSIGNABLE        | Order not RECEIVED/ASSIGNED
              | ORDER_ALREADY_FULFILLED     | Completing a FULFILLED order
              | INVOICE_NOT_PENDING         | Invoice not PENDING_VERIFICATION
              | DISPATCH_NOT_DELIVERED      | Dispatch not DELIVERED
              | TICKET_ALREADY_RESOLVED     | Resolving a resolved/closed ticket
--------------|-----------------------------|-----------------------------------------
Precondition  | NO_VENDOR_ASSIGNMENTS       | Order has no vendor assignments yet
              | GRN_ALREADY_EXISTS          | Dispatch already has a GRN
              | ITEMS_NOT_VERIFIED          | Completion gate not satisfied
              | INVOICE_MISSING             | Purchase order has no vendor invoice
              | NO_RECEIPTS                 | Purchase order has no GRNs
              | TICKET_ALREADY_EXISTS       | GRN already has a discrepancy ticket
              | INVALID_AMOUNT              | Negative monetary amount
--------------|-----------------------------|-----------------------------------------
Concurrency   | TRANSIENT_CONFLICT          | Concurrent writer raced this one
              | RETRIES_EXHAUSTED           | Bounded retries used up

===============================================================================
"""


class FulfillmentError(Exception):
    """
    Base exception for all fulfillment kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FULFILLMENT_ERROR"


# Not-found exceptions


class NotFoundError(FulfillmentError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class InvoiceNotFoundError(NotFoundError):
    """Vendor invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__("Invoice not found")


class DispatchNotFoundError(NotFoundError):
    """Dispatch with given ID was not found."""

    code: str = "DISPATCH_NOT_FOUND"

    def __init__(self, dispatch_id: str):
        self.dispatch_id = dispatch_id
        super().__init__("Dispatch not found")


class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__("Purchase order not found")


class ReceiptNotFoundError(NotFoundError):
    """Goods receipt note with given ID was not found."""

    code: str = "RECEIPT_NOT_FOUND"

    def __init__(self, grn_id: str):
        self.grn_id = grn_id
        super().__init__("Goods receipt note not found")


class TicketNotFoundError(NotFoundError):
    """Ticket with given ID was not found."""

    code: str = "TICKET_NOT_FOUND"

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__("Ticket not found")


# Invalid-state exceptions


class InvalidStateError(FulfillmentError):
    """Entity exists but is not in a status this step accepts."""

    code: str = "INVALID_STATE"


class OrderNotAssignableError(InvalidStateError):
    """Order cannot be converted to purchase orders in its current status."""

    code: str = "ORDER_NOT_ASSIGNABLE"

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Order cannot be processed. Current status: {status}")


class OrderAlreadyFulfilledError(InvalidStateError):
    """Order is already in its terminal FULFILLED status."""

    code: str = "ORDER_ALREADY_FULFILLED"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order is already fulfilled")


class InvoiceNotPendingError(InvalidStateError):
    """Invoice is not awaiting verification."""

    code: str = "INVOICE_NOT_PENDING"

    def __init__(self, invoice_id: str, status: str):
        self.invoice_id = invoice_id
        self.status = status
        super().__init__(f"Invoice cannot be processed. Current status: {status}")


class DispatchNotDeliveredError(InvalidStateError):
    """Dispatch has not been delivered yet."""

    code: str = "DISPATCH_NOT_DELIVERED"

    def __init__(self, dispatch_id: str, status: str):
        self.dispatch_id = dispatch_id
        self.status = status
        super().__init__(f"Dispatch not ready for GRN. Current status: {status}")


class TicketAlreadyResolvedError(InvalidStateError):
    """Ticket is already resolved or closed."""

    code: str = "TICKET_ALREADY_RESOLVED"

    def __init__(self, ticket_id: str, status: str):
        self.ticket_id = ticket_id
        self.status = status
        super().__init__(f"Ticket cannot be resolved. Current status: {status}")


# Precondition exceptions


class PreconditionError(FulfillmentError):
    """Structurally valid request missing required data."""

    code: str = "PRECONDITION_UNMET"


class NoVendorAssignmentsError(PreconditionError):
    """Order has no items assigned to vendors."""

    code: str = "NO_VENDOR_ASSIGNMENTS"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("No items assigned to vendors yet")


class GRNAlreadyExistsError(PreconditionError):
    """A goods receipt note already exists for the dispatch."""

    code: str = "GRN_ALREADY_EXISTS"

    def __init__(self, dispatch_id: str, grn_number: str | None = None):
        self.dispatch_id = dispatch_id
        self.grn_number = grn_number
        super().__init__("GRN already exists for this dispatch")


class ItemsNotVerifiedError(PreconditionError):
    """Some assignments lack a GRN line in a terminal verified state."""

    code: str = "ITEMS_NOT_VERIFIED"

    def __init__(self, order_id: str, unverified_assignment_ids: list[str]):
        self.order_id = order_id
        self.unverified_assignment_ids = unverified_assignment_ids
        super().__init__("Not all items have been verified through GRN")


class InvoiceMissingError(PreconditionError):
    """Purchase order has no vendor invoice."""

    code: str = "INVOICE_MISSING"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__("No vendor invoice exists for this purchase order")


class NoReceiptsError(PreconditionError):
    """Purchase order has no goods receipt notes yet."""

    code: str = "NO_RECEIPTS"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__("No GRNs found for this purchase order")


class TicketAlreadyExistsError(PreconditionError):
    """A discrepancy ticket already exists for the GRN."""

    code: str = "TICKET_ALREADY_EXISTS"

    def __init__(self, grn_id: str, ticket_number: str | None = None):
        self.grn_id = grn_id
        self.ticket_number = ticket_number
        super().__init__("Ticket already exists for this GRN")


class InvalidAmountError(PreconditionError):
    """Monetary amount is not acceptable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount}")


# Concurrency exceptions


class ConcurrencyError(FulfillmentError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class TransientConflictError(ConcurrencyError):
    """A concurrent writer raced this unit of work; safe to retry."""

    code: str = "TRANSIENT_CONFLICT"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Transient conflict during {operation}: {reason}")


class RetriesExhaustedError(ConcurrencyError):
    """Bounded retries were used up without a successful commit."""

    code: str = "RETRIES_EXHAUSTED"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} failed after {attempts} attempts, please try again"
        )
