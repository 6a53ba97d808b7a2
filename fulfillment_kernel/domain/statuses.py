"""
Status enumerations for every persisted entity and derived view.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Models store ``.value`` in String
    columns; because every enum subclasses ``str``, a value loaded back from
    the database compares equal to its member.
"""

from enum import Enum


class OrderStatus(str, Enum):
    RECEIVED = "RECEIVED"
    ASSIGNED = "ASSIGNED"
    PROCESSING = "PROCESSING"
    FULFILLED = "FULFILLED"
    PARTIALLY_FULFILLED = "PARTIALLY_FULFILLED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


# Order statuses the purchase-order converter accepts
ASSIGNABLE_ORDER_STATUSES = frozenset({OrderStatus.RECEIVED, OrderStatus.ASSIGNED})


class AssignmentStatus(str, Enum):
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    VENDOR_CONFIRMED_FULL = "VENDOR_CONFIRMED_FULL"
    VENDOR_CONFIRMED_PARTIAL = "VENDOR_CONFIRMED_PARTIAL"
    VENDOR_DECLINED = "VENDOR_DECLINED"
    INVOICED = "INVOICED"
    DISPATCHED = "DISPATCHED"
    STORE_RECEIVED = "STORE_RECEIVED"
    VERIFIED_OK = "VERIFIED_OK"
    VERIFIED_MISMATCH = "VERIFIED_MISMATCH"
    COMPLETED = "COMPLETED"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    ACCEPTED = "ACCEPTED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DispatchStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class GRNStatus(str, Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED_OK = "VERIFIED_OK"
    VERIFIED_MISMATCH = "VERIFIED_MISMATCH"
    PARTIALLY_VERIFIED = "PARTIALLY_VERIFIED"


# Terminal verification outcomes of a receipt
TERMINAL_GRN_STATUSES = frozenset({GRNStatus.VERIFIED_OK, GRNStatus.VERIFIED_MISMATCH})


class GRNItemStatus(str, Enum):
    VERIFIED_OK = "VERIFIED_OK"
    QUANTITY_MISMATCH = "QUANTITY_MISMATCH"
    DAMAGE_REPORTED = "DAMAGE_REPORTED"
    SHORTAGE_REPORTED = "SHORTAGE_REPORTED"
    EXCESS_RECEIVED = "EXCESS_RECEIVED"


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


RESOLVED_TICKET_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class DeliveryVerdict(str, Enum):
    """Three-valued delivery verification of a purchase order."""

    YES = "Yes"
    NO = "No"
    PARTIAL = "Partial"


class PaymentDisplayStatus(str, Enum):
    """Caller-facing payment state derived from the payment record and due date."""

    PENDING = "Pending"
    RELEASED = "Released"
    OVERDUE = "Overdue"


class AmountSource(str, Enum):
    """Which figure was chosen as a purchase order's authoritative amount."""

    VENDOR_INVOICE = "VENDOR_INVOICE"
    PURCHASE_ORDER_LINES = "PURCHASE_ORDER_LINES"
