"""Domain models for the fulfillment kernel."""

from fulfillment_kernel.models.dispatch import Dispatch, DispatchItem
from fulfillment_kernel.models.order import AssignedOrderItem, Order, OrderItem
from fulfillment_kernel.models.purchase_order import (
    Payment,
    PurchaseOrder,
    PurchaseOrderItem,
    VendorInvoice,
)
from fulfillment_kernel.models.receipt import GoodsReceiptItem, GoodsReceiptNote
from fulfillment_kernel.models.sequence_counter import SequenceCounter
from fulfillment_kernel.models.ticket import Ticket

__all__ = [
    "Order",
    "OrderItem",
    "AssignedOrderItem",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "VendorInvoice",
    "Payment",
    "Dispatch",
    "DispatchItem",
    "GoodsReceiptNote",
    "GoodsReceiptItem",
    "Ticket",
    "SequenceCounter",
]
