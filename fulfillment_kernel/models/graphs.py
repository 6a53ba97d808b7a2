"""
Eager-loading option sets for the entity graphs the workflow walks.

Shared by the EntityRepository (write side) and the selectors (read side)
so both traverse exactly the same relationships without lazy loads:

    order -> items -> assignments -> purchase order line -> purchase order
          -> invoice / payment
    assignment -> dispatch lines -> dispatch
    assignment -> receipt lines -> GRN -> ticket
    dispatch -> items ; dispatch -> GRN
"""

from sqlalchemy.orm import selectinload

from fulfillment_kernel.models.dispatch import Dispatch, DispatchItem
from fulfillment_kernel.models.order import AssignedOrderItem, Order, OrderItem
from fulfillment_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderItem,
    VendorInvoice,
)
from fulfillment_kernel.models.receipt import GoodsReceiptItem, GoodsReceiptNote


def order_graph() -> tuple:
    """Order with items, assignments and everything downstream of them."""
    return (
        selectinload(Order.items)
        .selectinload(OrderItem.assignments)
        .options(
            selectinload(AssignedOrderItem.purchase_order_item)
            .selectinload(PurchaseOrderItem.purchase_order)
            .options(
                selectinload(PurchaseOrder.invoice),
                selectinload(PurchaseOrder.payment),
            ),
            selectinload(AssignedOrderItem.dispatch_items).selectinload(
                DispatchItem.dispatch
            ),
            selectinload(AssignedOrderItem.receipt_items)
            .selectinload(GoodsReceiptItem.goods_receipt_note)
            .selectinload(GoodsReceiptNote.ticket),
        ),
    )


def purchase_order_graph() -> tuple:
    """Purchase order with invoice, payment, order and each line's receipts."""
    return (
        selectinload(PurchaseOrder.invoice),
        selectinload(PurchaseOrder.payment),
        selectinload(PurchaseOrder.order),
        selectinload(PurchaseOrder.items)
        .selectinload(PurchaseOrderItem.assignment)
        .options(
            selectinload(AssignedOrderItem.order_item),
            selectinload(AssignedOrderItem.dispatch_items)
            .selectinload(DispatchItem.dispatch)
            .selectinload(Dispatch.goods_receipt_note)
            .selectinload(GoodsReceiptNote.items),
        ),
    )


def dispatch_graph() -> tuple:
    return (
        selectinload(Dispatch.items).selectinload(DispatchItem.assignment),
        selectinload(Dispatch.goods_receipt_note),
    )


def invoice_graph() -> tuple:
    return (
        selectinload(VendorInvoice.purchase_order).options(
            selectinload(PurchaseOrder.payment),
            selectinload(PurchaseOrder.items),
        ),
    )


def receipt_graph() -> tuple:
    return (
        selectinload(GoodsReceiptNote.ticket),
        selectinload(GoodsReceiptNote.items),
    )
