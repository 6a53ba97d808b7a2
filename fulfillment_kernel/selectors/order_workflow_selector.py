"""
Module: fulfillment_kernel.selectors.order_workflow_selector
Responsibility: Workflow status aggregation.  Assembles the denormalized view
    of one order's progress: per line item, each vendor assignment with its
    purchase order (invoice, payment), dispatch lines and GRN lines.
Architecture position: Kernel > Selectors.  Read-only.

Failure modes:
    - OrderNotFoundError when the order id does not resolve.
"""

from uuid import UUID

from sqlalchemy import select

from fulfillment_kernel.domain.dtos import (
    AssignmentView,
    DispatchLineView,
    InvoiceView,
    OrderItemView,
    OrderWorkflowView,
    PaymentView,
    PurchaseOrderView,
    ReceiptLineView,
)
from fulfillment_kernel.exceptions import OrderNotFoundError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import AssignedOrderItem, Order, PurchaseOrder
from fulfillment_kernel.models.graphs import order_graph
from fulfillment_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.order_workflow")


def _purchase_order_view(purchase_order: PurchaseOrder) -> PurchaseOrderView:
    invoice = purchase_order.invoice
    payment = purchase_order.payment
    return PurchaseOrderView(
        id=purchase_order.id,
        po_number=purchase_order.po_number,
        vendor_id=purchase_order.vendor_id,
        total_amount=purchase_order.total_amount,
        status=purchase_order.status,
        invoice=InvoiceView(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            invoice_amount=invoice.invoice_amount,
            status=invoice.status,
        )
        if invoice is not None
        else None,
        payment=PaymentView(
            id=payment.id,
            payment_number=payment.payment_number,
            amount=payment.amount,
            status=payment.status,
            transaction_id=payment.transaction_id,
            processed_at=payment.processed_at,
        )
        if payment is not None
        else None,
    )


def _assignment_view(assignment: AssignedOrderItem) -> AssignmentView:
    po_item = assignment.purchase_order_item
    return AssignmentView(
        id=assignment.id,
        vendor_id=assignment.vendor_id,
        assigned_quantity=assignment.assigned_quantity,
        status=assignment.status,
        purchase_order=_purchase_order_view(po_item.purchase_order)
        if po_item is not None
        else None,
        dispatches=tuple(
            DispatchLineView(
                dispatch_id=dispatch_item.dispatch_id,
                dispatch_status=dispatch_item.dispatch.status,
                dispatched_quantity=dispatch_item.dispatched_quantity,
            )
            for dispatch_item in assignment.dispatch_items
        ),
        receipts=tuple(
            ReceiptLineView(
                grn_id=receipt_item.goods_receipt_note_id,
                grn_number=receipt_item.goods_receipt_note.grn_number,
                grn_status=receipt_item.goods_receipt_note.status,
                item_status=receipt_item.status,
                received_quantity=receipt_item.received_quantity,
            )
            for receipt_item in assignment.receipt_items
        ),
    )


class OrderWorkflowSelector(BaseSelector):
    """Read-side aggregation of an order's end-to-end progress."""

    def get_order_workflow_status(self, order_id: UUID) -> OrderWorkflowView:
        order = self.session.execute(
            select(Order).where(Order.id == order_id).options(*order_graph())
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))

        view = OrderWorkflowView(
            id=order.id,
            order_number=order.order_number,
            client_order_id=order.client_order_id,
            status=order.status,
            total_value=order.total_value,
            created_at=order.created_at,
            items=tuple(
                OrderItemView(
                    id=item.id,
                    line_number=item.line_number,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    assignments=tuple(_assignment_view(a) for a in item.assignments),
                )
                for item in order.items
            ),
        )
        logger.debug(
            "order_workflow_status_loaded",
            extra={
                "order_id": str(order.id),
                "item_count": len(view.items),
                "purchase_order_count": len(view.purchase_orders),
            },
        )
        return view
