"""
EntityRepository -- transactional access to the fulfillment entity graphs.

Responsibility:
    Loads orders, invoices, dispatches, purchase orders, GRNs and tickets
    together with the relationships each workflow step walks, optionally
    locking the root row, and raises the typed not-found error when an id
    does not resolve.  Adds new records to the unit of work.

Architecture position:
    Kernel > Services.  The only mutator of persisted state; every
    converter and processor reads and writes through it inside the caller's
    transaction.

Invariants enforced:
    - Root rows are loaded ``FOR UPDATE`` when a step will mutate them, so
      concurrent steps on the same entity queue on PostgreSQL.
    - Related collections are loaded eagerly (``selectinload``); nothing is
      lazy-loaded after the unit of work ends.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment_kernel.db.base import Base
from fulfillment_kernel.exceptions import (
    DispatchNotFoundError,
    InvoiceNotFoundError,
    OrderNotFoundError,
    PurchaseOrderNotFoundError,
    ReceiptNotFoundError,
    TicketNotFoundError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import (
    Dispatch,
    GoodsReceiptNote,
    Order,
    Payment,
    PurchaseOrder,
    Ticket,
    VendorInvoice,
)
from fulfillment_kernel.models.graphs import (
    dispatch_graph,
    invoice_graph,
    order_graph,
    purchase_order_graph,
    receipt_graph,
)
from fulfillment_kernel.services.base import BaseService

logger = get_logger("services.entity_repository")


class EntityRepository(BaseService):
    """
    Graph-aware loader and writer for the workflow's entities.

    Non-goals:
        - Does NOT commit; the TransactionRunner owns the transaction.
        - Does NOT decide business rules; it only resolves ids.
    """

    def _load(self, model, entity_id: UUID, options: tuple, for_update: bool):
        stmt = select(model).where(model.id == entity_id).options(*options)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_order(self, order_id: UUID, for_update: bool = False) -> Order:
        order = self._load(Order, order_id, order_graph(), for_update)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def get_invoice(self, invoice_id: UUID, for_update: bool = False) -> VendorInvoice:
        invoice = self._load(VendorInvoice, invoice_id, invoice_graph(), for_update)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    def get_dispatch(self, dispatch_id: UUID, for_update: bool = False) -> Dispatch:
        dispatch = self._load(Dispatch, dispatch_id, dispatch_graph(), for_update)
        if dispatch is None:
            raise DispatchNotFoundError(str(dispatch_id))
        return dispatch

    def get_purchase_order(
        self, purchase_order_id: UUID, for_update: bool = False
    ) -> PurchaseOrder:
        purchase_order = self._load(
            PurchaseOrder, purchase_order_id, purchase_order_graph(), for_update
        )
        if purchase_order is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))
        return purchase_order

    def get_receipt(self, grn_id: UUID, for_update: bool = False) -> GoodsReceiptNote:
        grn = self._load(GoodsReceiptNote, grn_id, receipt_graph(), for_update)
        if grn is None:
            raise ReceiptNotFoundError(str(grn_id))
        return grn

    def get_ticket(self, ticket_id: UUID, for_update: bool = False) -> Ticket:
        ticket = self._load(Ticket, ticket_id, (), for_update)
        if ticket is None:
            raise TicketNotFoundError(str(ticket_id))
        return ticket

    def find_receipt_for_dispatch(self, dispatch_id: UUID) -> GoodsReceiptNote | None:
        return self.session.execute(
            select(GoodsReceiptNote).where(GoodsReceiptNote.dispatch_id == dispatch_id)
        ).scalar_one_or_none()

    def find_payment_for_purchase_order(self, purchase_order_id: UUID) -> Payment | None:
        return self.session.execute(
            select(Payment)
            .where(Payment.purchase_order_id == purchase_order_id)
            .with_for_update()
        ).scalar_one_or_none()

    def find_ticket_for_receipt(self, grn_id: UUID) -> Ticket | None:
        return self.session.execute(
            select(Ticket).where(Ticket.goods_receipt_note_id == grn_id)
        ).scalar_one_or_none()

    def receipts_for_purchase_order(
        self, purchase_order: PurchaseOrder
    ) -> list[GoodsReceiptNote]:
        """Distinct GRNs reachable from a purchase order's assignment lines."""
        seen: dict[UUID, GoodsReceiptNote] = {}
        for item in purchase_order.items:
            for dispatch_item in item.assignment.dispatch_items:
                grn = dispatch_item.dispatch.goods_receipt_note
                if grn is not None and grn.id not in seen:
                    seen[grn.id] = grn
        return list(seen.values())

    def add(self, entity: Base) -> None:
        self.session.add(entity)

    def flush(self) -> None:
        self.session.flush()
