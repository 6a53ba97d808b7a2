"""
Module: fulfillment_kernel.models.purchase_order
Responsibility: ORM persistence for vendor purchase orders, their lines, the
    vendor invoice raised against each and the single payment settling it.
Architecture position: Kernel > Models.

Invariants enforced:
    - po_number and payment_number are unique.
    - One PurchaseOrderItem per AssignedOrderItem (unique FK).
    - At most one VendorInvoice and at most one Payment per PurchaseOrder
      (unique FKs); the payment processor upserts against this constraint.
    - Sum of line ``total_price`` equals ``total_amount`` at creation time.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_kernel.db.base import TrackedBase
from fulfillment_kernel.domain.statuses import (
    InvoiceStatus,
    PaymentStatus,
    PurchaseOrderStatus,
)

if TYPE_CHECKING:
    from fulfillment_kernel.models.order import AssignedOrderItem, Order


class PurchaseOrder(TrackedBase):
    """
    A vendor-scoped commitment to buy assigned order lines.

    Guarantees:
        - ``po_number`` is allocated by the SequenceService (PO-2025-0001).
        - ``items`` are ordered by ``line_number``.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_po_number"),
        Index("idx_po_vendor", "vendor_id"),
        Index("idx_po_order", "order_id"),
        Index("idx_po_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(30), nullable=False)
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PurchaseOrderStatus.ISSUED.value
    )
    issued_at: Mapped[datetime | None] = mapped_column(nullable=True)

    order: Mapped["Order"] = relationship("Order")
    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_number",
    )
    invoice: Mapped["VendorInvoice | None"] = relationship(
        "VendorInvoice", back_populates="purchase_order", uselist=False
    )
    payment: Mapped["Payment | None"] = relationship(
        "Payment", back_populates="purchase_order", uselist=False
    )

    @property
    def line_total(self) -> Decimal:
        """System-computed amount: sum of line totals."""
        return sum((item.total_price for item in self.items), Decimal("0"))

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} [{self.status}]>"


class PurchaseOrderItem(TrackedBase):
    """One assigned order line carried on a purchase order."""

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        UniqueConstraint(
            "assigned_order_item_id", name="uq_po_item_assignment"
        ),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    assigned_order_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("assigned_order_items.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total_price: Mapped[Decimal] = mapped_column(nullable=False)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="items"
    )
    assignment: Mapped["AssignedOrderItem"] = relationship(
        "AssignedOrderItem", back_populates="purchase_order_item"
    )


class VendorInvoice(TrackedBase):
    """
    The vendor's invoice against a purchase order.

    Attachment ids reference the external object store; no foreign key.
    """

    __tablename__ = "vendor_invoices"

    __table_args__ = (
        UniqueConstraint("purchase_order_id", name="uq_invoice_purchase_order"),
        Index("idx_invoice_status", "status"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    invoice_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=InvoiceStatus.PENDING_VERIFICATION.value
    )
    vendor_attachment_id: Mapped[UUID | None] = mapped_column(nullable=True)
    accounts_attachment_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="invoice"
    )

    def __repr__(self) -> str:
        return f"<VendorInvoice {self.invoice_number} [{self.status}]>"


class Payment(TrackedBase):
    """The single payment settling a purchase order."""

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("payment_number", name="uq_payment_number"),
        UniqueConstraint("purchase_order_id", name="uq_payment_purchase_order"),
        Index("idx_payment_status", "status"),
    )

    payment_number: Mapped[str] = mapped_column(String(30), nullable=False)
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PaymentStatus.PENDING.value
    )
    transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    processed_by_id: Mapped[UUID | None] = mapped_column(nullable=True)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="payment"
    )

    def __repr__(self) -> str:
        return f"<Payment {self.payment_number} {self.amount} [{self.status}]>"
