"""
Module: fulfillment_kernel.models.order
Responsibility: ORM persistence for customer orders, their line items and the
    vendor assignments that split each line across vendors.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py only.

Invariants enforced:
    - order_number and client_order_id are unique.
    - An OrderItem belongs to exactly one Order; an AssignedOrderItem links
      exactly one OrderItem to one vendor.
    - Vendors are owned by an external directory; ``vendor_id`` carries no
      foreign key.
    - Order status only moves forward (RECEIVED -> ASSIGNED -> PROCESSING ->
      FULFILLED); transitions are performed by services, never by callers.
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_kernel.db.base import TrackedBase
from fulfillment_kernel.domain.statuses import AssignmentStatus, OrderStatus

if TYPE_CHECKING:
    from fulfillment_kernel.models.dispatch import DispatchItem
    from fulfillment_kernel.models.purchase_order import PurchaseOrderItem
    from fulfillment_kernel.models.receipt import GoodsReceiptItem


class Order(TrackedBase):
    """
    A customer order received for fulfilment.

    Guarantees:
        - ``items`` are ordered by ``line_number``.
        - FULFILLED is terminal.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        UniqueConstraint("client_order_id", name="uq_order_client_order_id"),
        Index("idx_order_status", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    client_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=OrderStatus.RECEIVED.value
    )
    total_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_number",
    )

    @property
    def assignments(self) -> list["AssignedOrderItem"]:
        return [a for item in self.items for a in item.assignments]

    def __repr__(self) -> str:
        return f"<Order {self.order_number} [{self.status}]>"


class OrderItem(TrackedBase):
    """One product line of an order; may be split across several vendors."""

    __tablename__ = "order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_order_item_line"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    assignments: Mapped[list["AssignedOrderItem"]] = relationship(
        "AssignedOrderItem",
        back_populates="order_item",
        cascade="all, delete-orphan",
        order_by="AssignedOrderItem.created_at",
    )

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.unit_price

    def __repr__(self) -> str:
        return f"<OrderItem {self.line_number} {self.product_name} x{self.quantity}>"


class AssignedOrderItem(TrackedBase):
    """
    Assignment of (part of) an order line to one vendor.

    Guarantees:
        - Appears in at most one PurchaseOrderItem.
        - May appear in any number of dispatch and receipt lines over time.
    """

    __tablename__ = "assigned_order_items"

    __table_args__ = (
        Index("idx_assignment_vendor", "vendor_id"),
        Index("idx_assignment_order_item", "order_item_id"),
    )

    order_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("order_items.id"), nullable=False
    )
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    assigned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    confirmed_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=AssignmentStatus.PENDING_CONFIRMATION.value
    )
    vendor_remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    order_item: Mapped["OrderItem"] = relationship(
        "OrderItem", back_populates="assignments"
    )
    purchase_order_item: Mapped["PurchaseOrderItem | None"] = relationship(
        "PurchaseOrderItem", back_populates="assignment", uselist=False
    )
    dispatch_items: Mapped[list["DispatchItem"]] = relationship(
        "DispatchItem", back_populates="assignment"
    )
    receipt_items: Mapped[list["GoodsReceiptItem"]] = relationship(
        "GoodsReceiptItem", back_populates="assignment"
    )

    @property
    def line_total(self) -> Decimal:
        return self.assigned_quantity * self.order_item.unit_price

    def __repr__(self) -> str:
        return f"<AssignedOrderItem vendor={self.vendor_id} qty={self.assigned_quantity} [{self.status}]>"
