"""
Module: fulfillment_kernel.models.dispatch
Responsibility: ORM persistence for vendor shipments and their lines.
Architecture position: Kernel > Models.

Invariants enforced:
    - A DispatchItem links one AssignedOrderItem to a dispatched quantity.
    - A Dispatch owns at most one GoodsReceiptNote (unique FK on the GRN side).
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_kernel.db.base import TrackedBase
from fulfillment_kernel.domain.statuses import DispatchStatus

if TYPE_CHECKING:
    from fulfillment_kernel.models.order import AssignedOrderItem
    from fulfillment_kernel.models.receipt import GoodsReceiptItem, GoodsReceiptNote


class Dispatch(TrackedBase):
    """A shipment from one vendor, grouping dispatched assignment lines."""

    __tablename__ = "dispatches"

    __table_args__ = (
        Index("idx_dispatch_vendor", "vendor_id"),
        Index("idx_dispatch_status", "status"),
    )

    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    awb_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logistics_partner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=DispatchStatus.PENDING.value
    )
    dispatched_at: Mapped[datetime | None] = mapped_column(nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)

    items: Mapped[list["DispatchItem"]] = relationship(
        "DispatchItem",
        back_populates="dispatch",
        cascade="all, delete-orphan",
        order_by="DispatchItem.line_number",
    )
    goods_receipt_note: Mapped["GoodsReceiptNote | None"] = relationship(
        "GoodsReceiptNote", back_populates="dispatch", uselist=False
    )

    def __repr__(self) -> str:
        return f"<Dispatch {self.id} [{self.status}]>"


class DispatchItem(TrackedBase):
    __tablename__ = "dispatch_items"

    __table_args__ = (
        Index("idx_dispatch_item_assignment", "assigned_order_item_id"),
    )

    dispatch_id: Mapped[UUID] = mapped_column(
        ForeignKey("dispatches.id"), nullable=False
    )
    assigned_order_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("assigned_order_items.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    dispatched_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    dispatch: Mapped["Dispatch"] = relationship("Dispatch", back_populates="items")
    assignment: Mapped["AssignedOrderItem"] = relationship(
        "AssignedOrderItem", back_populates="dispatch_items"
    )
    receipt_items: Mapped[list["GoodsReceiptItem"]] = relationship(
        "GoodsReceiptItem", back_populates="dispatch_item"
    )
