"""
Module: fulfillment_kernel.models.receipt
Responsibility: ORM persistence for goods receipt notes (GRNs) and their
    per-line verification outcome.
Architecture position: Kernel > Models.

Invariants enforced:
    - grn_number is unique.
    - At most one GRN per dispatch (``uq_grn_dispatch``).  The dispatch
      converter checks first for a clear error; this constraint is what
      rejects the loser of a concurrent race.
    - One GoodsReceiptItem per DispatchItem within a GRN.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_kernel.db.base import TrackedBase
from fulfillment_kernel.domain.statuses import GRNItemStatus, GRNStatus

if TYPE_CHECKING:
    from fulfillment_kernel.models.dispatch import Dispatch, DispatchItem
    from fulfillment_kernel.models.order import AssignedOrderItem
    from fulfillment_kernel.models.ticket import Ticket


class GoodsReceiptNote(TrackedBase):
    """Operational record of receipt and verification of one dispatch."""

    __tablename__ = "goods_receipt_notes"

    __table_args__ = (
        UniqueConstraint("grn_number", name="uq_grn_number"),
        UniqueConstraint("dispatch_id", name="uq_grn_dispatch"),
        Index("idx_grn_status", "status"),
    )

    grn_number: Mapped[str] = mapped_column(String(30), nullable=False)
    dispatch_id: Mapped[UUID] = mapped_column(
        ForeignKey("dispatches.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=GRNStatus.PENDING_VERIFICATION.value
    )
    received_at: Mapped[datetime] = mapped_column(nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    operator_remarks: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    dispatch: Mapped["Dispatch"] = relationship(
        "Dispatch", back_populates="goods_receipt_note"
    )
    items: Mapped[list["GoodsReceiptItem"]] = relationship(
        "GoodsReceiptItem",
        back_populates="goods_receipt_note",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptItem.line_number",
    )
    ticket: Mapped["Ticket | None"] = relationship(
        "Ticket", back_populates="goods_receipt_note", uselist=False
    )

    def __repr__(self) -> str:
        return f"<GoodsReceiptNote {self.grn_number} [{self.status}]>"


class GoodsReceiptItem(TrackedBase):
    """
    Receipt line for one dispatch line.

    ``status`` mirrors the GRN's delivery outcome at line granularity.
    """

    __tablename__ = "goods_receipt_items"

    __table_args__ = (
        UniqueConstraint(
            "goods_receipt_note_id", "dispatch_item_id", name="uq_grn_item_dispatch_item"
        ),
        Index("idx_grn_item_assignment", "assigned_order_item_id"),
    )

    goods_receipt_note_id: Mapped[UUID] = mapped_column(
        ForeignKey("goods_receipt_notes.id"), nullable=False
    )
    dispatch_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("dispatch_items.id"), nullable=False
    )
    assigned_order_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("assigned_order_items.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    confirmed_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    damaged_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shortage_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    excess_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=GRNItemStatus.VERIFIED_OK.value
    )
    item_remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    goods_receipt_note: Mapped["GoodsReceiptNote"] = relationship(
        "GoodsReceiptNote", back_populates="items"
    )
    dispatch_item: Mapped["DispatchItem"] = relationship(
        "DispatchItem", back_populates="receipt_items"
    )
    assignment: Mapped["AssignedOrderItem"] = relationship(
        "AssignedOrderItem", back_populates="receipt_items"
    )
