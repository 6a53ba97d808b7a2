"""
Module: fulfillment_kernel.models.ticket
Responsibility: ORM persistence for discrepancy tickets raised against a GRN.
Architecture position: Kernel > Models.

Invariants enforced:
    - ticket_number is unique (TKT-000001).
    - At most one ticket per GRN (``uq_ticket_grn``).
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment_kernel.db.base import TrackedBase
from fulfillment_kernel.domain.statuses import TicketPriority, TicketStatus

if TYPE_CHECKING:
    from fulfillment_kernel.models.receipt import GoodsReceiptNote


class Ticket(TrackedBase):
    __tablename__ = "tickets"

    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_ticket_number"),
        UniqueConstraint("goods_receipt_note_id", name="uq_ticket_grn"),
        Index("idx_ticket_status", "status"),
    )

    ticket_number: Mapped[str] = mapped_column(String(30), nullable=False)
    goods_receipt_note_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("goods_receipt_notes.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(String(4000), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketPriority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.OPEN.value
    )
    assignee_id: Mapped[UUID | None] = mapped_column(nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)

    goods_receipt_note: Mapped["GoodsReceiptNote | None"] = relationship(
        "GoodsReceiptNote", back_populates="ticket"
    )

    def __repr__(self) -> str:
        return f"<Ticket {self.ticket_number} [{self.status}]>"
