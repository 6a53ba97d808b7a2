"""
Module: fulfillment_kernel.models.sequence_counter
Responsibility: Counter rows backing document-number allocation.
Architecture position: Kernel > Models.  Mutated only by SequenceService.

Each row is one counter scope, e.g. ``purchase_order:2025`` or ``ticket``.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
