"""
SequenceService -- document-number allocation via locked counter rows.

Responsibility:
    Mints the human-readable numbers carried by purchase orders
    (``PO-2025-0004``), payments (``PAY-2025-0004``), goods receipt notes
    (``GRN-2025-0004``) and tickets (``TKT-000004``).  Each counter scope
    (document type, plus year where the type is year-scoped) is one row of
    ``sequence_counters``, incremented under a row lock.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by every
    workflow step that creates a numbered record.

Invariants enforced:
    - Uniqueness: the counter row is the sole source of truth for the next
      value.  Counting existing rows (or parsing the latest number) and
      adding one is never used.
    - Transactional: the increment becomes visible only when the caller's
      transaction commits.  A rolled-back or retried unit of work returns
      its number, so committed numbers are gapless.

Failure modes:
    - IntegrityError: concurrent first use of a counter scope, handled via
      savepoint rollback and re-read.
    - TransientConflictError: the concurrently created counter row is not
      visible to this transaction's snapshot; the caller's unit of work is
      retried.
"""

from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment_kernel.exceptions import TransientConflictError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class DocumentType(str, Enum):
    """Numbered document kinds, valued by their counter-name stem."""

    PURCHASE_ORDER = "purchase_order"
    PAYMENT = "payment"
    GOODS_RECEIPT = "grn"
    TICKET = "ticket"


DOCUMENT_PREFIXES: dict[DocumentType, str] = {
    DocumentType.PURCHASE_ORDER: "PO",
    DocumentType.PAYMENT: "PAY",
    DocumentType.GOODS_RECEIPT: "GRN",
    DocumentType.TICKET: "TKT",
}

YEAR_SCOPED_TYPES = frozenset(
    {DocumentType.PURCHASE_ORDER, DocumentType.PAYMENT, DocumentType.GOODS_RECEIPT}
)


def counter_name(document_type: DocumentType, year: int | None = None) -> str:
    """Counter row name for a document type, e.g. ``purchase_order:2025``."""
    document_type = DocumentType(document_type)
    if document_type in YEAR_SCOPED_TYPES:
        if year is None:
            raise ValueError(f"{document_type.value} numbers are scoped by year")
        return f"{document_type.value}:{year}"
    return document_type.value


def format_document_number(
    document_type: DocumentType,
    value: int,
    year: int | None = None,
    width: int = 4,
) -> str:
    """
    Render a counter value as a document number.

    >>> format_document_number(DocumentType.PURCHASE_ORDER, 4, 2025)
    'PO-2025-0004'
    >>> format_document_number(DocumentType.TICKET, 4, width=6)
    'TKT-000004'
    """
    document_type = DocumentType(document_type)
    prefix = DOCUMENT_PREFIXES[document_type]
    if document_type in YEAR_SCOPED_TYPES:
        return f"{prefix}-{year}-{value:0{width}d}"
    return f"{prefix}-{value:0{width}d}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic values per counter scope via a locked row.
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations on
          PostgreSQL; on SQLite the unit of work already holds the write lock.
        - Gap-free under rollback: an uncommitted value is never consumed.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        number = sequence_service.next_number(DocumentType.PURCHASE_ORDER, 2025)
        # 'PO-2025-0001'
    """

    def __init__(
        self,
        session: Session,
        sequence_width: int = 4,
        ticket_sequence_width: int = 6,
    ):
        self._session = session
        self._widths = {
            DocumentType.PURCHASE_ORDER: sequence_width,
            DocumentType.PAYMENT: sequence_width,
            DocumentType.GOODS_RECEIPT: sequence_width,
            DocumentType.TICKET: ticket_sequence_width,
        }

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Locks the counter row (creating it on first use), increments it and
        returns the new value.  The increment commits with the caller's
        transaction.

        Returns:
            The next sequence value (always > 0).
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use of this scope; another unit of work may be creating
            # it too, so insert inside a savepoint.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise TransientConflictError(
                        "sequence_allocation",
                        f"counter {sequence_name} created concurrently",
                    )

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_number(self, document_type: DocumentType, year: int | None = None) -> str:
        """
        Allocate the next document number for a type (and year).

        Args:
            document_type: Kind of document being numbered.
            year: Scope year; required for PO, payment and GRN numbers,
                ignored for tickets.
        """
        document_type = DocumentType(document_type)
        if document_type not in YEAR_SCOPED_TYPES:
            year = None
        value = self.next_value(counter_name(document_type, year))
        number = format_document_number(
            document_type, value, year, self._widths[document_type]
        )
        logger.info(
            "document_number_allocated",
            extra={"document_type": document_type.value, "number": number},
        )
        return number

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
