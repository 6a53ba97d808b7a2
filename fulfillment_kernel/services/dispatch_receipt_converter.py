"""
DispatchReceiptConverter -- creates the goods receipt note for a delivery.

Responsibility:
    For a delivered dispatch, issues a numbered GRN with one receipt line
    per dispatch line.  Lines are seeded optimistically as a full match
    (confirmed = received = dispatched, VERIFIED_OK); adjusting them after
    physical inspection is a separate step.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.

Invariants enforced:
    - Exactly one GRN per dispatch.  The existence check runs in the same
      serializable transaction as the insert and reports a clear error;
      the ``uq_grn_dispatch`` constraint rejects any concurrent duplicate,
      and the retried loser then fails the existence check.

Failure modes:
    - DispatchNotFoundError, DispatchNotDeliveredError, GRNAlreadyExistsError.
"""

from uuid import UUID

from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.statuses import DispatchStatus, GRNItemStatus, GRNStatus
from fulfillment_kernel.exceptions import (
    DispatchNotDeliveredError,
    GRNAlreadyExistsError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import GoodsReceiptItem, GoodsReceiptNote
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.sequence_service import DocumentType, SequenceService

logger = get_logger("services.dispatch_receipt_converter")


class DispatchReceiptConverter(BaseService):
    """Creates one goods receipt note per delivered dispatch."""

    def __init__(
        self,
        session,
        repository: EntityRepository,
        sequence_service: SequenceService,
        clock: Clock,
    ):
        super().__init__(session)
        self._repository = repository
        self._sequences = sequence_service
        self._clock = clock

    def create_receipt(self, dispatch_id: UUID, actor_id: UUID) -> GoodsReceiptNote:
        """
        Create the GRN for a delivered dispatch.

        Postconditions:
            - One GRN (PENDING_VERIFICATION, received now) for the dispatch.
            - One VERIFIED_OK receipt line per dispatch line with assigned,
              confirmed and received quantities equal to the dispatched one.
        """
        dispatch = self._repository.get_dispatch(dispatch_id, for_update=True)

        if dispatch.status != DispatchStatus.DELIVERED:
            raise DispatchNotDeliveredError(str(dispatch_id), dispatch.status)

        existing = self._repository.find_receipt_for_dispatch(dispatch.id)
        if existing is not None:
            raise GRNAlreadyExistsError(str(dispatch_id), existing.grn_number)

        now = self._clock.now()
        grn = GoodsReceiptNote(
            grn_number=self._sequences.next_number(DocumentType.GOODS_RECEIPT, now.year),
            dispatch_id=dispatch.id,
            status=GRNStatus.PENDING_VERIFICATION.value,
            received_at=now,
            verified_by_id=actor_id,
            created_by_id=actor_id,
        )
        for line_number, dispatch_item in enumerate(dispatch.items, start=1):
            quantity = dispatch_item.dispatched_quantity
            grn.items.append(
                GoodsReceiptItem(
                    dispatch_item_id=dispatch_item.id,
                    assigned_order_item_id=dispatch_item.assigned_order_item_id,
                    line_number=line_number,
                    assigned_quantity=quantity,
                    confirmed_quantity=quantity,
                    received_quantity=quantity,
                    status=GRNItemStatus.VERIFIED_OK.value,
                    created_by_id=actor_id,
                )
            )

        self._repository.add(grn)
        self._repository.flush()

        logger.info(
            "grn_created",
            extra={
                "dispatch_id": str(dispatch.id),
                "grn_id": str(grn.id),
                "grn_number": grn.grn_number,
                "line_count": len(grn.items),
            },
        )
        return grn
