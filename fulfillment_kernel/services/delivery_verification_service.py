"""
DeliveryVerificationService -- operator override of a purchase order's
delivery verdict.

Responsibility:
    Applies a ``Yes`` / ``Partial`` / ``No`` verdict to every GRN reachable
    from a purchase order (and to each of their receipt lines), using the
    exhaustive verdict mappings in ``domain.policies``.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.

Invariants enforced:
    - ``verified_at`` is set only for ``Yes``; it is cleared otherwise.
    - Receipt line statuses always mirror their GRN's verdict.

Failure modes:
    - PurchaseOrderNotFoundError, NoReceiptsError.
"""

from uuid import UUID

from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.policies import (
    grn_item_status_for_verdict,
    grn_status_for_verdict,
)
from fulfillment_kernel.domain.statuses import DeliveryVerdict
from fulfillment_kernel.exceptions import NoReceiptsError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import GoodsReceiptNote
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository

logger = get_logger("services.delivery_verification")


class DeliveryVerificationService(BaseService):
    def __init__(self, session, repository: EntityRepository, clock: Clock):
        super().__init__(session)
        self._repository = repository
        self._clock = clock

    def update_delivery_status(
        self,
        purchase_order_id: UUID,
        verdict: DeliveryVerdict,
        actor_id: UUID,
        remarks: str | None = None,
    ) -> list[GoodsReceiptNote]:
        """
        Set the delivery verdict on all GRNs of a purchase order.

        Returns:
            The updated GRNs.
        """
        verdict = DeliveryVerdict(verdict)
        purchase_order = self._repository.get_purchase_order(
            purchase_order_id, for_update=True
        )
        receipts = self._repository.receipts_for_purchase_order(purchase_order)
        if not receipts:
            raise NoReceiptsError(str(purchase_order_id))

        grn_status = grn_status_for_verdict(verdict)
        item_status = grn_item_status_for_verdict(verdict)
        now = self._clock.now()

        for grn in receipts:
            grn.status = grn_status.value
            grn.verified_at = now if verdict == DeliveryVerdict.YES else None
            grn.verified_by_id = actor_id
            grn.updated_by_id = actor_id
            if remarks is not None:
                grn.operator_remarks = remarks
            for item in grn.items:
                item.status = item_status.value
                item.updated_by_id = actor_id

        self._repository.flush()

        logger.info(
            "delivery_status_updated",
            extra={
                "purchase_order_id": str(purchase_order.id),
                "verdict": verdict.value,
                "grn_status": grn_status.value,
                "grn_count": len(receipts),
            },
        )
        return receipts
