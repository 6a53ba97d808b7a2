"""
OrderCompletionChecker -- gates an order's transition to FULFILLED.

Responsibility:
    Walks an order's item -> assignment -> receipt line -> GRN chain and
    marks the order FULFILLED (and every assignment COMPLETED) only when
    each assignment has at least one receipt line that the configured
    CompletionPolicy accepts as verified.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.  The verification rule itself lives in
    ``domain.policies``.

Invariants enforced:
    - An order never reaches FULFILLED while any assignment lacks an
      accepted receipt line.
    - Order and assignment statuses change together or not at all.

Failure modes:
    - OrderNotFoundError, OrderAlreadyFulfilledError, NoVendorAssignmentsError,
      ItemsNotVerifiedError.
"""

from uuid import UUID

from fulfillment_kernel.domain.policies import CompletionPolicy, assignment_is_verified
from fulfillment_kernel.domain.statuses import AssignmentStatus, OrderStatus
from fulfillment_kernel.exceptions import (
    ItemsNotVerifiedError,
    NoVendorAssignmentsError,
    OrderAlreadyFulfilledError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import AssignedOrderItem, Order
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository

logger = get_logger("services.order_completion_checker")


def receipt_outcomes(assignment: AssignedOrderItem) -> list[tuple[str, str | None]]:
    """(GRN status, discrepancy ticket status) for each receipt line."""
    outcomes = []
    for receipt_item in assignment.receipt_items:
        grn = receipt_item.goods_receipt_note
        ticket_status = grn.ticket.status if grn.ticket is not None else None
        outcomes.append((grn.status, ticket_status))
    return outcomes


class OrderCompletionChecker(BaseService):
    def __init__(
        self,
        session,
        repository: EntityRepository,
        policy: CompletionPolicy = CompletionPolicy.ACCEPT_ANY_VERIFIED,
    ):
        super().__init__(session)
        self._repository = repository
        self._policy = CompletionPolicy(policy)

    def unverified_assignments(self, order: Order) -> list[AssignedOrderItem]:
        return [
            assignment
            for assignment in order.assignments
            if not assignment_is_verified(receipt_outcomes(assignment), self._policy)
        ]

    def complete(self, order_id: UUID, actor_id: UUID) -> Order:
        """
        Mark an order FULFILLED if every assignment is verified.

        An order without assignments has nothing verified and is rejected.
        """
        order = self._repository.get_order(order_id, for_update=True)

        if order.status == OrderStatus.FULFILLED:
            raise OrderAlreadyFulfilledError(str(order_id))

        assignments = order.assignments
        if not assignments:
            logger.info(
                "order_completion_blocked",
                extra={"order_id": str(order.id), "assignment_count": 0},
            )
            raise NoVendorAssignmentsError(str(order_id))

        unverified = self.unverified_assignments(order)
        if unverified:
            logger.info(
                "order_completion_blocked",
                extra={
                    "order_id": str(order.id),
                    "policy": self._policy.value,
                    "assignment_count": len(assignments),
                    "unverified_count": len(unverified),
                },
            )
            raise ItemsNotVerifiedError(
                str(order_id), [str(a.id) for a in unverified]
            )

        for assignment in assignments:
            assignment.status = AssignmentStatus.COMPLETED.value
            assignment.updated_by_id = actor_id
        order.status = OrderStatus.FULFILLED.value
        order.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "order_fulfilled",
            extra={
                "order_id": str(order.id),
                "policy": self._policy.value,
                "assignment_count": len(assignments),
            },
        )
        return order
