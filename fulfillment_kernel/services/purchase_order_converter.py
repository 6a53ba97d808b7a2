"""
PurchaseOrderConverter -- turns a vendor-assigned order into purchase orders.

Responsibility:
    Partitions an order's vendor assignments by vendor and issues one
    purchase order per vendor, each numbered by the SequenceService and
    carrying one line per assignment priced from the parent order line.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.

Invariants enforced:
    - Exactly one PurchaseOrder per distinct vendor among the assignments.
    - PO ``total_amount`` equals the sum of its lines, and the sum over all
      POs equals sum(assigned_quantity * unit_price) over the assignments.
    - The order leaves RECEIVED/ASSIGNED (to PROCESSING) in the same
      transaction, so a second conversion fails the status precondition
      instead of duplicating purchase orders.

Failure modes:
    - OrderNotFoundError, OrderNotAssignableError, NoVendorAssignmentsError.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.statuses import (
    ASSIGNABLE_ORDER_STATUSES,
    AssignmentStatus,
    OrderStatus,
    PurchaseOrderStatus,
)
from fulfillment_kernel.exceptions import (
    NoVendorAssignmentsError,
    OrderNotAssignableError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import AssignedOrderItem, PurchaseOrder, PurchaseOrderItem
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.sequence_service import DocumentType, SequenceService

logger = get_logger("services.purchase_order_converter")


def partition_by_vendor(
    assignments: list[AssignedOrderItem],
) -> dict[UUID, list[AssignedOrderItem]]:
    """Group assignments by vendor, keeping first-seen vendor order."""
    groups: dict[UUID, list[AssignedOrderItem]] = defaultdict(list)
    for assignment in assignments:
        groups[assignment.vendor_id].append(assignment)
    return dict(groups)


class PurchaseOrderConverter(BaseService):
    """Issues one purchase order per vendor for an assigned order."""

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

    def convert(self, order_id: UUID, actor_id: UUID) -> list[PurchaseOrder]:
        """
        Create the purchase orders for an order.

        Preconditions:
            - Order exists with status RECEIVED or ASSIGNED.
            - At least one item is assigned to a vendor.

        Postconditions:
            - One ISSUED PurchaseOrder per vendor, lines in assignment order.
            - Every involved assignment is PENDING_CONFIRMATION.
            - Order status is PROCESSING.

        Returns:
            The created purchase orders, in vendor first-seen order.
        """
        order = self._repository.get_order(order_id, for_update=True)

        if order.status not in ASSIGNABLE_ORDER_STATUSES:
            raise OrderNotAssignableError(str(order_id), order.status)

        assignments = order.assignments
        if not assignments:
            raise NoVendorAssignmentsError(str(order_id))

        now = self._clock.now()
        created: list[PurchaseOrder] = []

        for vendor_id, vendor_assignments in partition_by_vendor(assignments).items():
            po_number = self._sequences.next_number(
                DocumentType.PURCHASE_ORDER, now.year
            )
            purchase_order = PurchaseOrder(
                po_number=po_number,
                order_id=order.id,
                vendor_id=vendor_id,
                status=PurchaseOrderStatus.ISSUED.value,
                issued_at=now,
                created_by_id=actor_id,
            )

            total = Decimal("0")
            for line_number, assignment in enumerate(vendor_assignments, start=1):
                unit_price = assignment.order_item.unit_price
                line_total = assignment.assigned_quantity * unit_price
                total += line_total
                purchase_order.items.append(
                    PurchaseOrderItem(
                        assignment=assignment,
                        line_number=line_number,
                        quantity=assignment.assigned_quantity,
                        unit_price=unit_price,
                        total_price=line_total,
                        created_by_id=actor_id,
                    )
                )
                assignment.status = AssignmentStatus.PENDING_CONFIRMATION.value
                assignment.updated_by_id = actor_id

            purchase_order.total_amount = total
            self._repository.add(purchase_order)
            created.append(purchase_order)

        order.status = OrderStatus.PROCESSING.value
        order.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "purchase_orders_created",
            extra={
                "order_id": str(order.id),
                "purchase_order_count": len(created),
                "po_numbers": [po.po_number for po in created],
            },
        )
        return created
