"""
TicketService -- discrepancy tickets raised against goods receipt notes.

Responsibility:
    Opens a numbered ticket (``TKT-000001``) for a GRN whose receipt did not
    match, and resolves it.  Resolved tickets are what the
    RESOLVE_MISMATCH_TICKETS completion policy waits for.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.

Invariants enforced:
    - At most one ticket per GRN (checked, then backed by ``uq_ticket_grn``).
    - Ticket numbers come from the shared, non-year-scoped ticket counter.

Failure modes:
    - ReceiptNotFoundError, TicketAlreadyExistsError.
    - TicketNotFoundError, TicketAlreadyResolvedError.
"""

from uuid import UUID

from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.statuses import (
    RESOLVED_TICKET_STATUSES,
    TicketPriority,
    TicketStatus,
)
from fulfillment_kernel.exceptions import (
    TicketAlreadyExistsError,
    TicketAlreadyResolvedError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import Ticket
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.sequence_service import DocumentType, SequenceService

logger = get_logger("services.ticket")


class TicketService(BaseService):
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

    def open_discrepancy_ticket(
        self,
        grn_id: UUID,
        title: str,
        description: str,
        actor_id: UUID,
        priority: TicketPriority = TicketPriority.MEDIUM,
    ) -> Ticket:
        grn = self._repository.get_receipt(grn_id, for_update=True)

        existing = self._repository.find_ticket_for_receipt(grn.id)
        if existing is not None:
            raise TicketAlreadyExistsError(str(grn_id), existing.ticket_number)

        ticket = Ticket(
            ticket_number=self._sequences.next_number(DocumentType.TICKET),
            goods_receipt_note_id=grn.id,
            title=title,
            description=description,
            priority=TicketPriority(priority).value,
            status=TicketStatus.OPEN.value,
            created_by_id=actor_id,
        )
        self._repository.add(ticket)
        self._repository.flush()

        logger.info(
            "discrepancy_ticket_opened",
            extra={
                "grn_id": str(grn.id),
                "ticket_id": str(ticket.id),
                "ticket_number": ticket.ticket_number,
                "priority": ticket.priority,
            },
        )
        return ticket

    def resolve_ticket(self, ticket_id: UUID, actor_id: UUID) -> Ticket:
        ticket = self._repository.get_ticket(ticket_id, for_update=True)

        if ticket.status in RESOLVED_TICKET_STATUSES:
            raise TicketAlreadyResolvedError(str(ticket_id), ticket.status)

        ticket.status = TicketStatus.RESOLVED.value
        ticket.resolved_at = self._clock.now()
        ticket.resolved_by_id = actor_id
        ticket.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "discrepancy_ticket_resolved",
            extra={"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number},
        )
        return ticket
