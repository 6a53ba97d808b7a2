"""
WorkflowOrchestrator -- the single entry point for fulfillment workflow steps.

Responsibility:
    Runs every workflow step as one request-scoped, retried unit of work and
    reports its outcome as a ``WorkflowResult``.  Wires the per-transaction
    collaborators (EntityRepository, SequenceService, the converters and
    processors) onto a fresh session for each attempt.

Architecture position:
    Kernel > Services -- outermost kernel facade.  A request layer (HTTP,
    CLI, queue consumer) calls this; nothing inside the kernel calls it.

    Write steps:
        convert_order_to_purchase_orders   Order -> PurchaseOrder per vendor
        approve_invoice_and_create_payment VendorInvoice -> Payment
        create_grn_for_dispatch            Dispatch -> GoodsReceiptNote
        complete_order                     Order -> FULFILLED
        release_payment                    Payment -> COMPLETED
        edit_invoice_amount                VendorInvoice amount correction
        update_delivery_status             GRN verdict override
        open_discrepancy_ticket            GRN -> Ticket
        resolve_ticket                     Ticket -> RESOLVED

    Read steps:
        get_order_workflow_status, reconcile_purchase_order, list_payments,
        vendor_payment_aging, invoice_compliance

Invariants enforced:
    - All-or-nothing steps: typed business errors raised inside a step roll
      its transaction back before they are reported.
    - Only transient conflicts are retried; exhaustion is reported as
      CONFLICT with a generic "try again" message.
    - Callers never see a low-level database exception from a write step.

Failure modes:
    - Unexpected (non-kernel) exceptions are logged and re-raised.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from fulfillment_kernel.config import FulfillmentConfig
from fulfillment_kernel.domain.clock import Clock, SystemClock
from fulfillment_kernel.domain.dtos import (
    ComplianceReport,
    OrderWorkflowView,
    PaymentPage,
    PurchaseOrderReconciliation,
    VendorAgingRow,
    WorkflowResult,
    WorkflowStatus,
)
from fulfillment_kernel.domain.statuses import (
    DeliveryVerdict,
    PaymentDisplayStatus,
    TicketPriority,
)
from fulfillment_kernel.exceptions import (
    ConcurrencyError,
    FulfillmentError,
    InvalidStateError,
    NotFoundError,
    PreconditionError,
)
from fulfillment_kernel.logging_config import LogContext, get_logger
from fulfillment_kernel.selectors.order_workflow_selector import OrderWorkflowSelector
from fulfillment_kernel.selectors.payment_reconciliation_selector import (
    PaymentReconciliationSelector,
)
from fulfillment_kernel.services.delivery_verification_service import (
    DeliveryVerificationService,
)
from fulfillment_kernel.services.dispatch_receipt_converter import (
    DispatchReceiptConverter,
)
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.invoice_payment_processor import (
    InvoicePaymentProcessor,
)
from fulfillment_kernel.services.order_completion_checker import (
    OrderCompletionChecker,
)
from fulfillment_kernel.services.purchase_order_converter import (
    PurchaseOrderConverter,
)
from fulfillment_kernel.services.sequence_service import SequenceService
from fulfillment_kernel.services.ticket_service import TicketService
from fulfillment_kernel.services.transaction_runner import TransactionRunner

logger = get_logger("services.workflow_orchestrator")


def _failure_status(exc: FulfillmentError) -> WorkflowStatus:
    if isinstance(exc, NotFoundError):
        return WorkflowStatus.NOT_FOUND
    if isinstance(exc, InvalidStateError):
        return WorkflowStatus.INVALID_STATE
    if isinstance(exc, PreconditionError):
        return WorkflowStatus.PRECONDITION_UNMET
    if isinstance(exc, ConcurrencyError):
        return WorkflowStatus.CONFLICT
    raise exc


def _error_details(exc: FulfillmentError) -> dict:
    return {k: v for k, v in vars(exc).items() if not k.startswith("_")}


@dataclass
class _UnitOfWork:
    """Collaborators bound to one attempt's session."""

    session: Session
    repository: EntityRepository
    sequences: SequenceService


class WorkflowOrchestrator:
    """
    Facade over the fulfillment workflow.

    Usage:
        orchestrator = WorkflowOrchestrator(get_session_factory())
        result = orchestrator.convert_order_to_purchase_orders(order_id, actor_id)
        if result.is_success:
            po_ids = result.created_ids
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        config: FulfillmentConfig | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or FulfillmentConfig.with_defaults()
        self._runner = TransactionRunner(
            session_factory,
            max_attempts=self._config.max_attempts,
            backoff_seconds=self._config.retry_backoff_seconds,
            backoff_max_seconds=self._config.retry_backoff_max_seconds,
        )

    @property
    def config(self) -> FulfillmentConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    # -- plumbing -------------------------------------------------------------

    def _unit_of_work(self, session: Session) -> _UnitOfWork:
        return _UnitOfWork(
            session=session,
            repository=EntityRepository(session),
            sequences=SequenceService(
                session,
                sequence_width=self._config.sequence_width,
                ticket_sequence_width=self._config.ticket_sequence_width,
            ),
        )

    def _reconciliation_selector(self, session: Session) -> PaymentReconciliationSelector:
        return PaymentReconciliationSelector(
            session,
            self._clock,
            delivery_policy=self._config.delivery_policy,
            payment_grace_days=self._config.payment_grace_days,
            compliance_tolerance=self._config.compliance_tolerance,
        )

    def _execute(
        self,
        operation: str,
        entity_id: UUID,
        actor_id: UUID | None,
        step: Callable[[_UnitOfWork], WorkflowResult],
    ) -> WorkflowResult:
        """Run a write step and convert kernel errors into a result."""
        with LogContext.bind(
            operation=operation, entity_id=entity_id, actor_id=actor_id
        ):
            try:
                result = self._runner.run(
                    operation, lambda session: step(self._unit_of_work(session))
                )
            except FulfillmentError as exc:
                status = _failure_status(exc)
                logger.warning(
                    "workflow_step_rejected",
                    exc_info=True,
                    extra={"status": status.value, "error_code": exc.code},
                )
                return WorkflowResult(
                    status=status,
                    message=str(exc),
                    entity_id=entity_id,
                    error_code=exc.code,
                    details=_error_details(exc),
                )
            except Exception:
                logger.exception("workflow_step_failed_unexpectedly")
                raise

            logger.info(
                "workflow_step_succeeded",
                extra={"created_count": len(result.created_ids)},
            )
            return result

    def _read(self, operation: str, query: Callable[[Session], object]):
        with LogContext.bind(operation=operation):
            return self._runner.run(operation, query)

    # -- write steps ----------------------------------------------------------

    def convert_order_to_purchase_orders(
        self, order_id: UUID, actor_id: UUID
    ) -> WorkflowResult:
        """Issue one purchase order per vendor for a fully assigned order."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            converter = PurchaseOrderConverter(
                uow.session, uow.repository, uow.sequences, self._clock
            )
            purchase_orders = converter.convert(order_id, actor_id)
            return WorkflowResult.succeeded(
                f"{len(purchase_orders)} Purchase Order(s) created successfully",
                entity_id=order_id,
                created_ids=tuple(po.id for po in purchase_orders),
                po_numbers=[po.po_number for po in purchase_orders],
            )

        return self._execute("convert_order_to_purchase_orders", order_id, actor_id, step)

    def approve_invoice_and_create_payment(
        self, invoice_id: UUID, actor_id: UUID
    ) -> WorkflowResult:
        """Approve a pending invoice and stage the PO's single payment."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            processor = InvoicePaymentProcessor(
                uow.session, uow.repository, uow.sequences, self._clock
            )
            payment = processor.approve_invoice(invoice_id, actor_id)
            return WorkflowResult.succeeded(
                "Invoice approved and payment created successfully",
                entity_id=invoice_id,
                created_ids=(payment.id,),
                payment_number=payment.payment_number,
                amount=payment.amount,
            )

        return self._execute(
            "approve_invoice_and_create_payment", invoice_id, actor_id, step
        )

    def create_grn_for_dispatch(
        self, dispatch_id: UUID, actor_id: UUID
    ) -> WorkflowResult:
        """Create the single goods receipt note for a delivered dispatch."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            converter = DispatchReceiptConverter(
                uow.session, uow.repository, uow.sequences, self._clock
            )
            grn = converter.create_receipt(dispatch_id, actor_id)
            return WorkflowResult.succeeded(
                f"GRN {grn.grn_number} created successfully",
                entity_id=dispatch_id,
                created_ids=(grn.id,),
                grn_number=grn.grn_number,
            )

        return self._execute("create_grn_for_dispatch", dispatch_id, actor_id, step)

    def complete_order(self, order_id: UUID, actor_id: UUID) -> WorkflowResult:
        """Mark an order FULFILLED once every assignment is verified."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            checker = OrderCompletionChecker(
                uow.session, uow.repository, self._config.completion_policy
            )
            order = checker.complete(order_id, actor_id)
            return WorkflowResult.succeeded(
                "Order marked as fulfilled",
                entity_id=order.id,
                order_number=order.order_number,
            )

        return self._execute("complete_order", order_id, actor_id, step)

    def release_payment(
        self, purchase_order_id: UUID, reference_id: str, actor_id: UUID
    ) -> WorkflowResult:
        """Complete the payment of a purchase order with a bank reference."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            processor = InvoicePaymentProcessor(
                uow.session, uow.repository, uow.sequences, self._clock
            )
            payment = processor.release_payment(purchase_order_id, reference_id, actor_id)
            return WorkflowResult.succeeded(
                "Payment released successfully",
                entity_id=purchase_order_id,
                created_ids=(payment.id,),
                payment_number=payment.payment_number,
                reference_id=reference_id,
            )

        return self._execute("release_payment", purchase_order_id, actor_id, step)

    def edit_invoice_amount(
        self, purchase_order_id: UUID, amount: Decimal, actor_id: UUID
    ) -> WorkflowResult:
        def step(uow: _UnitOfWork) -> WorkflowResult:
            processor = InvoicePaymentProcessor(
                uow.session, uow.repository, uow.sequences, self._clock
            )
            invoice = processor.edit_invoice_amount(purchase_order_id, amount, actor_id)
            return WorkflowResult.succeeded(
                "Invoice amount updated successfully",
                entity_id=purchase_order_id,
                invoice_id=invoice.id,
                amount=invoice.invoice_amount,
            )

        return self._execute("edit_invoice_amount", purchase_order_id, actor_id, step)

    def update_delivery_status(
        self,
        purchase_order_id: UUID,
        verdict: DeliveryVerdict,
        actor_id: UUID,
        remarks: str | None = None,
    ) -> WorkflowResult:
        """Override the delivery verdict on every GRN of a purchase order."""

        def step(uow: _UnitOfWork) -> WorkflowResult:
            service = DeliveryVerificationService(
                uow.session, uow.repository, self._clock
            )
            receipts = service.update_delivery_status(
                purchase_order_id, verdict, actor_id, remarks
            )
            return WorkflowResult.succeeded(
                f"Delivery status updated to {DeliveryVerdict(verdict).value}",
                entity_id=purchase_order_id,
                grn_ids=[grn.id for grn in receipts],
            )

        return self._execute("update_delivery_status", purchase_order_id, actor_id, step)

    def open_discrepancy_ticket(
        self,
        grn_id: UUID,
        title: str,
        description: str,
        actor_id: UUID,
        priority: TicketPriority = TicketPriority.MEDIUM,
    ) -> WorkflowResult:
        def step(uow: _UnitOfWork) -> WorkflowResult:
            service = TicketService(uow.session, uow.repository, uow.sequences, self._clock)
            ticket = service.open_discrepancy_ticket(
                grn_id, title, description, actor_id, priority
            )
            return WorkflowResult.succeeded(
                f"Ticket {ticket.ticket_number} created successfully",
                entity_id=grn_id,
                created_ids=(ticket.id,),
                ticket_number=ticket.ticket_number,
            )

        return self._execute("open_discrepancy_ticket", grn_id, actor_id, step)

    def resolve_ticket(self, ticket_id: UUID, actor_id: UUID) -> WorkflowResult:
        def step(uow: _UnitOfWork) -> WorkflowResult:
            service = TicketService(uow.session, uow.repository, uow.sequences, self._clock)
            ticket = service.resolve_ticket(ticket_id, actor_id)
            return WorkflowResult.succeeded(
                f"Ticket {ticket.ticket_number} resolved",
                entity_id=ticket_id,
            )

        return self._execute("resolve_ticket", ticket_id, actor_id, step)

    # -- read steps -----------------------------------------------------------

    def get_order_workflow_status(self, order_id: UUID) -> OrderWorkflowView:
        """
        Denormalized progress view of one order.

        Raises:
            OrderNotFoundError: if the order does not exist.
        """
        return self._read(
            "get_order_workflow_status",
            lambda session: OrderWorkflowSelector(session).get_order_workflow_status(
                order_id
            ),
        )

    def reconcile_purchase_order(
        self, purchase_order_id: UUID
    ) -> PurchaseOrderReconciliation:
        """
        Delivery verdict, authoritative amount and payment status of a PO.

        Raises:
            PurchaseOrderNotFoundError: if the purchase order does not exist.
        """
        return self._read(
            "reconcile_purchase_order",
            lambda session: self._reconciliation_selector(
                session
            ).reconcile_purchase_order(purchase_order_id),
        )

    def list_payments(
        self,
        status: PaymentDisplayStatus | None = None,
        delivery: DeliveryVerdict | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> PaymentPage:
        return self._read(
            "list_payments",
            lambda session: self._reconciliation_selector(session).list_payments(
                status=status, delivery=delivery, page=page, limit=limit
            ),
        )

    def vendor_payment_aging(
        self, vendor_ids: list[UUID] | None = None
    ) -> list[VendorAgingRow]:
        return self._read(
            "vendor_payment_aging",
            lambda session: self._reconciliation_selector(
                session
            ).vendor_payment_aging(vendor_ids),
        )

    def invoice_compliance(
        self, vendor_ids: list[UUID] | None = None
    ) -> ComplianceReport:
        return self._read(
            "invoice_compliance",
            lambda session: self._reconciliation_selector(session).invoice_compliance(
                vendor_ids
            ),
        )
