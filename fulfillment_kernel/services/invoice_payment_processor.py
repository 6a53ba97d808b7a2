"""
InvoicePaymentProcessor -- vendor invoice approval and payment settlement.

Responsibility:
    Approves a vendor invoice and stages the payment for its purchase
    order; releases (completes) payments; corrects an invoice amount.

Architecture position:
    Kernel > Services.  Invoked by the WorkflowOrchestrator inside one
    unit of work.

Invariants enforced:
    - At most one Payment per PurchaseOrder.  Every write path is an upsert
      keyed by purchase-order id: an existing payment is updated in place,
      and the ``uq_payment_purchase_order`` constraint rejects the loser of
      a concurrent first insert (the runner then retries into the update
      path).
    - Approval moves the invoice PENDING_VERIFICATION -> APPROVED and the
      purchase order to PARTIALLY_PAID in the same transaction.

Failure modes:
    - InvoiceNotFoundError, InvoiceNotPendingError.
    - PurchaseOrderNotFoundError, InvoiceMissingError, InvalidAmountError.
"""

from decimal import Decimal
from uuid import UUID

from fulfillment_kernel.domain.clock import Clock
from fulfillment_kernel.domain.statuses import (
    InvoiceStatus,
    PaymentStatus,
    PurchaseOrderStatus,
)
from fulfillment_kernel.exceptions import (
    InvalidAmountError,
    InvoiceMissingError,
    InvoiceNotPendingError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import Payment, PurchaseOrder, VendorInvoice
from fulfillment_kernel.services.base import BaseService
from fulfillment_kernel.services.entity_repository import EntityRepository
from fulfillment_kernel.services.sequence_service import DocumentType, SequenceService

logger = get_logger("services.invoice_payment_processor")


class InvoicePaymentProcessor(BaseService):
    """Approves invoices and maintains the single payment per purchase order."""

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

    def _upsert_payment(
        self,
        purchase_order: PurchaseOrder,
        amount: Decimal,
        status: PaymentStatus,
        actor_id: UUID,
    ) -> tuple[Payment, bool]:
        """Return the purchase order's payment, creating it if absent."""
        payment = self._repository.find_payment_for_purchase_order(purchase_order.id)
        if payment is not None:
            payment.amount = amount
            payment.status = status.value
            payment.processed_by_id = actor_id
            payment.updated_by_id = actor_id
            return payment, False

        payment = Payment(
            payment_number=self._sequences.next_number(
                DocumentType.PAYMENT, self._clock.now().year
            ),
            purchase_order_id=purchase_order.id,
            amount=amount,
            status=status.value,
            processed_by_id=actor_id,
            created_by_id=actor_id,
        )
        self._repository.add(payment)
        return payment, True

    def approve_invoice(self, invoice_id: UUID, actor_id: UUID) -> Payment:
        """
        Approve a pending invoice and stage its payment.

        Postconditions:
            - Invoice is APPROVED.
            - The purchase order has exactly one PENDING payment whose amount
              is the invoice amount.
            - Purchase order is PARTIALLY_PAID.
        """
        invoice = self._repository.get_invoice(invoice_id, for_update=True)

        if invoice.status != InvoiceStatus.PENDING_VERIFICATION:
            raise InvoiceNotPendingError(str(invoice_id), invoice.status)

        invoice.status = InvoiceStatus.APPROVED.value
        invoice.approved_by_id = actor_id
        invoice.approved_at = self._clock.now()
        invoice.updated_by_id = actor_id

        purchase_order = invoice.purchase_order
        payment, created = self._upsert_payment(
            purchase_order, invoice.invoice_amount, PaymentStatus.PENDING, actor_id
        )

        purchase_order.status = PurchaseOrderStatus.PARTIALLY_PAID.value
        purchase_order.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "invoice_approved",
            extra={
                "invoice_id": str(invoice.id),
                "purchase_order_id": str(purchase_order.id),
                "payment_number": payment.payment_number,
                "payment_created": created,
                "amount": str(payment.amount),
            },
        )
        return payment

    def release_payment(
        self,
        purchase_order_id: UUID,
        reference_id: str,
        actor_id: UUID,
    ) -> Payment:
        """
        Mark a purchase order's payment as released.

        Creates the payment (amount = sum of PO line totals) when none was
        staged.  Sets the transaction reference, processed time and actor,
        and moves the purchase order to PAID.
        """
        purchase_order = self._repository.get_purchase_order(
            purchase_order_id, for_update=True
        )

        existing = self._repository.find_payment_for_purchase_order(purchase_order.id)
        amount = existing.amount if existing is not None else purchase_order.line_total
        payment, created = self._upsert_payment(
            purchase_order, amount, PaymentStatus.COMPLETED, actor_id
        )
        payment.transaction_id = reference_id
        payment.processed_at = self._clock.now()

        purchase_order.status = PurchaseOrderStatus.PAID.value
        purchase_order.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "payment_released",
            extra={
                "purchase_order_id": str(purchase_order.id),
                "payment_number": payment.payment_number,
                "payment_created": created,
                "reference_id": reference_id,
            },
        )
        return payment

    def edit_invoice_amount(
        self,
        purchase_order_id: UUID,
        amount: Decimal,
        actor_id: UUID,
    ) -> VendorInvoice:
        """Correct the vendor-submitted amount on a purchase order's invoice."""
        amount = Decimal(str(amount))
        if amount < 0:
            raise InvalidAmountError(str(amount))

        purchase_order = self._repository.get_purchase_order(
            purchase_order_id, for_update=True
        )
        invoice = purchase_order.invoice
        if invoice is None:
            raise InvoiceMissingError(str(purchase_order_id))

        previous = invoice.invoice_amount
        invoice.invoice_amount = amount
        invoice.updated_by_id = actor_id
        self._repository.flush()

        logger.info(
            "invoice_amount_updated",
            extra={
                "purchase_order_id": str(purchase_order.id),
                "invoice_id": str(invoice.id),
                "previous_amount": str(previous),
                "amount": str(amount),
            },
        )
        return invoice
