"""
Workflow policies -- named, swappable decision functions.

Responsibility:
    Holds every business rule that turns a graph of related records into a
    verdict: delivery aggregation for a purchase order, the completion gate
    for an order, the authoritative-amount choice, payment due dates and
    display status, and the delivery-verdict to receipt-status mappings.

Architecture position:
    Kernel > Domain -- pure functions over enums, Decimals and dates.
    Zero I/O, no ORM imports.  Selectors and services feed plain status
    values in and act on the result.

Invariants enforced:
    - Every status mapping is an exhaustive ``match`` over the enum; an
      unknown member raises ``ValueError`` instead of falling through.
    - Delivery aggregation is selected by ``DeliveryAggregationPolicy``;
      call sites never fold GRN statuses inline.
    - The vendor invoice amount is authoritative only when delivery is
      ``Yes`` and the amount is positive.
"""

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from fulfillment_kernel.domain.statuses import (
    AmountSource,
    DeliveryVerdict,
    GRNItemStatus,
    GRNStatus,
    PaymentDisplayStatus,
    PaymentStatus,
    TERMINAL_GRN_STATUSES,
    TicketStatus,
    RESOLVED_TICKET_STATUSES,
)

# A purchase order's receipt graph, one entry per assignment line, each
# holding the statuses of the GRNs reachable through that line's dispatches.
LineReceipts = Sequence[Sequence[GRNStatus | str]]

_PARTIAL_GRN_STATUSES = frozenset(
    {GRNStatus.VERIFIED_MISMATCH, GRNStatus.PARTIALLY_VERIFIED}
)


class DeliveryAggregationPolicy(str, Enum):
    """How per-line receipt outcomes roll up to one purchase-order verdict."""

    ANY_LINE_VERIFIED = "ANY_LINE_VERIFIED"
    ALL_LINES_VERIFIED = "ALL_LINES_VERIFIED"


class CompletionPolicy(str, Enum):
    """Which receipt outcomes let an order be marked fulfilled."""

    ACCEPT_ANY_VERIFIED = "ACCEPT_ANY_VERIFIED"
    REQUIRE_CLEAN_MATCH = "REQUIRE_CLEAN_MATCH"
    RESOLVE_MISMATCH_TICKETS = "RESOLVE_MISMATCH_TICKETS"


# ---------------------------------------------------------------------------
# Delivery aggregation
# ---------------------------------------------------------------------------


def _flatten(lines: LineReceipts) -> list[GRNStatus]:
    return [GRNStatus(status) for line in lines for status in line]


def any_line_verified(lines: LineReceipts) -> DeliveryVerdict:
    """
    One fully verified GRN anywhere marks the whole purchase order ``Yes``.

    Sibling lines with no dispatch or an unverified GRN do not pull the
    verdict down.  Otherwise any mismatch or partial verification gives
    ``Partial``; with neither, ``No``.
    """
    statuses = _flatten(lines)
    if GRNStatus.VERIFIED_OK in statuses:
        return DeliveryVerdict.YES
    if any(status in _PARTIAL_GRN_STATUSES for status in statuses):
        return DeliveryVerdict.PARTIAL
    return DeliveryVerdict.NO


def all_lines_verified(lines: LineReceipts) -> DeliveryVerdict:
    """
    ``Yes`` only when every assignment line has a VERIFIED_OK GRN.

    Any verification progress short of that gives ``Partial``.
    """
    if lines and all(
        GRNStatus.VERIFIED_OK in {GRNStatus(s) for s in line} for line in lines
    ):
        return DeliveryVerdict.YES
    statuses = _flatten(lines)
    if any(
        status == GRNStatus.VERIFIED_OK or status in _PARTIAL_GRN_STATUSES
        for status in statuses
    ):
        return DeliveryVerdict.PARTIAL
    return DeliveryVerdict.NO


def derive_delivery_verdict(
    lines: LineReceipts,
    policy: DeliveryAggregationPolicy = DeliveryAggregationPolicy.ANY_LINE_VERIFIED,
) -> DeliveryVerdict:
    """Apply the selected aggregation policy to a purchase order's receipts."""
    match DeliveryAggregationPolicy(policy):
        case DeliveryAggregationPolicy.ANY_LINE_VERIFIED:
            return any_line_verified(lines)
        case DeliveryAggregationPolicy.ALL_LINES_VERIFIED:
            return all_lines_verified(lines)
        case _:
            raise ValueError(f"Unknown delivery aggregation policy: {policy}")


# ---------------------------------------------------------------------------
# Completion gate
# ---------------------------------------------------------------------------


def receipt_counts_as_verified(
    grn_status: GRNStatus | str,
    ticket_status: TicketStatus | str | None,
    policy: CompletionPolicy = CompletionPolicy.ACCEPT_ANY_VERIFIED,
) -> bool:
    """
    Decide whether one GRN line satisfies the completion gate.

    Args:
        grn_status: Status of the GRN the receipt line belongs to.
        ticket_status: Status of that GRN's discrepancy ticket, if any.
        policy: Completion policy in force.
    """
    status = GRNStatus(grn_status)
    match CompletionPolicy(policy):
        case CompletionPolicy.ACCEPT_ANY_VERIFIED:
            return status in TERMINAL_GRN_STATUSES
        case CompletionPolicy.REQUIRE_CLEAN_MATCH:
            return status == GRNStatus.VERIFIED_OK
        case CompletionPolicy.RESOLVE_MISMATCH_TICKETS:
            if status == GRNStatus.VERIFIED_OK:
                return True
            if status == GRNStatus.VERIFIED_MISMATCH and ticket_status is not None:
                return TicketStatus(ticket_status) in RESOLVED_TICKET_STATUSES
            return False
        case _:
            raise ValueError(f"Unknown completion policy: {policy}")


def assignment_is_verified(
    receipts: Iterable[tuple[GRNStatus | str, TicketStatus | str | None]],
    policy: CompletionPolicy = CompletionPolicy.ACCEPT_ANY_VERIFIED,
) -> bool:
    """True when at least one receipt line of an assignment passes the gate."""
    return any(
        receipt_counts_as_verified(grn_status, ticket_status, policy)
        for grn_status, ticket_status in receipts
    )


# ---------------------------------------------------------------------------
# Amounts and payment display
# ---------------------------------------------------------------------------


def select_authoritative_amount(
    verdict: DeliveryVerdict,
    invoice_amount: Decimal | None,
    computed_total: Decimal,
) -> tuple[Decimal, AmountSource]:
    """
    Choose the purchase order amount to pay against.

    A vendor-claimed amount is trusted only once delivery is fully verified.
    """
    if (
        DeliveryVerdict(verdict) == DeliveryVerdict.YES
        and invoice_amount is not None
        and invoice_amount > 0
    ):
        return invoice_amount, AmountSource.VENDOR_INVOICE
    return computed_total, AmountSource.PURCHASE_ORDER_LINES


def payment_due_date(invoice_date: date | None, grace_days: int = 7) -> date | None:
    if invoice_date is None:
        return None
    return invoice_date + timedelta(days=grace_days)


def payment_display_status(
    payment_status: PaymentStatus | str | None,
    due_date: date | None,
    today: date,
) -> PaymentDisplayStatus:
    """
    Released once paid; Overdue from the due date on; otherwise Pending.

    A purchase order without a payment record is Pending (or Overdue).
    """
    if payment_status is not None and PaymentStatus(payment_status) == PaymentStatus.COMPLETED:
        return PaymentDisplayStatus.RELEASED
    if due_date is not None and due_date <= today:
        return PaymentDisplayStatus.OVERDUE
    return PaymentDisplayStatus.PENDING


def is_invoice_compliant(
    invoice_amount: Decimal,
    computed_total: Decimal,
    tolerance: Decimal,
) -> bool:
    """An invoice matches its purchase order when within ``tolerance``."""
    return abs(invoice_amount - computed_total) <= tolerance


# ---------------------------------------------------------------------------
# Delivery verdict -> receipt status mappings
# ---------------------------------------------------------------------------


def grn_status_for_verdict(verdict: DeliveryVerdict) -> GRNStatus:
    match DeliveryVerdict(verdict):
        case DeliveryVerdict.YES:
            return GRNStatus.VERIFIED_OK
        case DeliveryVerdict.PARTIAL:
            return GRNStatus.PARTIALLY_VERIFIED
        case DeliveryVerdict.NO:
            return GRNStatus.PENDING_VERIFICATION
        case _:
            raise ValueError(f"Unknown delivery verdict: {verdict}")


def grn_item_status_for_verdict(verdict: DeliveryVerdict) -> GRNItemStatus:
    match DeliveryVerdict(verdict):
        case DeliveryVerdict.YES:
            return GRNItemStatus.VERIFIED_OK
        case DeliveryVerdict.PARTIAL:
            return GRNItemStatus.QUANTITY_MISMATCH
        case DeliveryVerdict.NO:
            return GRNItemStatus.SHORTAGE_REPORTED
        case _:
            raise ValueError(f"Unknown delivery verdict: {verdict}")
