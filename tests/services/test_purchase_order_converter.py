"""
Tests for converting a vendor-assigned order into purchase orders.
"""

from decimal import Decimal
from uuid import uuid4

from hypothesis import given
from hypothesis import strategies as st

from conftest import OrderLine
from fulfillment_kernel.domain.dtos import WorkflowStatus
from fulfillment_kernel.domain.statuses import (
    AssignmentStatus,
    OrderStatus,
    PurchaseOrderStatus,
)
from fulfillment_kernel.models import (
    AssignedOrderItem,
    Order,
    PurchaseOrder,
    PurchaseOrderItem,
)
from fulfillment_kernel.services.purchase_order_converter import partition_by_vendor


class TestPartitionByVendor:
    def test_groups_keep_first_seen_order(self):
        a, b = uuid4(), uuid4()
        assignments = [
            AssignedOrderItem(vendor_id=b, assigned_quantity=1),
            AssignedOrderItem(vendor_id=a, assigned_quantity=2),
            AssignedOrderItem(vendor_id=b, assigned_quantity=3),
        ]
        groups = partition_by_vendor(assignments)
        assert list(groups) == [b, a]
        assert [x.assigned_quantity for x in groups[b]] == [1, 3]

    @given(vendor_picks=st.lists(st.integers(min_value=0, max_value=4), max_size=12))
    def test_partition_is_complete_and_disjoint(self, vendor_picks):
        vendor_pool = [uuid4() for _ in range(5)]
        assignments = [
            AssignedOrderItem(vendor_id=vendor_pool[pick], assigned_quantity=i + 1)
            for i, pick in enumerate(vendor_picks)
        ]
        groups = partition_by_vendor(assignments)
        assert len(groups) == len(set(vendor_picks))
        flattened = [a for group in groups.values() for a in group]
        assert sorted(id(a) for a in flattened) == sorted(id(a) for a in assignments)
        for vendor_id, group in groups.items():
            assert all(a.vendor_id == vendor_id for a in group)


class TestConvertOrder:
    def test_one_purchase_order_per_vendor(self, orchestrator, make_order, db, vendors, actor_id):
        a, b, c = vendors
        built = make_order(
            [
                OrderLine(10, Decimal("5.00"), [(a, 6), (b, 4)]),
                OrderLine(3, Decimal("20.00"), [(a, 3)]),
                OrderLine(1, Decimal("99.99"), [(c, 1)]),
            ]
        )

        result = orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        assert result.is_success, result.message
        assert result.message == "3 Purchase Order(s) created successfully"
        assert len(result.created_ids) == 3
        assert sorted(result.details["po_numbers"]) == [
            "PO-2025-0001", "PO-2025-0002", "PO-2025-0003",
        ]

        purchase_orders = {po.vendor_id: po for po in db.all(PurchaseOrder, order_id=built.order_id)}
        assert set(purchase_orders) == {a, b, c}
        assert purchase_orders[a].total_amount == Decimal("90.00")
        assert purchase_orders[b].total_amount == Decimal("20.00")
        assert purchase_orders[c].total_amount == Decimal("99.99")
        assert all(po.status == PurchaseOrderStatus.ISSUED for po in purchase_orders.values())

        lines_a = sorted(
            db.all(PurchaseOrderItem, purchase_order_id=purchase_orders[a].id),
            key=lambda line: line.line_number,
        )
        assert [line.line_number for line in lines_a] == [1, 2]
        assert sorted(line.total_price for line in lines_a) == [Decimal("30.00"), Decimal("60.00")]

    def test_totals_match_assignments(self, orchestrator, make_order, db, vendors, actor_id):
        a, b, _ = vendors
        built = make_order(
            [
                OrderLine(7, Decimal("1.10"), [(a, 5), (b, 2)]),
                OrderLine(4, Decimal("0.35"), [(b, 4)]),
            ]
        )
        orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        purchase_orders = db.all(PurchaseOrder, order_id=built.order_id)
        expected = 7 * Decimal("1.10") + 4 * Decimal("0.35")
        assert sum(po.total_amount for po in purchase_orders) == expected
        for po in purchase_orders:
            lines = db.all(PurchaseOrderItem, purchase_order_id=po.id)
            assert sum(line.total_price for line in lines) == po.total_amount

    def test_order_and_assignments_advance(self, orchestrator, make_order, db, vendors, actor_id):
        a, _, _ = vendors
        built = make_order([OrderLine(2, Decimal("3.00"), [(a, 2)])], status=OrderStatus.ASSIGNED)

        orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        order = db.get(Order, built.order_id)
        assert order.status == OrderStatus.PROCESSING
        assert order.updated_by_id == actor_id
        assignment = db.get(AssignedOrderItem, built.assignment_ids[0])
        assert assignment.status == AssignmentStatus.PENDING_CONFIRMATION

    def test_second_conversion_rejected(self, orchestrator, make_order, db, vendors, actor_id):
        a, _, _ = vendors
        built = make_order([OrderLine(2, Decimal("3.00"), [(a, 2)])])
        assert orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id).is_success

        again = orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        assert again.status == WorkflowStatus.INVALID_STATE
        assert again.message == "Order cannot be processed. Current status: PROCESSING"
        assert again.error_code == "ORDER_NOT_ASSIGNABLE"
        assert db.count(PurchaseOrder, order_id=built.order_id) == 1

    def test_fulfilled_order_rejected(self, orchestrator, make_order, vendors, actor_id):
        a, _, _ = vendors
        built = make_order([OrderLine(1, Decimal("1.00"), [(a, 1)])], status=OrderStatus.FULFILLED)
        result = orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)
        assert result.status == WorkflowStatus.INVALID_STATE
        assert "FULFILLED" in result.message

    def test_order_without_assignments(self, orchestrator, make_order, db, actor_id):
        built = make_order([OrderLine(5, Decimal("2.00"))])

        result = orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        assert result.status == WorkflowStatus.PRECONDITION_UNMET
        assert result.message == "No items assigned to vendors yet"
        assert db.get(Order, built.order_id).status == OrderStatus.RECEIVED
        assert db.count(PurchaseOrder) == 0

    def test_unknown_order(self, orchestrator, db_engine, actor_id):
        result = orchestrator.convert_order_to_purchase_orders(uuid4(), actor_id)
        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.message == "Order not found"
        assert not result.is_success

    def test_success_logged_with_context(self, orchestrator, make_order, vendors, actor_id, captured_logs):
        a, b, _ = vendors
        built = make_order([OrderLine(2, Decimal("1.00"), [(a, 1), (b, 1)])])
        orchestrator.convert_order_to_purchase_orders(built.order_id, actor_id)

        records = [r for r in captured_logs() if r["message"] == "purchase_orders_created"]
        assert len(records) == 1
        assert records[0]["purchase_order_count"] == 2
        assert records[0]["operation"] == "convert_order_to_purchase_orders"
        assert records[0]["entity_id"] == str(built.order_id)
        assert records[0]["actor_id"] == str(actor_id)
