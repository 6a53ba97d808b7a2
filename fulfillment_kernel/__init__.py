"""
Fulfillment Kernel

Cross-entity workflow orchestration for vendor order fulfillment:
- Order -> purchase orders partitioned by vendor
- Vendor invoice approval -> pending payment (one per purchase order)
- Delivered dispatch -> goods receipt note (one per dispatch)
- Order completion gated on verified receipts
- Read-side reconciliation of delivery and payment status
"""

__version__ = "0.1.0"
