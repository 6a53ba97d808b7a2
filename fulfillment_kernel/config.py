"""
Fulfillment Configuration Schema.

Defines the structure and defaults for the workflow orchestrator's tunables:
payment grace period, delivery and completion policies, transaction retry
budget, document-number widths and the invoice compliance tolerance.

Values may be supplied as a dict or a YAML file:

    payment_grace_days: 10
    completion_policy: REQUIRE_CLEAN_MATCH
    max_transaction_retries: 5
"""

import os
from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml

from fulfillment_kernel.domain.policies import (
    CompletionPolicy,
    DeliveryAggregationPolicy,
)
from fulfillment_kernel.logging_config import get_logger

logger = get_logger("config")

DATABASE_URL_ENV_VARS = ("FULFILLMENT_DATABASE_URL", "DATABASE_URL")


@dataclass
class FulfillmentConfig:
    """
    Configuration schema for the fulfillment workflow.

    Field defaults reproduce the behaviour of the existing platform.
    Override at instantiation:

        config = FulfillmentConfig(
            completion_policy=CompletionPolicy.REQUIRE_CLEAN_MATCH,
            max_transaction_retries=5,
        )
    """

    # Payments
    payment_grace_days: int = 7
    compliance_tolerance: Decimal = Decimal("0.50")

    # Policies
    completion_policy: CompletionPolicy = CompletionPolicy.ACCEPT_ANY_VERIFIED
    delivery_policy: DeliveryAggregationPolicy = DeliveryAggregationPolicy.ANY_LINE_VERIFIED

    # Transaction retries
    max_transaction_retries: int = 3
    retry_backoff_seconds: float = 0.05
    retry_backoff_max_seconds: float = 1.0

    # Document numbers
    sequence_width: int = 4
    ticket_sequence_width: int = 6

    def __post_init__(self):
        self.completion_policy = CompletionPolicy(self.completion_policy)
        self.delivery_policy = DeliveryAggregationPolicy(self.delivery_policy)
        self.compliance_tolerance = Decimal(str(self.compliance_tolerance))

        if self.payment_grace_days < 0:
            raise ValueError("payment_grace_days must be >= 0")
        if self.max_transaction_retries < 0:
            raise ValueError("max_transaction_retries must be >= 0")
        if self.sequence_width < 1 or self.ticket_sequence_width < 1:
            raise ValueError("sequence widths must be >= 1")
        if self.compliance_tolerance < 0:
            raise ValueError("compliance_tolerance must be >= 0")

        logger.info(
            "fulfillment_config_initialized",
            extra={
                "payment_grace_days": self.payment_grace_days,
                "completion_policy": self.completion_policy.value,
                "delivery_policy": self.delivery_policy.value,
                "max_transaction_retries": self.max_transaction_retries,
            },
        )

    @property
    def max_attempts(self) -> int:
        """Total attempts for one unit of work (the first try plus retries)."""
        return self.max_transaction_retries + 1

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the platform defaults."""
        logger.info("fulfillment_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary (e.g., loaded from a file)."""
        logger.info(
            "fulfillment_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Self:
        """
        Load config from a YAML mapping.

        Raises:
            FileNotFoundError: if the file does not exist.
            yaml.YAMLError: if the file contains invalid YAML.
            ValueError: if the document is not a mapping or has unknown keys.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return cls.from_dict(data)


def database_url_from_env(default: str | None = None) -> str | None:
    """Return the first database URL set in the environment."""
    for name in DATABASE_URL_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return default
