"""
Domain events emitted by the sale pipeline.

Each event is an immutable value object with its own typed payload. Events
are dispatched by class, so subscribers declare exactly which variant they
handle. `topic` is the stable wire name used in logs and serialized payloads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Optional

from saleflow.time_utils import to_utc_z, utcnow


@dataclass(frozen=True)
class Event(ABC):
    """Base class for every domain event."""

    topic: ClassVar[str] = ""

    @abstractmethod
    def to_payload(self) -> dict:
        """Wire representation with camelCase keys."""


@dataclass(frozen=True)
class SaleCompletedItem:
    product_id: str
    quantity: int
    price: int  # unit price in cents, resolved at sale time

    def to_payload(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
        }


@dataclass(frozen=True)
class SaleCompleted(Event):
    """A sale and its line items were committed."""

    topic: ClassVar[str] = "sale_completed"

    transaction_id: str
    tenant_id: str
    items: tuple[SaleCompletedItem, ...]
    total_amount: int  # cents
    customer_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict:
        payload = {
            "transactionId": self.transaction_id,
            "tenantId": self.tenant_id,
            "items": [item.to_payload() for item in self.items],
            "totalAmount": self.total_amount,
            "timestamp": to_utc_z(self.timestamp),
        }
        if self.customer_id is not None:
            payload["customerId"] = self.customer_id
        return payload


@dataclass(frozen=True)
class StockUpdated(Event):
    """The stock ledger changed one StockRecord."""

    topic: ClassVar[str] = "stock_updated"

    product_id: str
    tenant_id: str
    location_id: str
    old_quantity: int
    new_quantity: int
    reason: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict:
        return {
            "productId": self.product_id,
            "tenantId": self.tenant_id,
            "locationId": self.location_id,
            "oldQuantity": self.old_quantity,
            "newQuantity": self.new_quantity,
            "reason": self.reason,
            "timestamp": to_utc_z(self.timestamp),
        }


@dataclass(frozen=True)
class StockDeductionFailed(Event):
    """Stock for a committed sale could not be deducted; needs reconciliation."""

    topic: ClassVar[str] = "stock_deduction_failed"

    transaction_id: str
    tenant_id: str
    error: str
    items: tuple[SaleCompletedItem, ...] = ()
    timestamp: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict:
        return {
            "transactionId": self.transaction_id,
            "tenantId": self.tenant_id,
            "error": self.error,
            "items": [item.to_payload() for item in self.items],
            "timestamp": to_utc_z(self.timestamp),
        }
