"""Domain models for snooker-pos."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from snooker_pos.errors import InvalidArgument


class SessionStatus(str, Enum):
    """Occupancy state of a table slot."""

    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


class PaymentStatus(str, Enum):
    """Payment state of a finalized bill."""

    PAID = "paid"
    UNPAID = "unpaid"

    @classmethod
    def parse(cls, value: PaymentStatus | str) -> PaymentStatus:
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidArgument(f"unknown payment status {value!r}") from exc


@dataclass(frozen=True)
class CatalogItem:
    """An item a customer can buy during a session."""

    item_id: str
    name: str
    price: int


@dataclass(frozen=True)
class ItemLine:
    """One purchased item with its accumulated quantity."""

    item_id: str
    name: str
    unit_price: int
    quantity: int = 1

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Customer:
    """Who a finalized bill belongs to."""

    name: str
    phone: str | None = None


@dataclass(frozen=True)
class TableSession:
    """Immutable snapshot of one table slot's current occupancy."""

    table_number: int
    session_id: str
    status: SessionStatus = SessionStatus.IDLE
    elapsed_seconds: int = 0
    table_charge: int = 0
    items: tuple[ItemLine, ...] = ()
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def elapsed_minutes(self) -> int:
        return self.elapsed_seconds // 60

    @property
    def items_total(self) -> int:
        return sum(line.line_total for line in self.items)

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def item(self, item_id: str) -> ItemLine | None:
        for line in self.items:
            if line.item_id == item_id:
                return line
        return None


@dataclass(frozen=True)
class BillRecord:
    """A finalized bill. Only ``payment_status`` ever changes after creation."""

    id: str
    customer_name: str
    table_number: int
    duration_minutes: int
    amount: int
    created_at: str
    phone: str | None = None
    items: tuple[ItemLine, ...] = ()
    payment_status: PaymentStatus = PaymentStatus.UNPAID

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted ledger layout."""
        return {
            "id": self.id,
            "customerName": self.customer_name,
            "phone": self.phone,
            "tableNumber": self.table_number,
            "durationMinutes": self.duration_minutes,
            "items": [
                {"id": line.item_id, "name": line.name, "price": line.unit_price, "quantity": line.quantity}
                for line in self.items
            ],
            "amount": self.amount,
            "paymentStatus": self.payment_status.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BillRecord:
        """Rebuild a bill from the persisted ledger layout."""
        return cls(
            id=str(raw["id"]),
            customer_name=str(raw["customerName"]),
            phone=raw.get("phone"),
            table_number=int(raw["tableNumber"]),
            duration_minutes=int(raw["durationMinutes"]),
            items=tuple(
                ItemLine(
                    item_id=str(item["id"]),
                    name=str(item["name"]),
                    unit_price=int(item["price"]),
                    quantity=int(item["quantity"]),
                )
                for item in raw.get("items", [])
            ),
            amount=int(raw["amount"]),
            payment_status=PaymentStatus(raw["paymentStatus"]),
            created_at=str(raw["createdAt"]),
        )


@dataclass(frozen=True)
class LedgerSummary:
    """Aggregates shown on the dashboard."""

    total_revenue: int = 0
    paid_amount: int = 0
    unpaid_amount: int = 0
    total_sessions: int = 0
    total_play_minutes: int = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
