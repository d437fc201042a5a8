"""Data models for card transactions, card rules and sync state."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

CARD_TYPES = ("metal", "travel")

CATEGORIES = (
    "dining",
    "travel",
    "shopping",
    "groceries",
    "entertainment",
    "international",
    "fuel",
    "insurance",
    "utilities",
    "other",
)


def new_transaction_id() -> str:
    """Generate a collision-resistant transaction id."""
    return uuid.uuid4().hex


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Transaction:
    """A single credit card transaction with its cached points."""

    id: str
    card: str
    amount: Decimal
    category: str
    date: date
    description: str = ""
    points: int = 0
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate transaction data."""
        if self.card not in CARD_TYPES:
            raise ValueError(f"Unknown card type: {self.card!r}")
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown category: {self.category!r}")
        if self.amount < 0:
            raise ValueError(f"Amount must be non-negative: {self.amount}")
        if self.points < 0:
            raise ValueError(f"Points must be non-negative: {self.points}")
        if self.description is None:
            object.__setattr__(self, "description", "")

    def with_changes(self, **changes: Any) -> "Transaction":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON record used by the local cache and exports."""
        return {
            "id": self.id,
            "card": self.card,
            "amount": float(self.amount),
            "category": self.category,
            "date": self.date.isoformat(),
            "description": self.description,
            "points": self.points,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """Build a transaction from a JSON record.

        Raises:
            ValueError: If a field is missing or malformed
        """
        try:
            amount = Decimal(str(data["amount"]))
        except (KeyError, InvalidOperation) as e:
            raise ValueError(f"Invalid amount in record: {data.get('amount')!r}") from e
        if not amount.is_finite():
            raise ValueError(f"Invalid amount in record: {data['amount']!r}")

        created_at = data.get("createdAt")
        try:
            return cls(
                id=str(data["id"]),
                card=data["card"],
                amount=amount,
                category=data["category"],
                date=date.fromisoformat(str(data["date"])[:10]),
                description=data.get("description") or "",
                points=int(data.get("points") or 0),
                created_at=parse_timestamp(str(created_at)) if created_at else None,
            )
        except KeyError as e:
            raise ValueError(f"Missing field in record: {e}") from e


@dataclass(frozen=True)
class Milestone:
    """Bonus awarded once cumulative card spend reaches a threshold."""

    spend: Decimal
    bonus_points: int


@dataclass(frozen=True)
class CardRule:
    """Static points rules for one card type."""

    name: str
    points_per_unit: Decimal
    international_multiplier: int = 1
    excluded_categories: frozenset[str] = frozenset()
    milestones: tuple[Milestone, ...] = ()


@dataclass(frozen=True)
class SyncStatus:
    """Remote sync state reported to the presentation layer."""

    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"

    state: str = IDLE
    message: str = ""

    @property
    def is_error(self) -> bool:
        """Return True if the last remote attempt failed."""
        return self.state == self.ERROR


@dataclass(frozen=True)
class Identity:
    """An authenticated user of the remote document store."""

    uid: str
    email: str = ""
    id_token: str = field(default="", repr=False)
