"""Tests for data models."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from conftest import make_tx
from pointsync.models import SyncStatus, Transaction, new_transaction_id, parse_timestamp


class TestTransaction:
    """Tests for Transaction model."""

    def test_create_transaction(self) -> None:
        """Test creating a basic transaction."""
        tx = Transaction(
            id="abc",
            card="travel",
            amount=Decimal("4500.50"),
            category="groceries",
            date=date(2026, 1, 30),
        )
        assert tx.card == "travel"
        assert tx.amount == Decimal("4500.50")
        assert tx.description == ""
        assert tx.points == 0
        assert tx.created_at is None

    def test_rejects_unknown_card(self) -> None:
        """Test that unknown card types are rejected."""
        with pytest.raises(ValueError, match="card type"):
            make_tx(card="gold")

    def test_rejects_unknown_category(self) -> None:
        """Test that unknown categories are rejected."""
        with pytest.raises(ValueError, match="category"):
            make_tx(category="crypto")

    def test_rejects_negative_amount(self) -> None:
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            make_tx(amount=Decimal("-1"))

    def test_transaction_immutable(self) -> None:
        """Test that transactions are immutable (frozen)."""
        tx = make_tx()
        with pytest.raises(AttributeError):
            tx.amount = Decimal("200")  # type: ignore

    def test_with_changes(self) -> None:
        """Test replacing fields returns a new transaction."""
        tx = make_tx()
        changed = tx.with_changes(points=99)
        assert changed.points == 99
        assert tx.points == 25

    def test_to_dict(self) -> None:
        """Test conversion to the persisted record."""
        d = make_tx().to_dict()
        assert d == {
            "id": "tx-1",
            "card": "metal",
            "amount": 1000.0,
            "category": "dining",
            "date": "2026-02-14",
            "description": "Dinner",
            "points": 25,
            "createdAt": "2026-02-14T20:00:00+00:00",
        }

    def test_from_dict_accepts_millisecond_timestamps(self) -> None:
        """Test records with integer amounts and millisecond UTC timestamps."""
        tx = Transaction.from_dict({
            "id": "1718000000000",
            "card": "travel",
            "amount": 2499,
            "category": "shopping",
            "date": "2024-06-10",
            "description": "Shoes",
            "points": 49,
            "createdAt": "2024-06-10T08:30:00.000Z",
        })
        assert tx.id == "1718000000000"
        assert tx.amount == Decimal("2499")
        assert tx.created_at == datetime(2024, 6, 10, 8, 30, tzinfo=timezone.utc)

    def test_from_dict_missing_field(self) -> None:
        """Test missing fields raise ValueError."""
        with pytest.raises(ValueError, match="Missing field"):
            Transaction.from_dict({"id": "1", "amount": 10, "card": "metal", "date": "2024-01-01"})

    def test_from_dict_invalid_amount(self) -> None:
        """Test non-numeric amounts raise ValueError."""
        with pytest.raises(ValueError, match="Invalid amount"):
            Transaction.from_dict({"id": "1", "amount": "lots"})

    def test_round_trip(self) -> None:
        """Test to_dict and from_dict are inverses."""
        tx = make_tx(amount=Decimal("100.10"), description="")
        assert Transaction.from_dict(tx.to_dict()) == tx


class TestHelpers:
    """Tests for id and timestamp helpers."""

    def test_ids_are_unique(self) -> None:
        """Test generated ids do not repeat."""
        ids = {new_transaction_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_naive_timestamp_assumed_utc(self) -> None:
        """Test timestamps without offset are read as UTC."""
        assert parse_timestamp("2026-01-01T00:00:00").tzinfo == timezone.utc

    def test_offset_preserved(self) -> None:
        """Test explicit offsets are kept."""
        parsed = parse_timestamp("2026-01-01T05:30:00+05:30")
        assert parsed == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)


class TestSyncStatus:
    """Tests for SyncStatus."""

    def test_default_is_idle(self) -> None:
        """Test the initial status."""
        assert SyncStatus().state == SyncStatus.IDLE
        assert SyncStatus().is_error is False

    def test_error(self) -> None:
        """Test error status carries a message."""
        status = SyncStatus(SyncStatus.ERROR, "offline")
        assert status.is_error is True
        assert status.message == "offline"
