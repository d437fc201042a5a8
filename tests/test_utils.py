"""Tests for utility functions."""

from datetime import date, datetime, timezone
from decimal import Decimal

from pointsync.utils import parse_amount, parse_date


class TestParseDate:
    """Tests for parse_date function."""

    def test_yyyy_mm_dd(self) -> None:
        """Test YYYY-MM-DD format."""
        assert parse_date("2026-01-30") == date(2026, 1, 30)

    def test_iso_timestamp(self) -> None:
        """Test full ISO timestamps keep only the date."""
        assert parse_date("2026-01-30T10:15:00.000Z") == date(2026, 1, 30)

    def test_dd_mm_yyyy_slash(self) -> None:
        """Test DD/MM/YYYY format."""
        assert parse_date("30/01/2026") == date(2026, 1, 30)
        assert parse_date("01/12/2025") == date(2025, 12, 1)

    def test_dd_mmm_yyyy(self) -> None:
        """Test DD MMM YYYY format."""
        assert parse_date("30 Jan 2026") == date(2026, 1, 30)
        assert parse_date("1 December 2025") == date(2025, 12, 1)

    def test_dd_mm_yyyy_dash(self) -> None:
        """Test DD-MM-YYYY format."""
        assert parse_date("30-01-2026") == date(2026, 1, 30)

    def test_quoted_date(self) -> None:
        """Test date with quotes."""
        assert parse_date('"30/01/2026"') == date(2026, 1, 30)

    def test_date_objects(self) -> None:
        """Test date and datetime values pass through."""
        assert parse_date(date(2026, 1, 30)) == date(2026, 1, 30)
        assert parse_date(datetime(2026, 1, 30, 9, tzinfo=timezone.utc)) == date(2026, 1, 30)

    def test_empty_string(self) -> None:
        """Test empty string returns None."""
        assert parse_date("") is None
        assert parse_date("   ") is None

    def test_invalid_date(self) -> None:
        """Test invalid date returns None."""
        assert parse_date("not a date") is None
        assert parse_date("32/01/2026") is None
        assert parse_date(20260130) is None
        assert parse_date(None) is None


class TestParseAmount:
    """Tests for parse_amount function."""

    def test_numbers(self) -> None:
        """Test JSON numbers."""
        assert parse_amount(100) == Decimal("100")
        assert parse_amount(1200.5) == Decimal("1200.5")

    def test_simple_string(self) -> None:
        """Test simple numeric strings."""
        assert parse_amount("123.45") == Decimal("123.45")

    def test_thousands_separators(self) -> None:
        """Test western and Indian digit grouping."""
        assert parse_amount("1,234.56") == Decimal("1234.56")
        assert parse_amount("1,90,000") == Decimal("190000")

    def test_currency_prefixes(self) -> None:
        """Test rupee symbol and INR/Rs prefixes."""
        assert parse_amount("₹2,500") == Decimal("2500")
        assert parse_amount("INR 500") == Decimal("500")
        assert parse_amount("Rs. 1,200") == Decimal("1200")

    def test_quoted_amount(self) -> None:
        """Test amount with quotes."""
        assert parse_amount('"123.45"') == Decimal("123.45")

    def test_empty_string(self) -> None:
        """Test empty string returns None."""
        assert parse_amount("") is None
        assert parse_amount("   ") is None

    def test_invalid_amount(self) -> None:
        """Test invalid amount returns None."""
        assert parse_amount("abc") is None
        assert parse_amount(None) is None
        assert parse_amount(True) is None

    def test_non_finite(self) -> None:
        """Test NaN and infinity are rejected."""
        assert parse_amount("NaN") is None
        assert parse_amount(float("inf")) is None
