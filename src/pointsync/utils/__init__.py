"""Utility functions for pointsync."""

from pointsync.utils.parsing import parse_amount, parse_date

__all__ = ["parse_date", "parse_amount"]
