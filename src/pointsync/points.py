"""Points calculation rules for the supported cards.

All functions here are pure. Points are always derived from
``card``, ``amount`` and ``category``; the ``points`` value cached on a
transaction is never used as input.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from pointsync.models import CardRule, Milestone, Transaction

NO_POINTS_CATEGORIES = frozenset({"fuel", "insurance", "utilities"})

CARDS: dict[str, CardRule] = {
    "metal": CardRule(
        name="Charge Metal",
        points_per_unit=Decimal(1) / Decimal(40),
        international_multiplier=3,
        excluded_categories=NO_POINTS_CATEGORIES,
    ),
    "travel": CardRule(
        name="Platinum Travel",
        points_per_unit=Decimal(1) / Decimal(50),
        international_multiplier=1,
        excluded_categories=NO_POINTS_CATEGORIES,
        milestones=(
            Milestone(spend=Decimal(190000), bonus_points=15000),
            Milestone(spend=Decimal(400000), bonus_points=25000),
        ),
    ),
}


@dataclass(frozen=True)
class CardSummary:
    """Aggregated spend and points for one card."""

    card: str
    spend: Decimal
    base_points: int
    milestone_bonus: int
    count: int

    @property
    def total_points(self) -> int:
        """Base points plus the milestone bonus."""
        return self.base_points + self.milestone_bonus


@dataclass(frozen=True)
class CategoryTotal:
    """Spend and points for one category."""

    category: str
    amount: Decimal
    points: int


def compute_points(tx: Transaction) -> int:
    """Compute reward points for a single transaction (rounded down)."""
    rule = CARDS[tx.card]

    if tx.category in rule.excluded_categories:
        return 0

    multiplier = rule.international_multiplier if tx.category == "international" else 1
    return math.floor(tx.amount * rule.points_per_unit * multiplier)


def total_spend(card: str, transactions: Iterable[Transaction]) -> Decimal:
    """Sum the amounts of all transactions made on ``card``."""
    return sum((tx.amount for tx in transactions if tx.card == card), Decimal(0))


def compute_milestone_bonus(card: str, transactions: Iterable[Transaction]) -> int:
    """Return the bonus of the highest milestone reached by total card spend.

    Bonuses do not stack: reaching the second threshold awards only the
    second bonus.
    """
    spend = total_spend(card, transactions)

    bonus = 0
    for milestone in CARDS[card].milestones:
        if spend >= milestone.spend:
            bonus = milestone.bonus_points
    return bonus


def milestone_progress(card: str, transactions: Iterable[Transaction]) -> float:
    """Percentage of the way to the next unmet milestone, capped at 100."""
    milestones = CARDS[card].milestones
    if not milestones:
        return 0.0

    spend = total_spend(card, transactions)
    target = next((m.spend for m in milestones if spend < m.spend), milestones[-1].spend)
    return min(float(spend / target * 100), 100.0)


def summarize_card(card: str, transactions: Iterable[Transaction]) -> CardSummary:
    """Build the points summary shown for ``card``."""
    card_txs = [tx for tx in transactions if tx.card == card]
    return CardSummary(
        card=card,
        spend=total_spend(card, card_txs),
        base_points=sum(compute_points(tx) for tx in card_txs),
        milestone_bonus=compute_milestone_bonus(card, card_txs),
        count=len(card_txs),
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    card: str | None = None,
) -> list[CategoryTotal]:
    """Group spend and points by category, largest spend first.

    Args:
        transactions: Transactions to group
        card: Only include this card type (all cards if None)

    Returns:
        List of CategoryTotal sorted by amount descending
    """
    amounts: dict[str, Decimal] = {}
    points: dict[str, int] = {}

    for tx in transactions:
        if card is not None and tx.card != card:
            continue
        amounts[tx.category] = amounts.get(tx.category, Decimal(0)) + tx.amount
        points[tx.category] = points.get(tx.category, 0) + compute_points(tx)

    totals = [CategoryTotal(cat, amounts[cat], points[cat]) for cat in amounts]
    totals.sort(key=lambda t: t.amount, reverse=True)
    return totals
