from decimal import Decimal

import pytest

from models import Participant, Purchase, Share


def make_purchase(purchase_id, total, paid_by, split_between, title="Dinner"):
    """Build a Purchase from {participant_id: amount} mappings."""
    return Purchase(
        purchase_id=purchase_id,
        title=title,
        total_amount=Decimal(str(total)),
        paid_by=tuple(Share(pid, Decimal(str(amount))) for pid, amount in paid_by.items()),
        split_between=tuple(Share(pid, Decimal(str(amount))) for pid, amount in split_between.items())
    )


@pytest.fixture
def participants():
    """Three test participants."""
    return [
        Participant("A", "Alice", "🏄"),
        Participant("B", "Bob"),
        Participant("C", "Carol", "🧗"),
    ]


@pytest.fixture
def pair():
    return [Participant("A", "Alice"), Participant("B", "Bob")]


@pytest.fixture
def dinner():
    """Alice pays 150, split evenly between all three."""
    return make_purchase("E001", 150, {"A": 150}, {"A": 50, "B": 50, "C": 50})
