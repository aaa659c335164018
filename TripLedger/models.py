"""
Models Module

This module defines the ledger entry value types shared by every other
module of the trip ledger.

Features:
    - Immutable participant, share, purchase and settlement records
    - Decimal amounts end to end
    - Dictionary conversion for the API layer

Data Model:
    Participant:
        - participant_id: string
        - display_name: string
        - glyph: string or None (emoji shown next to the name)

    Share (one payer or split entry):
        - participant_id: string
        - amount: Decimal

    Purchase:
        - purchase_id: string (E001, E002, ... format)
        - title: string
        - total_amount: Decimal (must be > 0)
        - paid_by: tuple of Share
        - split_between: tuple of Share
        - created_at: string (ISO timestamp)

    Settlement:
        - from_participant: string (debtor who pays)
        - to_participant: string (creditor who receives)
        - amount: Decimal

Functions:
    to_decimal: Convert a number or numeric string to Decimal.
    round_money: Round a Decimal to 2 places and convert to float.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

# Currency-unit tolerance below which a balance or sum mismatch counts as zero
EPSILON = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """
    Convert a number or numeric string to Decimal.

    Floats go through str() so that 12.1 becomes Decimal("12.1") rather
    than its binary expansion.

    Raises:
        ValueError: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"amount must be a number, got: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f"amount must be a number, got: {value!r}")


def round_money(value: Decimal) -> float:
    """Round a Decimal to 2 decimal places (ROUND_HALF_UP) and convert to float."""
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Participant:
    """
    A member of a trip.

    Attributes:
        participant_id (str): Unique identifier, the participant's identity.
        display_name (str): Name shown to other members.
        glyph (str | None): Optional emoji.
    """

    participant_id: str
    display_name: str
    glyph: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "display_name": self.display_name,
            "glyph": self.glyph
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        return cls(
            participant_id=data.get("participant_id"),
            display_name=data.get("display_name"),
            glyph=data.get("glyph")
        )


@dataclass(frozen=True)
class Share:
    """One payer or split entry of a purchase."""

    participant_id: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "amount": round_money(self.amount)
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Share":
        return cls(
            participant_id=data.get("participant_id"),
            amount=to_decimal(data.get("amount", 0))
        )


@dataclass(frozen=True)
class Purchase:
    """
    A single purchase recorded against a trip.

    Attributes:
        purchase_id (str): Unique identifier in E### format.
        title (str): Short description, e.g. "Groceries".
        total_amount (Decimal): Amount of the purchase (must be > 0).
        paid_by (tuple[Share]): Who paid, and how much each.
        split_between (tuple[Share]): Who owes, and how much each.
        created_at (str): ISO timestamp of creation.

    Payer and split amounts are each expected to sum to total_amount; that
    is checked by validation.validate_purchase, not here.
    """

    purchase_id: str
    title: str
    total_amount: Decimal
    paid_by: tuple = ()
    split_between: tuple = ()
    created_at: str = field(default_factory=_utc_now)

    def participant_ids(self) -> set[str]:
        """Return every participant id referenced by this purchase."""
        return {s.participant_id for s in self.paid_by} | {s.participant_id for s in self.split_between}

    def to_dict(self) -> dict:
        return {
            "purchase_id": self.purchase_id,
            "title": self.title,
            "total_amount": round_money(self.total_amount),
            "paid_by": [s.to_dict() for s in self.paid_by],
            "split_between": [s.to_dict() for s in self.split_between],
            "created_at": self.created_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Purchase":
        """Create a Purchase from a dictionary, converting amounts to Decimal."""
        kwargs = {}
        if data.get("created_at"):
            kwargs["created_at"] = data["created_at"]
        return cls(
            purchase_id=data.get("purchase_id"),
            title=data.get("title"),
            total_amount=to_decimal(data.get("total_amount", 0)),
            paid_by=tuple(Share.from_dict(s) for s in data.get("paid_by", [])),
            split_between=tuple(Share.from_dict(s) for s in data.get("split_between", [])),
            **kwargs
        )

    def __repr__(self) -> str:
        return f"Purchase(id='{self.purchase_id}', title='{self.title}', total={self.total_amount})"


@dataclass(frozen=True)
class Settlement:
    """A recommended payment from a debtor to a creditor."""

    from_participant: str
    to_participant: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "from_participant": self.from_participant,
            "to_participant": self.to_participant,
            "amount": round_money(self.amount)
        }
