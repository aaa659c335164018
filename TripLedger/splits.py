"""
Splits Module

Builders for the paid_by and split_between lists of a purchase.

Features:
    - Equal split among selected participants
    - Percentage split, as chosen with per-member sliders
    - Cent remainders distributed so shares sum exactly to the total

Functions:
    equal_split: Divide a total equally among participants.
    split_by_percentages: Divide a total by per-participant percentages.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

from models import EPSILON, Share, to_decimal
from validation import (
    InvalidAmountError,
    NoDebtorSelectedError,
    NoPayerSelectedError,
    PercentageSumMismatchError,
    ensure_finite,
)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

ROLE_PAYER = "payer"
ROLE_SPLIT = "split"


def _check_total(total) -> Decimal:
    amount = ensure_finite(to_decimal(total), "total_amount")
    if amount <= 0:
        raise InvalidAmountError(f"total_amount must be a positive number, got: {amount}")
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    # Anything under half a cent would leave every share at zero
    if amount == 0:
        raise InvalidAmountError(f"total_amount must be at least {CENT}, got: {total}")
    return amount


def _empty_selection(role: str) -> ValueError:
    if role == ROLE_PAYER:
        return NoPayerSelectedError("select at least one participant who paid")
    return NoDebtorSelectedError("select at least one participant to split with")


def equal_split(total, participant_ids, role: str = ROLE_SPLIT) -> list[Share]:
    """
    Divide a total equally among participants.

    Each share is the total divided by the number of participants, rounded
    down to the cent. The leftover cents go one each to the first
    participants in the given order.

    Args:
        total: Purchase total (> 0).
        participant_ids: Selected participants; duplicates are ignored.
        role: ROLE_PAYER or ROLE_SPLIT, picks the error for an empty list.

    Returns:
        list[Share]: One share per participant, summing to the total.

    Raises:
        InvalidAmountError: If total is not a positive finite number.
        NoPayerSelectedError / NoDebtorSelectedError: If no one is selected.
    """
    amount = _check_total(total)
    ids = list(dict.fromkeys(participant_ids))
    if not ids:
        raise _empty_selection(role)

    base = (amount / len(ids)).quantize(CENT, rounding=ROUND_DOWN)
    leftover_cents = int((amount - base * len(ids)) / CENT)

    return [
        Share(participant_id=pid, amount=base + CENT if i < leftover_cents else base)
        for i, pid in enumerate(ids)
    ]


def split_by_percentages(total, percentages: dict, role: str = ROLE_SPLIT) -> list[Share]:
    """
    Divide a total by per-participant percentages.

    Participants at 0% are left out. Shares are rounded to the cent and any
    rounding difference is added to the share with the largest percentage
    (the first one on a tie).

    Args:
        total: Purchase total (> 0).
        percentages: Percent (0-100) keyed by participant_id; must sum to 100.
        role: ROLE_PAYER or ROLE_SPLIT, picks the error for an empty mapping.

    Returns:
        list[Share]: Shares in the mapping's order, summing to the total.

    Raises:
        InvalidAmountError: If total or a percentage is invalid.
        PercentageSumMismatchError: If percentages do not sum to 100.
        NoPayerSelectedError / NoDebtorSelectedError: If no one is selected.
    """
    amount = _check_total(total)

    selected = []
    for participant_id, percent in percentages.items():
        pct = ensure_finite(to_decimal(percent), "percentage")
        if pct < 0:
            raise InvalidAmountError(f"percentage for '{participant_id}' must not be negative, got: {pct}")
        if pct > 0:
            selected.append((participant_id, pct))

    if not selected:
        raise _empty_selection(role)

    pct_sum = sum((pct for _, pct in selected), Decimal("0"))
    if abs(pct_sum - HUNDRED) > EPSILON:
        raise PercentageSumMismatchError(f"percentages add up to {pct_sum}, expected 100")

    amounts = [(amount * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP) for _, pct in selected]

    difference = amount - sum(amounts, Decimal("0"))
    if difference:
        largest = max(range(len(amounts)), key=lambda i: selected[i][1])
        amounts[largest] += difference

    return [Share(participant_id=pid, amount=value) for (pid, _), value in zip(selected, amounts)]
