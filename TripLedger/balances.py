"""
Balances Module

This module folds a trip's purchases into a net balance per participant.

Features:
    - Arbitrary payer splits and arbitrary cost-sharing splits
    - Every participant present in the result, even with no activity
    - Exact Decimal arithmetic, so purchase order never changes the result
    - Rejects purchases that reference non-members

Data Model:
    Input - participants: list of Participant
    Input - purchases: list of Purchase

    Output - compute_balances (dict keyed by participant_id):
        Decimal net balance
            - Positive = participant is owed money
            - Negative = participant owes money

    Output - summarize_balances (dict keyed by participant_id):
        - total_paid: float (sum of amounts this participant paid)
        - total_share: float (sum of amounts this participant owes)
        - net_balance: float (total_paid - total_share)

Functions:
    compute_balances: Net balance per participant.
    summarize_balances: Paid/share/net breakdown per participant, rounded.
"""

import logging
from decimal import Decimal

from models import round_money
from validation import ReferentialIntegrityError, ensure_finite

logger = logging.getLogger(__name__)


def _accumulate(participants, purchases) -> tuple[dict, dict]:
    """
    Sum paid and owed amounts per participant.

    Returns:
        tuple[dict, dict]: (paid, owed), both keyed by participant_id with
        Decimal values, both containing every participant.

    Raises:
        ReferentialIntegrityError: If a purchase references a non-member.
        InvalidAmountError: If an amount is not finite.
    """
    paid = {p.participant_id: Decimal("0") for p in participants}
    owed = {p.participant_id: Decimal("0") for p in participants}

    # Process each purchase
    for purchase in purchases:
        # Payers are credited what they put in
        for share in purchase.paid_by:
            if share.participant_id not in paid:
                raise ReferentialIntegrityError(share.participant_id, purchase.purchase_id)
            paid[share.participant_id] += ensure_finite(share.amount, "paid_by amount")

        # Split entries are charged what they owe
        for share in purchase.split_between:
            if share.participant_id not in owed:
                raise ReferentialIntegrityError(share.participant_id, purchase.purchase_id)
            owed[share.participant_id] += ensure_finite(share.amount, "split_between amount")

    return paid, owed


def compute_balances(participants, purchases) -> dict[str, Decimal]:
    """
    Calculate the net balance of every participant.

    For each purchase:
        1. Each payer's balance increases by the amount they paid
        2. Each split entry's balance decreases by the amount they owe

    Args:
        participants: The trip's participants (authoritative member list).
        purchases: Every purchase recorded against the trip.

    Returns:
        dict[str, Decimal]: Net balance keyed by participant_id. The key set
        is exactly the participant set; idle participants map to 0.

    Raises:
        ReferentialIntegrityError: If a purchase references a participant
            that is not in participants.
        InvalidAmountError: If any amount is NaN or infinite.

    Notes:
        - Does NOT modify its arguments
        - Values are not rounded; round at display time
    """
    paid, owed = _accumulate(participants, purchases)
    balances = {participant_id: paid[participant_id] - owed[participant_id] for participant_id in paid}

    logger.debug("Computed balances for %d participants from %d purchases",
                 len(balances), len(purchases))
    return balances


def summarize_balances(participants, purchases) -> dict:
    """
    Calculate paid, share and net totals per participant, rounded for display.

    Args:
        participants: The trip's participants.
        purchases: Every purchase recorded against the trip.

    Returns:
        dict: Keyed by participant_id, each value containing:
            - total_paid: float
            - total_share: float
            - net_balance: float

    Raises:
        ReferentialIntegrityError: As compute_balances.
    """
    paid, owed = _accumulate(participants, purchases)

    result = {}
    for participant_id in paid:
        result[participant_id] = {
            "total_paid": round_money(paid[participant_id]),
            "total_share": round_money(owed[participant_id]),
            # Rounded once from the exact difference, not from rounded parts
            "net_balance": round_money(paid[participant_id] - owed[participant_id])
        }

    return result
