"""
Explain Module

This module makes every balance traceable back to the purchases behind it.

Features:
    - Per-participant, per-purchase breakdown of paid and owed amounts
    - Explanations for every participant, ordered by participant_id

Data Model:
    Input - participants: list of Participant
    Input - purchases: list of Purchase
    Input - balances: output of balances.summarize_balances()

    Output - explanation dict:
        - participant_id: string
        - display_name: string
        - purchase_contributions: list of dicts, one per purchase involving
          the participant (purchase_id, title, created_at,
          total_purchase_amount, paid, owed, net, num_split)
        - total_paid: float
        - total_share: float
        - net_balance: float

Functions:
    explain_participant: Breakdown for one participant.
    explain_all_participants: Breakdown for every participant.
"""

from decimal import Decimal

from models import round_money


def _amount_for(shares, participant_id: str) -> Decimal:
    # A participant may appear more than once in a share list
    return sum((s.amount for s in shares if s.participant_id == participant_id), Decimal("0"))


def explain_participant(
    participant_id: str,
    participants: list,
    purchases: list,
    balances: dict
) -> dict:
    """
    Explain how a participant's balance was reached.

    For each purchase the participant paid into or owes on, lists what they
    paid, what they owe, and the resulting net for that purchase.

    Args:
        participant_id: ID of the participant to explain.
        participants: The trip's participants.
        purchases: The trip's purchases.
        balances: Output from summarize_balances().

    Returns:
        dict: Explanation as described in the module docstring. Unknown
        participants get zero totals, no contributions and an "error" key.
    """
    participant_map = {p.participant_id: p for p in participants}

    balance_info = balances.get(participant_id, {
        "total_paid": 0.0,
        "total_share": 0.0,
        "net_balance": 0.0
    })

    if participant_id not in participant_map:
        return {
            "participant_id": participant_id,
            "display_name": None,
            "purchase_contributions": [],
            "total_paid": 0.0,
            "total_share": 0.0,
            "net_balance": 0.0,
            "error": f"Participant {participant_id} not found"
        }

    contributions = []
    for purchase in purchases:
        if participant_id not in purchase.participant_ids():
            continue

        paid = _amount_for(purchase.paid_by, participant_id)
        owed = _amount_for(purchase.split_between, participant_id)

        contributions.append({
            "purchase_id": purchase.purchase_id,
            "title": purchase.title,
            "created_at": purchase.created_at,
            "total_purchase_amount": round_money(purchase.total_amount),
            "paid": round_money(paid),
            "owed": round_money(owed),
            "net": round_money(paid - owed),
            "num_split": len({s.participant_id for s in purchase.split_between})
        })

    return {
        "participant_id": participant_id,
        "display_name": participant_map[participant_id].display_name,
        "purchase_contributions": contributions,
        "total_paid": balance_info["total_paid"],
        "total_share": balance_info["total_share"],
        "net_balance": balance_info["net_balance"]
    }


def explain_all_participants(participants: list, purchases: list, balances: dict) -> list[dict]:
    """Explain every participant's balance, sorted by participant_id."""
    explanations = [
        explain_participant(p.participant_id, participants, purchases, balances)
        for p in participants
    ]
    explanations.sort(key=lambda x: x["participant_id"])
    return explanations
