"""
Analytics Module

This module provides spending summaries and rule-based warnings for a trip.

Features:
    - Total spent and purchase count
    - Per-participant payer totals
    - Largest purchase identification
    - Smart warnings for spending imbalances

Data Model:
    Input - participants: list of Participant
    Input - purchases: list of Purchase

    Output - dict containing:
        - analytics: dict with total_spent, purchase_count, payer_totals,
          largest_purchase
        - warnings: list of warning strings

Functions:
    generate_analytics: Generate analytics and warnings from purchase data.
"""

from collections import defaultdict
from decimal import Decimal

from config.app_config import get_settings
from models import round_money

PAYER_SHARE_WARNING_PERCENT = Decimal("40")
PURCHASE_SHARE_WARNING_PERCENT = Decimal("50")


def generate_analytics(participants: list, purchases: list) -> dict:
    """
    Generate analytics and smart warnings from purchase data.

    Analytics computed:
        - total_spent: Sum of all purchase totals
        - purchase_count: Number of purchases
        - payer_totals: Total amount paid by each participant (every
          participant is present, idle ones at 0)
        - largest_purchase: purchase_id, title and amount of the biggest
          purchase (None values when there are no purchases)

    Warnings generated (rule-based):
        - If one participant paid > 40% of the total, in groups of three
          or more (in a pair someone always pays at least half)
        - If a single purchase is > 50% of the total, when there are at
          least two purchases

    Args:
        participants: The trip's participants.
        purchases: The trip's purchases.

    Returns:
        dict: Contains two keys, "analytics" and "warnings".
    """
    symbol = get_settings().currency_symbol

    payer_totals = defaultdict(Decimal)
    for p in participants:
        payer_totals[p.participant_id] = Decimal("0")

    total_spent = Decimal("0")
    largest = None

    for purchase in purchases:
        total_spent += purchase.total_amount
        for share in purchase.paid_by:
            payer_totals[share.participant_id] += share.amount
        if largest is None or purchase.total_amount > largest.total_amount:
            largest = purchase

    largest_purchase = {"purchase_id": None, "title": None, "amount": 0.0}
    if largest is not None:
        largest_purchase = {
            "purchase_id": largest.purchase_id,
            "title": largest.title,
            "amount": round_money(largest.total_amount)
        }

    analytics = {
        "total_spent": round_money(total_spent),
        "purchase_count": len(purchases),
        "payer_totals": {pid: round_money(amount) for pid, amount in payer_totals.items()},
        "largest_purchase": largest_purchase
    }

    warnings = []
    total_spent_float = round_money(total_spent)
    names = {p.participant_id: p.display_name for p in participants}

    # Rule 1: one participant paid too large a share
    if total_spent > 0 and len(participants) >= 3:
        for payer_id, amount in payer_totals.items():
            percentage = (amount / total_spent) * 100
            if percentage > PAYER_SHARE_WARNING_PERCENT:
                warnings.append(
                    f"Warning: {names.get(payer_id) or payer_id} paid {round_money(percentage)}% of total spend "
                    f"({symbol}{round_money(amount)} of {symbol}{total_spent_float})"
                )

    # Rule 2: one purchase dominates the trip
    if total_spent > 0 and len(purchases) >= 2:
        percentage = (largest.total_amount / total_spent) * 100
        if percentage > PURCHASE_SHARE_WARNING_PERCENT:
            warnings.append(
                f"Warning: '{largest.title}' accounts for {round_money(percentage)}% of total spend "
                f"({symbol}{round_money(largest.total_amount)} of {symbol}{total_spent_float})"
            )

    return {
        "analytics": analytics,
        "warnings": warnings
    }
