"""
Settlement Module

This module turns net balances into a short list of payments that settles
the trip.

Features:
    - Greedy largest-debtor / largest-creditor matching
    - Deterministic order: ties are broken by participant id
    - Ignores balances smaller than one cent
    - At most (creditors + debtors - 1) payments

Data Model:
    Input - balances (dict keyed by participant_id):
        Decimal net balance (positive = owed money, negative = owes money)

    Output - list of Settlement:
        - from_participant: string (debtor who pays)
        - to_participant: string (creditor who receives)
        - amount: Decimal

Known limitation:
    Finding the minimum number of payments is NP-hard (it requires
    partitioning balances into zero-sum subsets). The greedy match used here
    is not always minimal. Balances {A: 10, B: 7, C: 3, D: -8, E: -7, F: -5}
    can settle in four payments (E pays B 7, the rest nets among A, C, D
    and F), but the greedy pass emits five. A three-party cycle of equal
    debts nets every balance to zero and correctly produces no payments.

Functions:
    simplify: Convert balances into settlement payments.
    apply_settlements: Apply payments to balances and return the result.
"""

import logging
from decimal import Decimal

from models import EPSILON, Settlement, to_decimal
from validation import ensure_finite

logger = logging.getLogger(__name__)


def simplify(balances: dict) -> list[Settlement]:
    """
    Convert net balances into settlement payments.

    Uses a greedy algorithm:
        1. Drop balances within one cent of zero
        2. Split the rest into creditors (> 0.01) and debtors (< -0.01)
        3. Sort creditors by largest credit first and debtors by largest
           debt first, breaking ties by participant id
        4. The head debtor pays the head creditor the smaller of the two
           magnitudes; whichever head is within one cent of zero is dropped
        5. Repeat until either list is empty

    Args:
        balances: Net balance keyed by participant_id. Values may be Decimal,
            int, float or numeric strings.

    Returns:
        list[Settlement]: Payments in the order they were matched.

    Raises:
        InvalidAmountError: If a balance is NaN or infinite.

    Notes:
        - Does NOT modify input balances
        - Amounts are exact; round them at display time
    """
    # Remaining magnitudes are tracked as positive amounts
    creditors = []
    debtors = []

    for participant_id, balance in balances.items():
        net = ensure_finite(to_decimal(balance), "balance")

        # Anything within a cent of zero is already settled
        if net > EPSILON:
            creditors.append([participant_id, net])
        elif net < -EPSILON:
            debtors.append([participant_id, -net])

    # Largest magnitude first, participant id breaks ties
    creditors.sort(key=lambda c: (-c[1], c[0]))
    debtors.sort(key=lambda d: (-d[1], d[0]))

    settlements = []
    debtor_idx = 0
    creditor_idx = 0

    # Match the largest debtor with the largest creditor
    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor_id, debt_amount = debtors[debtor_idx]
        creditor_id, credit_amount = creditors[creditor_idx]

        # Pay whichever side is smaller in full
        amount = min(debt_amount, credit_amount)
        settlements.append(Settlement(
            from_participant=debtor_id,
            to_participant=creditor_id,
            amount=amount
        ))

        # Update remaining balances
        debtors[debtor_idx][1] = debt_amount - amount
        creditors[creditor_idx][1] = credit_amount - amount

        # Move past a head once it is within a cent of settled
        if debtors[debtor_idx][1] <= EPSILON:
            debtor_idx += 1
        if creditors[creditor_idx][1] <= EPSILON:
            creditor_idx += 1

    logger.debug("Simplified %d creditors and %d debtors into %d settlements",
                 len(creditors), len(debtors), len(settlements))
    return settlements


def apply_settlements(balances: dict, settlements) -> dict[str, Decimal]:
    """
    Apply settlement payments to a balance map.

    The payer's balance rises by the amount and the receiver's falls by it,
    so a complete settlement list brings every balance to within one cent of
    zero.

    Args:
        balances: Net balance keyed by participant_id.
        settlements: Payments to apply.

    Returns:
        dict[str, Decimal]: A new balance map; the input is not modified.
    """
    result = {participant_id: to_decimal(value) for participant_id, value in balances.items()}

    for settlement in settlements:
        result[settlement.from_participant] = (
            result.get(settlement.from_participant, Decimal("0")) + settlement.amount
        )
        result[settlement.to_participant] = (
            result.get(settlement.to_participant, Decimal("0")) - settlement.amount
        )

    return result
