"""
Validation Module

This module holds the purchase validation rules and the error taxonomy used
when a purchase is admitted to a trip.

Features:
    - One exception class per rejection reason, each with a stable code
    - All errors are ValueErrors, so callers can catch them together
    - Sum checks use the shared 0.01 tolerance

Errors:
    MissingTitleError:          title is empty
    InvalidAmountError:         amount is non-positive or non-finite
    NoPayerSelectedError:       paid_by is empty or all zero
    NoDebtorSelectedError:      split_between is empty or all zero
    PayerSumMismatchError:      payer amounts do not add up to the total
    SplitSumMismatchError:      split amounts do not add up to the total
    PercentageSumMismatchError: split percentages do not add up to 100
    ReferentialIntegrityError:  an id is not a member of the trip

Functions:
    validate_purchase: Check a purchase against the trip's participant ids.
    ensure_finite: Reject NaN and infinite amounts.
"""

from decimal import Decimal

from models import EPSILON, Purchase


class PurchaseValidationError(ValueError):
    """Base class for every purchase rejection."""

    code = "invalid_purchase"


class MissingTitleError(PurchaseValidationError):
    code = "missing_title"


class InvalidAmountError(PurchaseValidationError):
    code = "invalid_amount"


class PayerSumMismatchError(PurchaseValidationError):
    code = "payer_sum_mismatch"


class SplitSumMismatchError(PurchaseValidationError):
    code = "split_sum_mismatch"


class NoPayerSelectedError(PurchaseValidationError):
    code = "no_payer_selected"


class NoDebtorSelectedError(PurchaseValidationError):
    code = "no_debtor_selected"


class PercentageSumMismatchError(PurchaseValidationError):
    code = "percentage_sum_mismatch"


class ReferentialIntegrityError(PurchaseValidationError):
    """A purchase references a participant id outside the trip."""

    code = "referential_integrity"

    def __init__(self, participant_id: str, purchase_id: str = None):
        self.participant_id = participant_id
        self.purchase_id = purchase_id
        where = f" in purchase {purchase_id}" if purchase_id else ""
        super().__init__(f"participant '{participant_id}'{where} is not a member of this trip")


def ensure_finite(amount: Decimal, field_name: str) -> Decimal:
    """
    Reject NaN and infinite amounts.

    Raises:
        InvalidAmountError: If amount is not finite.
    """
    if not amount.is_finite():
        raise InvalidAmountError(f"{field_name} must be a finite number, got: {amount}")
    return amount


def _check_shares(shares, total: Decimal, field_name: str, mismatch_error) -> None:
    for share in shares:
        ensure_finite(share.amount, f"{field_name} amount")
        if share.amount < 0:
            raise InvalidAmountError(
                f"{field_name} amount for '{share.participant_id}' must not be negative, got: {share.amount}"
            )

    share_sum = sum((s.amount for s in shares), Decimal("0"))
    if abs(share_sum - total) > EPSILON:
        raise mismatch_error(
            f"{field_name} amounts add up to {share_sum}, expected {total}"
        )


def validate_purchase(purchase: Purchase, participant_ids) -> Purchase:
    """
    Validate a purchase before it is admitted to a trip.

    Checks, in order:
        1. Title is a non-empty string
        2. total_amount is finite and > 0
        3. At least one payer and one debtor are selected, with a
           non-zero amount
        4. Payer amounts and split amounts each sum to the total (within 0.01)
        5. Every referenced participant is a member of the trip

    Args:
        purchase: The purchase to check.
        participant_ids: Ids of the trip's current members.

    Returns:
        Purchase: The same purchase, unchanged.

    Raises:
        PurchaseValidationError: The subclass naming the first failed rule.
    """
    if not isinstance(purchase.title, str) or not purchase.title.strip():
        raise MissingTitleError("title must be a non-empty string")

    total = ensure_finite(purchase.total_amount, "total_amount")
    if total <= 0:
        raise InvalidAmountError(f"total_amount must be a positive number, got: {total}")

    if not purchase.paid_by:
        raise NoPayerSelectedError("select at least one participant who paid")
    if not purchase.split_between:
        raise NoDebtorSelectedError("select at least one participant to split with")

    # A list of zero amounts selects no one
    if all(s.amount == 0 for s in purchase.paid_by):
        raise NoPayerSelectedError("at least one payer must pay a non-zero amount")
    if all(s.amount == 0 for s in purchase.split_between):
        raise NoDebtorSelectedError("at least one participant must owe a non-zero amount")

    _check_shares(purchase.paid_by, total, "paid_by", PayerSumMismatchError)
    _check_shares(purchase.split_between, total, "split_between", SplitSumMismatchError)

    members = set(participant_ids)
    # Sorted so the reported id does not depend on set ordering
    for participant_id in sorted(purchase.participant_ids()):
        if participant_id not in members:
            raise ReferentialIntegrityError(participant_id, purchase.purchase_id)

    return purchase
