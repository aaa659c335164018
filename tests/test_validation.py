from decimal import Decimal

import pytest

from conftest import make_purchase
from models import Purchase, Share
from validation import (
    InvalidAmountError,
    MissingTitleError,
    NoDebtorSelectedError,
    NoPayerSelectedError,
    PayerSumMismatchError,
    PurchaseValidationError,
    ReferentialIntegrityError,
    SplitSumMismatchError,
    validate_purchase,
)

MEMBERS = {"A", "B", "C"}


def test_valid_purchase_is_returned_unchanged(dinner):
    assert validate_purchase(dinner, MEMBERS) is dinner


def test_sums_within_one_cent_are_accepted():
    purchase = make_purchase("E001", 100, {"A": 100}, {"A": 33.33, "B": 33.33, "C": 33.33})
    validate_purchase(purchase, MEMBERS)


@pytest.mark.parametrize("title", ["", "   "])
def test_missing_title(title):
    purchase = make_purchase("E001", 10, {"A": 10}, {"B": 10}, title=title)
    with pytest.raises(MissingTitleError):
        validate_purchase(purchase, MEMBERS)


@pytest.mark.parametrize("total", ["0", "-5", "NaN", "Infinity"])
def test_invalid_total(total):
    purchase = Purchase("E001", "Taxi", Decimal(total), (Share("A", Decimal("1")),), (Share("B", Decimal("1")),))
    with pytest.raises(InvalidAmountError):
        validate_purchase(purchase, MEMBERS)


def test_negative_share_is_invalid():
    purchase = make_purchase("E001", 10, {"A": 15, "B": -5}, {"C": 10})
    with pytest.raises(InvalidAmountError):
        validate_purchase(purchase, MEMBERS)


def test_no_payer_selected():
    purchase = make_purchase("E001", 10, {}, {"B": 10})
    with pytest.raises(NoPayerSelectedError):
        validate_purchase(purchase, MEMBERS)


def test_no_debtor_selected():
    purchase = make_purchase("E001", 10, {"A": 10}, {})
    with pytest.raises(NoDebtorSelectedError):
        validate_purchase(purchase, MEMBERS)


def test_payer_sum_mismatch():
    purchase = make_purchase("E001", 100, {"A": 60, "B": 39.98}, {"C": 100})
    with pytest.raises(PayerSumMismatchError):
        validate_purchase(purchase, MEMBERS)


def test_split_sum_mismatch():
    purchase = make_purchase("E001", 100, {"A": 100}, {"B": 50, "C": 49})
    with pytest.raises(SplitSumMismatchError):
        validate_purchase(purchase, MEMBERS)


def test_unknown_participant_is_rejected():
    purchase = make_purchase("E007", 30, {"A": 30}, {"B": 15, "Z": 15})
    with pytest.raises(ReferentialIntegrityError) as exc_info:
        validate_purchase(purchase, MEMBERS)
    assert exc_info.value.participant_id == "Z"
    assert exc_info.value.purchase_id == "E007"


def test_errors_share_a_value_error_base_with_codes():
    purchase = make_purchase("E001", 10, {"A": 10}, {"B": 9})
    with pytest.raises(ValueError) as exc_info:
        validate_purchase(purchase, MEMBERS)
    assert isinstance(exc_info.value, PurchaseValidationError)
    assert exc_info.value.code == "split_sum_mismatch"


def test_all_zero_payers_select_no_one():
    purchase = make_purchase("E001", "0.004", {"A": 0}, {"B": "0.004"})
    with pytest.raises(NoPayerSelectedError):
        validate_purchase(purchase, MEMBERS)


def test_all_zero_split_selects_no_one():
    purchase = make_purchase("E001", "0.004", {"A": "0.004"}, {"A": 0, "B": 0})
    with pytest.raises(NoDebtorSelectedError):
        validate_purchase(purchase, MEMBERS)
