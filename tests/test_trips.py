from decimal import Decimal

import pytest

from balances import compute_balances
from models import Share
from settlement import apply_settlements, simplify
from trips import JOIN_CODE_ALPHABET, PurchaseNotFoundError, TripNotFoundError, TripRegistry
from validation import InvalidAmountError, PayerSumMismatchError, ReferentialIntegrityError


@pytest.fixture
def registry():
    return TripRegistry()


@pytest.fixture
def trip(registry):
    trip = registry.create_trip("Weekend Getaway", "Trip to the mountains", "🏔️")
    for name in ("Alice", "Bob", "Carol"):
        registry.add_participant(trip.trip_id, name)
    return trip


def test_create_trip_assigns_id_and_code(registry):
    trip = registry.create_trip("  Beach Vacation ")

    assert trip.trip_id.startswith("trip_")
    assert trip.name == "Beach Vacation"
    assert len(trip.code) == 6
    assert set(trip.code) <= set(JOIN_CODE_ALPHABET)
    assert registry.get_trip(trip.trip_id) is trip


def test_create_trip_requires_name(registry):
    with pytest.raises(ValueError):
        registry.create_trip("   ")


def test_participant_ids_are_sequential(registry, trip):
    assert [p.participant_id for p in registry.get_participants(trip.trip_id)] == ["P001", "P002", "P003"]


def test_explicit_participant_id_must_be_unique(registry, trip):
    with pytest.raises(ValueError):
        registry.add_participant(trip.trip_id, "Imposter", participant_id="P001")


def test_join_by_code_is_case_insensitive(registry, trip):
    joined, participant = registry.join_trip(trip.code.lower(), "Dave", "🏄")

    assert joined is trip
    assert participant.participant_id == "P004"
    assert participant.glyph == "🏄"


def test_unknown_trip_and_code(registry):
    with pytest.raises(TripNotFoundError):
        registry.get_trip("trip_missing")
    with pytest.raises(TripNotFoundError):
        registry.join_trip("NOPE00", "Eve")
    with pytest.raises(TripNotFoundError):
        registry.get_purchases("trip_missing")


def test_add_purchase_from_dicts(registry, trip):
    purchase = registry.add_purchase(
        trip.trip_id, " Groceries ", 90,
        paid_by=[{"participant_id": "P001", "amount": 90}],
        split_between=[Share("P001", Decimal("30")), Share("P002", Decimal("30")), Share("P003", Decimal("30"))]
    )

    assert purchase.purchase_id == "E001"
    assert purchase.title == "Groceries"
    assert purchase.total_amount == Decimal("90")
    assert registry.get_purchases(trip.trip_id) == [purchase]


def test_invalid_purchase_is_not_stored(registry, trip):
    with pytest.raises(PayerSumMismatchError):
        registry.add_purchase(
            trip.trip_id, "Taxi", 40,
            paid_by=[{"participant_id": "P001", "amount": 30}],
            split_between=[{"participant_id": "P002", "amount": 40}]
        )
    assert registry.get_purchases(trip.trip_id) == []


def test_purchase_with_non_member_is_rejected(registry, trip):
    with pytest.raises(ReferentialIntegrityError):
        registry.add_purchase(
            trip.trip_id, "Taxi", 40,
            paid_by=[{"participant_id": "P001", "amount": 40}],
            split_between=[{"participant_id": "P999", "amount": 40}]
        )


def test_remove_purchase_and_ids_are_not_reused(registry, trip):
    shares = dict(
        paid_by=[{"participant_id": "P001", "amount": 10}],
        split_between=[{"participant_id": "P002", "amount": 10}]
    )
    registry.add_purchase(trip.trip_id, "Coffee", 10, **shares)
    second = registry.add_purchase(trip.trip_id, "Bagels", 10, **shares)

    removed = registry.remove_purchase(trip.trip_id, second.purchase_id)
    third = registry.add_purchase(trip.trip_id, "Juice", 10, **shares)

    assert removed is second
    assert third.purchase_id == "E003"
    assert [p.purchase_id for p in registry.get_purchases(trip.trip_id)] == ["E001", "E003"]


def test_remove_unknown_purchase(registry, trip):
    with pytest.raises(PurchaseNotFoundError):
        registry.remove_purchase(trip.trip_id, "E404")


def test_balances_follow_purchase_removal(registry, trip):
    purchase = registry.add_purchase(
        trip.trip_id, "Dinner", 150,
        paid_by=[{"participant_id": "P001", "amount": 150}],
        split_between=[{"participant_id": pid, "amount": 50} for pid in ("P001", "P002", "P003")]
    )
    participants = registry.get_participants(trip.trip_id)
    assert len(simplify(compute_balances(participants, registry.get_purchases(trip.trip_id)))) == 2

    registry.remove_purchase(trip.trip_id, purchase.purchase_id)
    assert simplify(compute_balances(participants, registry.get_purchases(trip.trip_id))) == []


def test_join_codes_avoid_look_alike_characters(registry):
    assert not set("0O1I") & set(JOIN_CODE_ALPHABET)
    codes = {registry.create_trip(f"Trip {n}").code for n in range(20)}
    assert all(not set("0O1I") & set(code) for code in codes)


def test_update_trip(registry, trip):
    updated = registry.update_trip(trip.trip_id, name=" Ski Weekend ", glyph="⛷️")

    assert updated is registry.get_trip(trip.trip_id)
    assert updated.name == "Ski Weekend"
    assert updated.glyph == "⛷️"
    assert updated.description == "Trip to the mountains"
    assert updated.code == trip.code


def test_update_trip_blank_description_clears_it(registry, trip):
    assert registry.update_trip(trip.trip_id, description="  ").description is None


def test_update_trip_rejects_blank_name(registry, trip):
    with pytest.raises(ValueError):
        registry.update_trip(trip.trip_id, name="   ")
    assert registry.get_trip(trip.trip_id).name == "Weekend Getaway"


def test_update_unknown_trip(registry):
    with pytest.raises(TripNotFoundError):
        registry.update_trip("trip_missing", name="Anything")


def test_stored_shares_sum_exactly_to_total(registry, trip):
    purchase = registry.add_purchase(
        trip.trip_id, "Cabin", 30,
        paid_by=[{"participant_id": "P001", "amount": 20}, {"participant_id": "P002", "amount": 10.01}],
        split_between=[
            {"participant_id": "P001", "amount": 10},
            {"participant_id": "P002", "amount": 10},
            {"participant_id": "P003", "amount": 9.99}
        ]
    )

    # The difference lands on the largest share, the first one on a tie
    assert [s.amount for s in purchase.paid_by] == [Decimal("19.99"), Decimal("10.01")]
    assert [s.amount for s in purchase.split_between] == [Decimal("10.01"), Decimal("10"), Decimal("9.99")]


def test_off_by_a_cent_purchases_still_settle(registry, trip):
    for title in ("Coffee", "Bagels", "Juice", "Muffins", "Tea"):
        registry.add_purchase(
            trip.trip_id, title, 10,
            paid_by=[{"participant_id": "P001", "amount": 10.01}],
            split_between=[{"participant_id": "P002", "amount": 10}]
        )
        registry.add_purchase(
            trip.trip_id, title, 10,
            paid_by=[{"participant_id": "P003", "amount": 10}],
            split_between=[{"participant_id": "P002", "amount": 5}, {"participant_id": "P001", "amount": 4.99}]
        )

    purchases = registry.get_purchases(trip.trip_id)
    for purchase in purchases:
        assert sum(s.amount for s in purchase.paid_by) == purchase.total_amount
        assert sum(s.amount for s in purchase.split_between) == purchase.total_amount

    balances = compute_balances(registry.get_participants(trip.trip_id), purchases)
    assert sum(balances.values()) == 0

    settled = apply_settlements(balances, simplify(balances))
    assert all(abs(value) <= Decimal("0.01") for value in settled.values())


def test_share_too_small_to_absorb_difference(registry, trip):
    with pytest.raises(InvalidAmountError):
        registry.add_purchase(
            trip.trip_id, "Gum", 0.005,
            paid_by=[{"participant_id": "P001", "amount": 0.005}],
            split_between=[{"participant_id": pid, "amount": 0.005} for pid in ("P001", "P002", "P003")]
        )
    assert registry.get_purchases(trip.trip_id) == []
