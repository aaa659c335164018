"""
Trips Module

This module keeps trips, their participants and their purchases in memory.

Features:
    - Create trips with a shareable join code
    - Add participants directly or by join code
    - Edit a trip's name, description and glyph
    - Add and remove purchases, validated before admission
    - Stored payer and split amounts always sum exactly to the total
    - Sequential participant (P001) and purchase (E001) ids per trip

Data Model:
    Trip:
        - trip_id: string (trip_{short_uuid})
        - name: string
        - description: string or None
        - glyph: string or None
        - code: string (join code without look-alike characters)
        - created_at: string (ISO timestamp)
        - participants: dict of participant_id -> Participant
        - purchases: dict of purchase_id -> Purchase

Classes:
    TripRegistry: In-memory store of trips.

Notes:
    Nothing is persisted; a registry lives as long as its process.
"""

import logging
import re
import secrets
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from config.app_config import get_settings
from models import Participant, Purchase, Share, to_decimal
from validation import InvalidAmountError, PurchaseValidationError, validate_purchase

logger = logging.getLogger(__name__)

# No 0/O or 1/I, they are easy to misread when a code is shared aloud
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class TripNotFoundError(LookupError):
    """No trip matches the given id or join code."""


class PurchaseNotFoundError(LookupError):
    """The trip has no purchase with the given id."""


@dataclass
class Trip:
    """A group of participants sharing purchases."""

    trip_id: str
    name: str
    code: str
    description: Optional[str] = None
    glyph: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    participants: dict = field(default_factory=dict)
    purchases: dict = field(default_factory=dict)
    # Ids of removed purchases are never reused
    removed_purchase_ids: set = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "trip_id": self.trip_id,
            "name": self.name,
            "description": self.description,
            "glyph": self.glyph,
            "code": self.code,
            "created_at": self.created_at,
            "participant_count": len(self.participants),
            "purchase_count": len(self.purchases)
        }


def _validate_non_empty_string(value: str, field_name: str) -> str:
    """
    Validate that a string is non-empty and return it stripped.

    Raises:
        ValueError: If value is empty or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value.strip()


def _next_sequential_id(prefix: str, existing_ids) -> str:
    """
    Generate the next sequential id for a prefix.

    Logic:
        1. Extract the numeric suffix from ids matching {prefix}### format
        2. Find the highest existing number
        3. Return the next number with a zero-padded 3-digit suffix

    Ids that do not follow the format are ignored.
    """
    pattern = re.compile(rf"^{prefix}(\d+)$")
    max_num = 0
    for existing in existing_ids:
        match = pattern.match(existing)
        if match:
            max_num = max(max_num, int(match.group(1)))
    return f"{prefix}{max_num + 1:03d}"


def _to_shares(entries) -> tuple:
    """Convert Share objects or {participant_id, amount} dicts to Shares."""
    shares = []
    for entry in entries:
        if isinstance(entry, Share):
            shares.append(entry)
        else:
            shares.append(Share(participant_id=entry["participant_id"], amount=to_decimal(entry["amount"])))
    return tuple(shares)


def _fold_difference(shares: tuple, total: Decimal, field_name: str) -> tuple:
    """
    Make shares sum exactly to total.

    Validation lets a share list be off by up to 0.01. Left in place, those
    cents pile up across purchases and the balances stop summing to zero,
    so the difference is moved onto the largest share (the first one on a
    tie).

    Raises:
        InvalidAmountError: If the largest share is too small to absorb it.
    """
    difference = total - sum((s.amount for s in shares), Decimal("0"))
    if not difference:
        return shares

    largest = max(range(len(shares)), key=lambda i: shares[i].amount)
    adjusted = shares[largest].amount + difference
    if adjusted < 0:
        raise InvalidAmountError(f"{field_name} amounts are too small to add up to {total}")

    shares = list(shares)
    shares[largest] = replace(shares[largest], amount=adjusted)
    return tuple(shares)


class TripRegistry:
    """
    In-memory store of trips.

    A single lock guards the trip map. Returned lists are snapshots, so
    callers can compute balances from them without holding the lock.
    """

    def __init__(self):
        self._trips = {}
        self._lock = threading.Lock()

    def _generate_code(self) -> str:
        length = get_settings().join_code_length
        existing = {trip.code for trip in self._trips.values()}
        while True:
            code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))
            if code not in existing:
                return code

    def _get(self, trip_id: str) -> Trip:
        trip = self._trips.get(trip_id)
        if trip is None:
            raise TripNotFoundError(f"trip '{trip_id}' does not exist")
        return trip

    def create_trip(self, name: str, description: Optional[str] = None, glyph: Optional[str] = None) -> Trip:
        """
        Create a new trip with a fresh join code.

        Raises:
            ValueError: If name is empty.
        """
        name = _validate_non_empty_string(name, "name")

        with self._lock:
            trip = Trip(
                trip_id=f"trip_{uuid.uuid4().hex[:8]}",
                name=name,
                code=self._generate_code(),
                description=description.strip() if description else None,
                glyph=glyph
            )
            self._trips[trip.trip_id] = trip

        logger.info("Created trip %s (%s)", trip.trip_id, trip.name)
        return trip

    def get_trip(self, trip_id: str) -> Trip:
        """Get a trip by id. Raises TripNotFoundError if unknown."""
        with self._lock:
            return self._get(trip_id)

    def update_trip(
        self,
        trip_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        glyph: Optional[str] = None
    ) -> Trip:
        """
        Edit a trip's details.

        Args:
            trip_id: The ID of the trip.
            name: New name; must not be blank.
            description: New description; a blank string clears it.
            glyph: New emoji; a blank string clears it.

        Any argument left as None keeps its current value.

        Returns:
            Trip: The updated trip.

        Raises:
            ValueError: If name is given but blank.
            TripNotFoundError: If the trip does not exist.
        """
        if name is not None:
            name = _validate_non_empty_string(name, "name")

        with self._lock:
            trip = self._get(trip_id)
            if name is not None:
                trip.name = name
            if description is not None:
                trip.description = description.strip() or None
            if glyph is not None:
                trip.glyph = glyph.strip() or None

        logger.info("Updated trip %s (%s)", trip_id, trip.name)
        return trip

    def find_by_code(self, code: str) -> Trip:
        """Get a trip by join code, case-insensitively. Raises TripNotFoundError if unknown."""
        code = _validate_non_empty_string(code, "code").upper()
        with self._lock:
            for trip in self._trips.values():
                if trip.code == code:
                    return trip
        raise TripNotFoundError(f"no trip found with code '{code}'")

    def add_participant(
        self,
        trip_id: str,
        display_name: str,
        glyph: Optional[str] = None,
        participant_id: Optional[str] = None
    ) -> Participant:
        """
        Add a participant to a trip.

        Args:
            trip_id: The ID of the trip.
            display_name: Name shown to other members.
            glyph: Optional emoji.
            participant_id: Explicit id; generated (P001, P002, ...) if None.

        Returns:
            Participant: The new member.

        Raises:
            ValueError: If display_name is empty or participant_id is taken.
            TripNotFoundError: If the trip does not exist.
        """
        display_name = _validate_non_empty_string(display_name, "display_name")

        with self._lock:
            trip = self._get(trip_id)
            if participant_id is None:
                participant_id = _next_sequential_id("P", trip.participants)
            elif participant_id in trip.participants:
                raise ValueError(f"participant '{participant_id}' already exists in trip {trip_id}")

            participant = Participant(participant_id=participant_id, display_name=display_name, glyph=glyph)
            trip.participants[participant_id] = participant

        logger.info("Added participant %s to trip %s", participant_id, trip_id)
        return participant

    def join_trip(self, code: str, display_name: str, glyph: Optional[str] = None) -> tuple[Trip, Participant]:
        """Join the trip with the given code as a new participant."""
        trip = self.find_by_code(code)
        participant = self.add_participant(trip.trip_id, display_name, glyph=glyph)
        return trip, participant

    def get_participants(self, trip_id: str) -> list[Participant]:
        with self._lock:
            return list(self._get(trip_id).participants.values())

    def add_purchase(self, trip_id: str, title: str, total_amount, paid_by, split_between) -> Purchase:
        """
        Validate and record a purchase.

        Args:
            trip_id: The ID of the trip.
            title: Short description of the purchase.
            total_amount: Total amount (> 0).
            paid_by: Shares or {participant_id, amount} dicts of who paid.
            split_between: Shares or {participant_id, amount} dicts of who owes.

        Returns:
            Purchase: The stored purchase.

        Raises:
            PurchaseValidationError: If the purchase breaks a validation rule.
            TripNotFoundError: If the trip does not exist.
        """
        with self._lock:
            trip = self._get(trip_id)
            purchase = Purchase(
                purchase_id=_next_sequential_id("E", [*trip.purchases, *trip.removed_purchase_ids]),
                title=title.strip() if isinstance(title, str) else title,
                total_amount=to_decimal(total_amount),
                paid_by=_to_shares(paid_by),
                split_between=_to_shares(split_between)
            )
            try:
                validate_purchase(purchase, trip.participants)
                # Store exact sums so accepted tolerance never leaks into balances
                purchase = replace(
                    purchase,
                    paid_by=_fold_difference(purchase.paid_by, purchase.total_amount, "paid_by"),
                    split_between=_fold_difference(purchase.split_between, purchase.total_amount, "split_between")
                )
            except PurchaseValidationError as e:
                logger.warning("Rejected purchase for trip %s: %s (%s)", trip_id, e, e.code)
                raise
            trip.purchases[purchase.purchase_id] = purchase

        logger.info("Added purchase %s (%s) to trip %s", purchase.purchase_id, purchase.total_amount, trip_id)
        return purchase

    def remove_purchase(self, trip_id: str, purchase_id: str) -> Purchase:
        """
        Remove a purchase from a trip.

        Raises:
            TripNotFoundError: If the trip does not exist.
            PurchaseNotFoundError: If the trip has no such purchase.
        """
        with self._lock:
            trip = self._get(trip_id)
            if purchase_id not in trip.purchases:
                raise PurchaseNotFoundError(f"purchase '{purchase_id}' does not exist in trip {trip_id}")
            purchase = trip.purchases.pop(purchase_id)
            trip.removed_purchase_ids.add(purchase_id)

        logger.info("Removed purchase %s from trip %s", purchase_id, trip_id)
        return purchase

    def get_purchases(self, trip_id: str) -> list[Purchase]:
        with self._lock:
            return list(self._get(trip_id).purchases.values())
