"""
Trip Ledger - FastAPI Web Backend

This module serves as the main entry point for the shared trip ledger API.

Features:
    - RESTful API for managing trips, participants and purchases
    - Arbitrary payer splits and cost-sharing splits per purchase
    - Net balances and simplified settle-up payments
    - Analytics and transparency reports

Endpoints:
    POST   /trips                                  - Create a new trip
    POST   /trips/join                             - Join a trip by code
    GET    /trips/{trip_id}                        - Get trip details
    PATCH  /trips/{trip_id}                        - Edit name, description or glyph
    POST   /trips/{trip_id}/participants           - Add participant to trip
    GET    /trips/{trip_id}/participants           - List participants
    POST   /trips/{trip_id}/purchases              - Add purchase to trip
    GET    /trips/{trip_id}/purchases              - List purchases
    DELETE /trips/{trip_id}/purchases/{purchase_id} - Remove a purchase
    GET    /trips/{trip_id}/balances               - Net balance per participant
    GET    /trips/{trip_id}/settlements            - Payments that settle the trip
    GET    /trips/{trip_id}/summary                - Everything above plus analytics

Usage:
    uvicorn main:app --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from analytics import generate_analytics
from balances import compute_balances, summarize_balances
from config.app_config import get_settings
from config.logging_config import configure_logging
from explain import explain_all_participants
from settlement import simplify
from splits import ROLE_PAYER, ROLE_SPLIT, equal_split, split_by_percentages
from trips import PurchaseNotFoundError, TripNotFoundError, TripRegistry
from validation import PurchaseValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models for Request/Response Validation
# =============================================================================

class TripCreate(BaseModel):
    """Request model for creating a new trip."""
    name: str = Field(..., min_length=1, description="Trip name")
    description: Optional[str] = Field(None, description="Optional description")
    glyph: Optional[str] = Field(None, description="Optional emoji")


class TripUpdate(BaseModel):
    """Request model for editing a trip. Omitted fields are left as they are."""
    name: Optional[str] = Field(None, description="New trip name")
    description: Optional[str] = Field(None, description="New description, blank to clear")
    glyph: Optional[str] = Field(None, description="New emoji, blank to clear")


class TripResponse(BaseModel):
    """Response model for trip data."""
    trip_id: str
    name: str
    description: Optional[str]
    glyph: Optional[str]
    code: str
    created_at: str
    participant_count: int
    purchase_count: int


class ParticipantCreate(BaseModel):
    """Request model for adding a participant."""
    display_name: str = Field(..., min_length=1, description="Participant name")
    glyph: Optional[str] = Field(None, description="Optional emoji")


class JoinTripRequest(ParticipantCreate):
    """Request model for joining a trip by code."""
    code: str = Field(..., min_length=1, description="Trip join code")


class ParticipantResponse(BaseModel):
    """Response model for participant data."""
    participant_id: str
    display_name: str
    glyph: Optional[str]


class JoinTripResponse(BaseModel):
    """Response model for a successful join."""
    trip: TripResponse
    participant: ParticipantResponse


class ShareIn(BaseModel):
    """One payer or split entry."""
    participant_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)


class PurchaseCreate(BaseModel):
    """Request model for adding a purchase."""
    title: str = Field(..., description="Purchase title")
    total_amount: float = Field(..., description="Purchase total (must be > 0)")
    paid_by: list[ShareIn] = Field(default_factory=list, description="Who paid and how much")
    paid_by_percentages: Optional[dict[str, float]] = Field(
        None, description="Percent of the total each participant paid, instead of paid_by"
    )
    split_between: list[ShareIn] = Field(default_factory=list, description="Who owes and how much")
    split_equally: Optional[list[str]] = Field(
        None, description="Participant ids to split the total equally between, instead of split_between"
    )
    split_percentages: Optional[dict[str, float]] = Field(
        None, description="Percent of the total each participant owes, instead of split_between"
    )


class PurchaseResponse(BaseModel):
    """Response model for purchase data."""
    purchase_id: str
    title: str
    total_amount: float
    paid_by: list[dict]
    split_between: list[dict]
    created_at: str


class SettlementsResponse(BaseModel):
    """Response model for settle-up payments."""
    settlements: list


class SummaryResponse(BaseModel):
    """Response model for the full trip summary."""
    balances: dict
    settlements: list
    analytics: dict
    warnings: list
    explanations: list


# =============================================================================
# FastAPI Application
# =============================================================================

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.title,
    description="Shared trip expenses, balances and settle-up payments",
    version="1.0.0"
)

registry = TripRegistry()


@app.exception_handler(PurchaseValidationError)
async def purchase_validation_handler(request: Request, exc: PurchaseValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": exc.code})


@app.exception_handler(TripNotFoundError)
@app.exception_handler(PurchaseNotFoundError)
async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# =============================================================================
# Helper Functions
# =============================================================================

def _snapshot(trip_id: str) -> tuple[list, list]:
    """Fetch participants and purchases of a trip."""
    return registry.get_participants(trip_id), registry.get_purchases(trip_id)


def _settlements_as_dicts(balances: dict) -> list[dict]:
    return [s.to_dict() for s in simplify(balances)]


# =============================================================================
# API Endpoints
# =============================================================================

@app.post("/trips", response_model=TripResponse, status_code=201)
async def create_trip(trip_data: TripCreate):
    """Create a new trip and return it with its join code."""
    try:
        trip = registry.create_trip(trip_data.name, trip_data.description, trip_data.glyph)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TripResponse(**trip.to_dict())


@app.post("/trips/join", response_model=JoinTripResponse, status_code=201)
async def join_trip(join_data: JoinTripRequest):
    """
    Join a trip by its code.

    Request flow:
        1. Look up the trip by code (404 if unknown)
        2. Add the caller as a new participant
        3. Return the trip and the new participant
    """
    try:
        trip, participant = registry.join_trip(join_data.code, join_data.display_name, join_data.glyph)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JoinTripResponse(
        trip=TripResponse(**trip.to_dict()),
        participant=ParticipantResponse(**participant.to_dict())
    )


@app.get("/trips/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: str):
    return TripResponse(**registry.get_trip(trip_id).to_dict())


@app.patch("/trips/{trip_id}", response_model=TripResponse)
async def update_trip(trip_id: str, trip_data: TripUpdate):
    """Edit a trip's name, description or glyph."""
    try:
        trip = registry.update_trip(trip_id, trip_data.name, trip_data.description, trip_data.glyph)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TripResponse(**trip.to_dict())


@app.post("/trips/{trip_id}/participants", response_model=ParticipantResponse, status_code=201)
async def add_trip_participant(trip_id: str, participant_data: ParticipantCreate):
    """Add a participant to a trip."""
    try:
        participant = registry.add_participant(trip_id, participant_data.display_name, participant_data.glyph)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ParticipantResponse(**participant.to_dict())


@app.get("/trips/{trip_id}/participants", response_model=list[ParticipantResponse])
async def list_trip_participants(trip_id: str):
    return [ParticipantResponse(**p.to_dict()) for p in registry.get_participants(trip_id)]


@app.post("/trips/{trip_id}/purchases", response_model=PurchaseResponse, status_code=201)
async def add_trip_purchase(trip_id: str, purchase_data: PurchaseCreate):
    """
    Add a purchase to a trip.

    Request flow:
        1. Validate input shape using Pydantic model
        2. Build payer shares from paid_by_percentages if given
        3. Build split shares from split_equally or split_percentages if given
        4. Validate sums and membership in the registry (400 with an
           error code on failure)
        5. Return created purchase data
    """
    total = purchase_data.total_amount

    # Percentages replace the explicit payer list
    if purchase_data.paid_by_percentages is not None:
        paid_by = split_by_percentages(total, purchase_data.paid_by_percentages, role=ROLE_PAYER)
    else:
        paid_by = [s.model_dump() for s in purchase_data.paid_by]

    # An equal split wins over percentages, which win over explicit amounts
    if purchase_data.split_equally is not None:
        split_between = equal_split(total, purchase_data.split_equally)
    elif purchase_data.split_percentages is not None:
        split_between = split_by_percentages(total, purchase_data.split_percentages, role=ROLE_SPLIT)
    else:
        split_between = [s.model_dump() for s in purchase_data.split_between]

    purchase = registry.add_purchase(
        trip_id=trip_id,
        title=purchase_data.title,
        total_amount=total,
        paid_by=paid_by,
        split_between=split_between
    )
    return PurchaseResponse(**purchase.to_dict())


@app.get("/trips/{trip_id}/purchases", response_model=list[PurchaseResponse])
async def list_trip_purchases(trip_id: str):
    return [PurchaseResponse(**p.to_dict()) for p in registry.get_purchases(trip_id)]


@app.delete("/trips/{trip_id}/purchases/{purchase_id}", status_code=204)
async def remove_trip_purchase(trip_id: str, purchase_id: str):
    registry.remove_purchase(trip_id, purchase_id)
    return Response(status_code=204)


@app.get("/trips/{trip_id}/balances")
async def get_trip_balances(trip_id: str):
    """Get paid, share and net totals per participant."""
    participants, purchases = _snapshot(trip_id)
    return summarize_balances(participants, purchases)


@app.get("/trips/{trip_id}/settlements", response_model=SettlementsResponse)
async def get_trip_settlements(trip_id: str):
    """Get the payments that settle the trip."""
    participants, purchases = _snapshot(trip_id)
    balances = compute_balances(participants, purchases)
    return SettlementsResponse(settlements=_settlements_as_dicts(balances))


@app.get("/trips/{trip_id}/summary", response_model=SummaryResponse)
async def get_trip_summary(trip_id: str):
    """
    Calculate all results for a trip.

    Request flow:
        1. Snapshot participants and purchases
        2. Calculate balances (balances.py)
        3. Simplify settlements (settlement.py)
        4. Generate analytics (analytics.py)
        5. Generate explanations (explain.py)
        6. Return complete results
    """
    participants, purchases = _snapshot(trip_id)

    balances = summarize_balances(participants, purchases)
    settlements = _settlements_as_dicts(compute_balances(participants, purchases))
    analytics_result = generate_analytics(participants, purchases)
    explanations = explain_all_participants(participants, purchases, balances)

    logger.debug("Summary for trip %s: %d settlements, %d warnings",
                 trip_id, len(settlements), len(analytics_result["warnings"]))

    return SummaryResponse(
        balances=balances,
        settlements=settlements,
        analytics=analytics_result["analytics"],
        warnings=analytics_result["warnings"],
        explanations=explanations
    )


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"status": "healthy", "service": settings.title}


# =============================================================================
# Run with: python main.py
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=True)
