from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.pricing.locations import list_locations
from src.pricing.schemas import (
    AddonListResponse, ExperienceQuote, LocationListResponse, LocationResponse,
    PricingBreakdown, TransportQuoteRequest
)
from src.pricing.service import PricingService

router = APIRouter()

@router.get("/locations", response_model=LocationListResponse)
def get_locations(
    kind: Optional[str] = Query(None, description="Filter by 'airport' or 'poi'")
):
    """List locations that can be priced"""
    locations = [LocationResponse.model_validate(loc) for loc in list_locations(kind)]
    return LocationListResponse(locations=locations, total=len(locations))

@router.post("/transport", response_model=PricingBreakdown)
def quote_transport(
    request: TransportQuoteRequest,
    db: Session = Depends(get_db)
):
    """Price a transport flight between two known locations"""
    return PricingService(db).quote_transport(request)

@router.get("/experiences/{experience_id}", response_model=ExperienceQuote)
def quote_experience(
    experience_id: int,
    passengers: int = Query(1, ge=1, description="Number of passengers"),
    db: Session = Depends(get_db)
):
    """Price an experience for a passenger count"""
    return PricingService(db).quote_experience(experience_id, passengers)

@router.get("/addons", response_model=AddonListResponse)
def list_addons(db: Session = Depends(get_db)):
    """Active add-ons that can be selected when booking"""
    addons = PricingService(db).list_addons()
    return AddonListResponse(addons=addons, total=len(addons))
