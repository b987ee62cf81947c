"""
Pricing Module

Distance and tier based pricing for charter bookings:

- Transport flights: great-circle distance between two entries of the static
  location table, converted to flight time at a reference cruise speed and
  billed at a reference hourly rate, plus a per-extra-passenger fee and a
  round-trip multiplier
- Experiences: passenger-range pricing tiers, falling back to a per-passenger
  base price

Key Components:
- locations.py: static airport / point-of-interest table
- service.py: pricing functions and the PricingService used by bookings
- router.py: quote endpoints
- schemas.py: Pydantic models for rates, breakdowns and quotes
"""

from .router import router
from .service import (
    PricingService, compute_transport_price, compute_experience_price,
    haversine_km, select_tier, rates_from_settings
)
from .schemas import PricingBreakdown, PricingRates, PricingTier, TransportQuoteRequest, ExperienceQuote
from .locations import LOCATION_COORDINATES, Location, find_location, list_locations

__all__ = [
    "router",
    "PricingService",
    "compute_transport_price",
    "compute_experience_price",
    "haversine_km",
    "select_tier",
    "rates_from_settings",
    "PricingBreakdown",
    "PricingRates",
    "PricingTier",
    "TransportQuoteRequest",
    "ExperienceQuote",
    "LOCATION_COORDINATES",
    "Location",
    "find_location",
    "list_locations"
]
