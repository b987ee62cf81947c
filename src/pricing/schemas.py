from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

class PricingRates(BaseModel):
    """Reference rates used for quotes before an aircraft is assigned"""
    hourly_rate: Decimal = Decimal("600")
    cruise_speed_kmh: float = Field(200.0, gt=0)
    per_passenger_fee: Decimal = Decimal("50")
    included_passengers: int = Field(1, ge=1)
    same_day_return_multiplier: Decimal = Decimal("1.8")
    return_multiplier: Decimal = Decimal("2.0")
    max_passengers: int = Field(6, ge=1)
    currency: str = "USD"

class PricingBreakdown(BaseModel):
    """Derived price of a transport booking"""
    from_code: str
    from_name: str
    to_code: str
    to_name: str
    distance_km: float
    flight_time_minutes: float
    passenger_count: int
    base_price: Decimal
    passenger_surcharge: Decimal
    is_round_trip: bool = False
    same_day_return: bool = False
    round_trip_multiplier: Decimal = Decimal("1")
    total_price: Decimal
    currency: str = "USD"

class PricingTier(BaseModel):
    """Passenger-range tier of an experience; price is the total for the group"""
    min_passengers: int = Field(..., ge=1)
    max_passengers: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)

    @validator('max_passengers')
    def validate_range(cls, v, values):
        if 'min_passengers' in values and v < values['min_passengers']:
            raise ValueError('max_passengers must be >= min_passengers')
        return v

    class Config:
        from_attributes = True

class TransportQuoteRequest(BaseModel):
    """Request a transport quote"""
    from_location: str = Field(..., min_length=1)
    to_location: str = Field(..., min_length=1)
    passenger_count: int = Field(1, ge=1)
    is_round_trip: bool = False
    scheduled_date: Optional[date] = None
    return_date: Optional[date] = None

    @property
    def same_day_return(self) -> bool:
        return (
            self.is_round_trip
            and self.scheduled_date is not None
            and self.scheduled_date == self.return_date
        )

class ExperienceQuote(BaseModel):
    """Quote for an experience at a given passenger count"""
    experience_id: int
    experience_name: str
    passenger_count: int
    total_price: Decimal
    price_per_passenger: Decimal
    tier_used: Optional[PricingTier] = None
    currency: str = "USD"

class LocationResponse(BaseModel):
    """Entry of the static location table"""
    code: str
    name: str
    lat: float
    lng: float
    kind: str

    class Config:
        from_attributes = True

class LocationListResponse(BaseModel):
    locations: List[LocationResponse]
    total: int

class AddonCreate(BaseModel):
    """New catalogue add-on; priced per unit"""
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=50)

    @validator('name', 'category')
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('must not be blank')
        return v.strip()

class AddonUpdate(BaseModel):
    """Partial change to an add-on; omitted fields are kept"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    is_active: Optional[bool] = None

class AddonResponse(BaseModel):
    id: int
    name: str
    description: str
    price: Decimal
    category: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AddonListResponse(BaseModel):
    addons: List[AddonResponse]
    total: int
