from pydantic import BaseModel, Field, validator, model_validator
from typing import List, Optional, Dict, Literal, Any, Union
from typing_extensions import Annotated
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from src.transactions.schemas import PaymentMethod, PaymentStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

class BookingType(str, Enum):
    """Booking type enumeration"""
    TRANSPORT = "transport"
    EXPERIENCE = "experience"

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class BookingEventType(str, Enum):
    """Events recorded against a booking; all but create and pay move its status"""
    CREATE = "create"
    APPROVE = "approve"
    REQUEST_REVISION = "request_revision"
    ACCEPT_REVISION = "accept_revision"
    DECLINE_REVISION = "decline_revision"
    ASSIGN_CREW = "assign_crew"
    COMPLETE = "complete"
    CANCEL = "cancel"
    PAY = "pay"

class RevisionOutcome(str, Enum):
    """Resolution of an admin revision proposal"""
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    SUPERSEDED = "superseded"

# Booking Request Models
class PassengerDetail(BaseModel):
    """Manifest entry for one passenger"""
    name: str = Field(..., min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=120)
    passport: Optional[str] = None
    emergency_contact: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    special_requests: Optional[str] = None

class AddonSelection(BaseModel):
    """Catalogue add-on chosen for a booking"""
    addon_id: int
    quantity: int = Field(1, ge=1)

class BookingCreateBase(BaseModel):
    scheduled_date: date
    scheduled_time: str = Field(..., pattern=TIME_PATTERN)
    passenger_count: int = Field(1, ge=1)
    notes: Optional[str] = None
    passenger_details: List[PassengerDetail] = []
    selected_addons: List[AddonSelection] = []

    @validator('selected_addons')
    def validate_unique_addons(cls, v):
        ids = [selection.addon_id for selection in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Select each add-on once and set its quantity')
        return v

    @model_validator(mode="after")
    def validate_manifest(self):
        if len(self.passenger_details) > self.passenger_count:
            raise ValueError('More passenger details than passengers')
        return self

    @validator('scheduled_date')
    def validate_not_past(cls, v):
        if v < date.today():
            raise ValueError('Cannot book for past dates')
        return v

class TransportBookingCreate(BookingCreateBase):
    """Request a point-to-point helicopter transfer"""
    booking_type: Literal["transport"] = "transport"
    from_location: str = Field(..., min_length=1)
    to_location: str = Field(..., min_length=1)
    is_round_trip: bool = False
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)

    @model_validator(mode="after")
    def validate_return_leg(self):
        if not self.is_round_trip:
            self.return_date = None
            self.return_time = None
            return self
        if self.return_date is None or self.return_time is None:
            raise ValueError('Round trips require return_date and return_time')
        if self.return_date < self.scheduled_date:
            raise ValueError('Return date must be on or after departure date')
        return self

    @property
    def same_day_return(self) -> bool:
        return self.is_round_trip and self.return_date == self.scheduled_date

class ExperienceBookingCreate(BookingCreateBase):
    """Request a catalogue experience"""
    booking_type: Literal["experience"] = "experience"
    experience_id: int

BookingCreate = Union[TransportBookingCreate, ExperienceBookingCreate]

class RevisionData(BaseModel):
    """Fields an admin may change; omitted fields keep the booking's current value"""
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    is_round_trip: Optional[bool] = None
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    passenger_count: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None

    @validator('scheduled_date')
    def validate_not_past(cls, v):
        if v is not None and v < date.today():
            raise ValueError('Cannot move a booking to a past date')
        return v

class RevisionRequest(BaseModel):
    """Admin proposal of changes to a pending booking"""
    revision_data: RevisionData
    revision_notes: str = Field(..., min_length=1)

class AssignCrewRequest(BaseModel):
    """Assign a pilot and an aircraft to an approved booking"""
    pilot_id: Optional[int] = None
    helicopter_id: Optional[int] = None
    admin_notes: Optional[str] = None

class PaymentRequest(BaseModel):
    """Pay for an approved booking"""
    payment_method: PaymentMethod
    reference: Optional[str] = None

class CancellationRequest(BaseModel):
    """Cancel a booking"""
    reason: Optional[str] = None

class BookingSearchFilters(BaseModel):
    """Booking list filters"""
    status: Optional[BookingStatus] = None
    booking_type: Optional[BookingType] = None
    payment_status: Optional[PaymentStatus] = None
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)

# Booking Response Models
class BookingResponseBase(BaseModel):
    id: str
    booking_reference: str
    client_id: int
    status: BookingStatus
    scheduled_date: date
    scheduled_time: str
    passenger_count: int
    notes: Optional[str] = None
    total_price: Decimal
    price_breakdown: Optional[Dict[str, Any]] = None
    payment_status: PaymentStatus
    pilot_id: Optional[int] = None
    helicopter_id: Optional[int] = None
    admin_notes: Optional[str] = None
    revision_requested: bool = False
    revision_notes: Optional[str] = None
    passenger_details: Optional[List[Dict[str, Any]]] = None
    selected_addons: Optional[List[Dict[str, Any]]] = None
    addon_total_price: Decimal = Decimal("0")
    revision_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TransportBookingResponse(BookingResponseBase):
    booking_type: Literal["transport"] = "transport"
    from_location: str
    to_location: str
    is_round_trip: bool = False
    return_date: Optional[date] = None
    return_time: Optional[str] = None

class ExperienceBookingResponse(BookingResponseBase):
    booking_type: Literal["experience"] = "experience"
    experience_id: int

BookingDetail = Union[TransportBookingResponse, ExperienceBookingResponse]
BookingResponse = Annotated[BookingDetail, Field(discriminator="booking_type")]

class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int
    limit: int
    offset: int

class PaymentResponse(BaseModel):
    """Outcome of a payment request"""
    booking: BookingResponse
    transaction_id: str
    payment_status: PaymentStatus
    new_balance: Optional[Decimal] = None
    message: str

class BookingRevisionResponse(BaseModel):
    id: int
    booking_id: str
    proposed_data: Dict[str, Any]
    proposed_price: Decimal
    notes: Optional[str] = None
    outcome: RevisionOutcome
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookingEventResponse(BaseModel):
    id: int
    booking_id: str
    event: BookingEventType
    from_status: Optional[BookingStatus] = None
    to_status: BookingStatus
    actor_id: Optional[int] = None
    actor_role: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookingActionsResponse(BaseModel):
    """Lifecycle events the caller may trigger next"""
    booking_id: str
    status: BookingStatus
    payment_status: PaymentStatus
    available_events: List[BookingEventType]
    can_pay: bool

class BookingHistoryResponse(BaseModel):
    booking_id: str
    events: List[BookingEventResponse]
    revisions: List[BookingRevisionResponse]

def serialize_booking(booking) -> BookingDetail:
    """Map an ORM booking onto the response model of its type"""
    if booking.booking_type == BookingType.TRANSPORT.value:
        return TransportBookingResponse.model_validate(booking)
    return ExperienceBookingResponse.model_validate(booking)

def booking_snapshot(booking) -> Dict[str, Any]:
    return serialize_booking(booking).model_dump(mode="json")
