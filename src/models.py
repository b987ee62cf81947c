import uuid

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer, "sqlite")

def _uuid() -> str:
    return str(uuid.uuid4())

# ================================
# Users & Balances
# ================================
class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("account_balance >= 0", name="ck_users_balance_non_negative"),
    )

    id = Column(BigIntId, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50))
    role = Column(String(20), nullable=False, default="client", index=True)
    account_balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    transactions = relationship("Transaction", back_populates="user", foreign_keys="Transaction.user_id")

# ================================
# Experiences & Pricing Tiers
# ================================
class Experience(Base):
    __tablename__ = "experiences"

    id = Column(BigIntId, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False, default="")
    description = Column(Text)
    duration_minutes = Column(Integer)
    base_price = Column(Numeric(12, 2), nullable=False)
    min_passengers = Column(Integer, nullable=False, default=1)
    max_passengers = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    pricing_tiers = relationship(
        "ExperiencePricingTier",
        back_populates="experience",
        order_by="ExperiencePricingTier.min_passengers",
        cascade="all, delete-orphan"
    )

class ExperiencePricingTier(Base):
    __tablename__ = "experience_pricing_tiers"

    id = Column(BigIntId, primary_key=True, index=True)
    experience_id = Column(BigIntId, ForeignKey("experiences.id"), nullable=False, index=True)
    min_passengers = Column(Integer, nullable=False)
    max_passengers = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    # Relationships
    experience = relationship("Experience", back_populates="pricing_tiers")

# ================================
# Add-on Catalogue
# ================================
class Addon(Base):
    __tablename__ = "addons"

    id = Column(BigIntId, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Fleet
# ================================
class Helicopter(Base):
    __tablename__ = "helicopters"

    id = Column(BigIntId, primary_key=True, index=True)
    registration = Column(String(20), unique=True, nullable=False)
    model = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# ================================
# Bookings (single-table, discriminated by booking_type)
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    booking_type = Column(String(20), nullable=False, index=True)
    client_id = Column(BigIntId, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=False)
    passenger_count = Column(Integer, nullable=False, default=1)
    notes = Column(Text)
    passenger_details = Column(JSON, default=list)
    selected_addons = Column(JSON, default=list)
    addon_total_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False)
    price_breakdown = Column(JSON)
    payment_status = Column(String(20), nullable=False, default="unpaid", index=True)
    pilot_id = Column(BigIntId, ForeignKey("users.id"))
    helicopter_id = Column(BigIntId, ForeignKey("helicopters.id"))
    admin_notes = Column(Text)
    revision_requested = Column(Boolean, nullable=False, default=False)
    revision_notes = Column(Text)
    revision_data = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("User", foreign_keys=[client_id])
    pilot = relationship("User", foreign_keys=[pilot_id])
    helicopter = relationship("Helicopter")
    revisions = relationship(
        "BookingRevision",
        back_populates="booking",
        order_by="BookingRevision.id",
        cascade="all, delete-orphan"
    )
    events = relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.id",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"polymorphic_on": booking_type}

class TransportBooking(Booking):
    from_location = Column(String(20))
    to_location = Column(String(20))
    is_round_trip = Column(Boolean, default=False)
    return_date = Column(Date)
    return_time = Column(String(5))

    __mapper_args__ = {"polymorphic_identity": "transport"}

class ExperienceBooking(Booking):
    experience_id = Column(BigIntId, ForeignKey("experiences.id"), index=True)

    experience = relationship("Experience")

    __mapper_args__ = {"polymorphic_identity": "experience"}

class BookingRevision(Base):
    __tablename__ = "booking_revisions"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    proposed_data = Column(JSON, nullable=False)
    proposed_price = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text)
    outcome = Column(String(20), nullable=False, default="proposed", index=True)
    created_by = Column(BigIntId)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    resolved_at = Column(DateTime(timezone=True))

    # Relationships
    booking = relationship("Booking", back_populates="revisions")

class BookingEvent(Base):
    __tablename__ = "booking_events"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    event = Column(String(30), nullable=False, index=True)
    from_status = Column(String(30))
    to_status = Column(String(30), nullable=False)
    actor_id = Column(BigIntId)
    actor_role = Column(String(20))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    booking = relationship("Booking", back_populates="events")

# ================================
# Ledger
# ================================
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(BigIntId, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), index=True)
    type = Column(String(20), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    reference = Column(String(255))
    admin_notes = Column(Text)
    processed_at = Column(DateTime(timezone=True))
    processed_by = Column(BigIntId)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="transactions", foreign_keys=[user_id])
    booking = relationship("Booking")
