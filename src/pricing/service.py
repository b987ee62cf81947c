import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, selectinload

from src.config import Settings, settings
from src.exceptions import AddonNotFound, ExperienceNotFound, InvalidPassengerCount, UnresolvableLocation
from src.models import Addon, Experience
from src.pricing.locations import find_location
from src.pricing.schemas import (
    AddonCreate, AddonUpdate, ExperienceQuote, PricingBreakdown, PricingRates, PricingTier,
    TransportQuoteRequest
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371

def rates_from_settings(config: Settings = settings) -> PricingRates:
    return PricingRates(
        hourly_rate=config.HOURLY_RATE,
        cruise_speed_kmh=config.CRUISE_SPEED_KMH,
        per_passenger_fee=config.PER_PASSENGER_FEE,
        included_passengers=config.INCLUDED_PASSENGERS,
        same_day_return_multiplier=config.SAME_DAY_RETURN_MULTIPLIER,
        return_multiplier=config.RETURN_MULTIPLIER,
        max_passengers=config.MAX_TRANSPORT_PASSENGERS,
        currency=config.CURRENCY
    )

def round_currency(value: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, halves away from zero"""
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres"""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat/2) * math.sin(dlat/2) +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon/2) * math.sin(dlon/2))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))
    return EARTH_RADIUS_KM * c

def compute_transport_price(
    from_location: str,
    to_location: str,
    passenger_count: int,
    is_round_trip: bool = False,
    same_day_return: bool = False,
    rates: Optional[PricingRates] = None
) -> PricingBreakdown:
    """Price a point-to-point flight between two known locations.

    The hourly rate and cruise speed are fleet-wide reference values. A round
    trip multiplies the one-way subtotal (1.8 when the return is on the
    departure date, 2.0 otherwise); the distance itself is never doubled.
    """
    rates = rates or rates_from_settings()

    origin = find_location(from_location)
    if origin is None:
        raise UnresolvableLocation(from_location)
    destination = find_location(to_location)
    if destination is None:
        raise UnresolvableLocation(to_location)
    if origin.code == destination.code:
        raise UnresolvableLocation(
            to_location, f"Origin and destination are both '{origin.code}'"
        )

    if passenger_count < 1 or passenger_count > rates.max_passengers:
        raise InvalidPassengerCount(passenger_count, 1, rates.max_passengers)

    distance_km = haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
    flight_time_minutes = distance_km / rates.cruise_speed_kmh * 60

    base_price = round_currency(
        Decimal(str(flight_time_minutes)) / Decimal("60") * rates.hourly_rate
    )
    extra_passengers = max(0, passenger_count - rates.included_passengers)
    passenger_surcharge = rates.per_passenger_fee * extra_passengers

    same_day = is_round_trip and same_day_return
    multiplier = Decimal("1")
    if is_round_trip:
        multiplier = rates.same_day_return_multiplier if same_day else rates.return_multiplier

    total_price = round_currency((base_price + passenger_surcharge) * multiplier)

    return PricingBreakdown(
        from_code=origin.code,
        from_name=origin.name,
        to_code=destination.code,
        to_name=destination.name,
        distance_km=round(distance_km, 2),
        flight_time_minutes=round(flight_time_minutes, 1),
        passenger_count=passenger_count,
        base_price=base_price,
        passenger_surcharge=passenger_surcharge,
        is_round_trip=is_round_trip,
        same_day_return=same_day,
        round_trip_multiplier=multiplier,
        total_price=total_price,
        currency=rates.currency
    )

def select_tier(passenger_count: int, tiers: Sequence) -> Optional[object]:
    """Pick the tier for a passenger count.

    Exact range match first, then the tier with the smallest max that still
    seats everyone, else clamp to the tier with the largest max.
    """
    if not tiers:
        return None

    for tier in tiers:
        if tier.min_passengers <= passenger_count <= tier.max_passengers:
            return tier

    covering = [t for t in tiers if t.max_passengers >= passenger_count]
    if covering:
        return min(covering, key=lambda t: t.max_passengers)

    return max(tiers, key=lambda t: t.max_passengers)

def compute_experience_price(
    base_price: Decimal,
    passenger_count: int,
    tiers: Optional[Iterable] = None,
    min_passengers: int = 1,
    max_passengers: Optional[int] = None
) -> Decimal:
    """Total price of an experience; tier prices are group totals"""
    upper = max_passengers if max_passengers is not None else passenger_count
    if passenger_count < min_passengers or passenger_count > upper:
        raise InvalidPassengerCount(passenger_count, min_passengers, upper)

    tier = select_tier(passenger_count, list(tiers or []))
    if tier is not None:
        return Decimal(tier.price).quantize(Decimal("0.01"))

    return (Decimal(base_price) * passenger_count).quantize(Decimal("0.01"))

class PricingService:
    """Quotes for transport flights and catalogue experiences"""

    def __init__(self, db: Session, rates: Optional[PricingRates] = None):
        self.db = db
        self.rates = rates or rates_from_settings()

    def quote_transport(self, request: TransportQuoteRequest) -> PricingBreakdown:
        breakdown = compute_transport_price(
            request.from_location,
            request.to_location,
            request.passenger_count,
            is_round_trip=request.is_round_trip,
            same_day_return=request.same_day_return,
            rates=self.rates
        )
        logger.info(
            "Quoted %s -> %s for %d pax: %s %s",
            breakdown.from_code, breakdown.to_code, request.passenger_count,
            breakdown.total_price, breakdown.currency
        )
        return breakdown

    def get_experience(self, experience_id: int) -> Experience:
        experience = self.db.query(Experience).options(
            selectinload(Experience.pricing_tiers)
        ).filter(
            Experience.id == experience_id,
            Experience.is_active == True
        ).first()

        if not experience:
            raise ExperienceNotFound(experience_id)
        return experience

    def price_experience(self, experience: Experience, passenger_count: int) -> Decimal:
        return compute_experience_price(
            experience.base_price,
            passenger_count,
            experience.pricing_tiers,
            min_passengers=experience.min_passengers,
            max_passengers=experience.max_passengers
        )

    def quote_experience(self, experience_id: int, passenger_count: int) -> ExperienceQuote:
        experience = self.get_experience(experience_id)
        total_price = self.price_experience(experience, passenger_count)
        tier = select_tier(passenger_count, experience.pricing_tiers)

        return ExperienceQuote(
            experience_id=experience.id,
            experience_name=experience.name,
            passenger_count=passenger_count,
            total_price=total_price,
            price_per_passenger=round_currency(total_price / passenger_count),
            tier_used=PricingTier.model_validate(tier) if tier is not None else None,
            currency=self.rates.currency
        )

    # Add-on catalogue
    def list_addons(self, include_inactive: bool = False) -> List[Addon]:
        query = self.db.query(Addon)
        if not include_inactive:
            query = query.filter(Addon.is_active == True)
        return query.order_by(Addon.category, Addon.name).all()

    def get_addon(self, addon_id: int) -> Addon:
        addon = self.db.query(Addon).filter(Addon.id == addon_id).first()
        if not addon:
            raise AddonNotFound(addon_id)
        return addon

    def create_addon(self, request: AddonCreate) -> Addon:
        addon = Addon(**request.model_dump(), is_active=True)
        self.db.add(addon)
        self.db.commit()
        self.db.refresh(addon)
        logger.info("Add-on %s created: %s at %s", addon.id, addon.name, addon.price)
        return addon

    def update_addon(self, addon_id: int, request: AddonUpdate) -> Addon:
        addon = self.get_addon(addon_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
            setattr(addon, field, value)
        self.db.commit()
        self.db.refresh(addon)
        return addon

    def delete_addon(self, addon_id: int) -> None:
        """Remove an add-on; bookings keep the priced lines they were created with"""
        addon = self.get_addon(addon_id)
        self.db.delete(addon)
        self.db.commit()
        logger.info("Add-on %s deleted", addon_id)

    def price_addons(self, selections: Iterable) -> Tuple[List[Dict[str, Any]], Decimal]:
        """Price add-on selections against the active catalogue.

        Unit prices always come from the catalogue; each line is stored on the
        booking so later catalogue edits do not change what was quoted.
        """
        selections = list(selections or [])
        total = Decimal("0.00")
        if not selections:
            return [], total

        ids = [selection.addon_id for selection in selections]
        addons = {
            addon.id: addon
            for addon in self.db.query(Addon).filter(Addon.id.in_(ids), Addon.is_active == True)
        }

        lines = []
        for selection in selections:
            addon = addons.get(selection.addon_id)
            if addon is None:
                raise AddonNotFound(selection.addon_id)
            unit_price = Decimal(addon.price).quantize(Decimal("0.01"))
            line_total = unit_price * selection.quantity
            lines.append({
                "addon_id": addon.id,
                "name": addon.name,
                "category": addon.category,
                "quantity": selection.quantity,
                "unit_price": str(unit_price),
                "line_total": str(line_total)
            })
            total += line_total
        return lines, total
