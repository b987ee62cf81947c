from dataclasses import dataclass
from typing import Dict, List, Optional

@dataclass(frozen=True)
class Location:
    code: str
    name: str
    lat: float
    lng: float
    kind: str = "poi"

# Airports and named points of interest served by the charter fleet
LOCATION_COORDINATES: Dict[str, Location] = {
    loc.code: loc for loc in [
        # Airports
        Location("GUA", "La Aurora International Airport, Guatemala City", 14.5833, -90.5275, "airport"),
        Location("FRS", "Mundo Maya International Airport, Flores", 16.9183, -89.8942, "airport"),
        Location("PBR", "Puerto Barrios Airport", 15.7306, -88.5839, "airport"),
        Location("RER", "Retalhuleu Airport", 14.5211, -91.6972, "airport"),
        Location("CBV", "Cobán Airport", 15.4689, -90.4067, "airport"),
        Location("HUG", "Huehuetenango Airport", 15.3272, -91.4628, "airport"),
        Location("ZAC", "Zacapa Airport", 14.9650, -89.5281, "airport"),
        Location("AAZ", "Quiché Airport", 15.0122, -91.1508, "airport"),
        # Points of interest
        Location("ANTIGUA", "Antigua Guatemala", 14.5586, -90.7339),
        Location("ATITLAN", "Lake Atitlán", 14.6906, -91.2025),
        Location("TIKAL", "Tikal", 17.2221, -89.6236),
        Location("SEMUC", "Semuc Champey", 15.4839, -90.2311),
        Location("MONTERRICO", "Monterrico Beach", 13.9333, -90.8333),
    ]
}

def find_location(code: Optional[str]) -> Optional[Location]:
    """Case-insensitive lookup; None when the code is not in the table"""
    if not code:
        return None
    return LOCATION_COORDINATES.get(code.strip().upper())

def list_locations(kind: Optional[str] = None) -> List[Location]:
    locations = sorted(LOCATION_COORDINATES.values(), key=lambda loc: loc.code)
    if kind:
        locations = [loc for loc in locations if loc.kind == kind]
    return locations
