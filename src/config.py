from pydantic_settings import BaseSettings
from decimal import Decimal
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./charter.db"
    DATABASE_ECHO: bool = False

    # Application
    PROJECT_NAME: str = "Charter Flight Booking API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Pricing reference rates (aircraft is assigned after the quote)
    CURRENCY: str = "USD"
    HOURLY_RATE: Decimal = Decimal("600")
    CRUISE_SPEED_KMH: float = 200.0
    PER_PASSENGER_FEE: Decimal = Decimal("50")
    INCLUDED_PASSENGERS: int = 1
    SAME_DAY_RETURN_MULTIPLIER: Decimal = Decimal("1.8")
    RETURN_MULTIPLIER: Decimal = Decimal("2.0")
    MAX_TRANSPORT_PASSENGERS: int = 6

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
