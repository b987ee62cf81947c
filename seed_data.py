#!/usr/bin/env python3

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import sessionmaker
from src.database import Base, engine
from src.models import (
    User, Helicopter, Experience, ExperiencePricingTier, Transaction,
    BookingEvent, BookingRevision, Booking, Addon
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADDONS = [
    ("Champagne toast", "Bottle of sparkling wine served on landing", "85.00", "catering"),
    ("Gourmet picnic basket", "Local cheeses, fruit and pastries for the group", "120.00", "catering"),
    ("Aerial photo package", "Edited photos of the flight delivered within 48 hours", "150.00", "photography"),
    ("GoPro flight video", "Cockpit and cabin footage of the whole flight", "95.00", "photography"),
    ("Extra luggage", "Each additional checked bag above 15 kg", "40.00", "logistics"),
]

EXPERIENCES = [
    {
        "name": "Lake Atitlan Scenic Tour",
        "location": "Lake Atitlan",
        "description": "Fly over the volcanic lake surrounded by three volcanoes and traditional Mayan villages.",
        "duration_minutes": 90,
        "base_price": Decimal("450"),
        "max_passengers": 3,
        "tiers": [(1, 1, "450"), (2, 2, "800"), (3, 3, "1100")],
    },
    {
        "name": "Tikal Archaeological Adventure",
        "location": "Tikal National Park",
        "description": "Fly to the ancient Mayan city of Tikal and its temples above the jungle canopy.",
        "duration_minutes": 240,
        "base_price": Decimal("1200"),
        "max_passengers": 4,
        "tiers": [(1, 2, "2200"), (3, 4, "3800")],
    },
    {
        "name": "Volcano Discovery Flight",
        "location": "Volcanic Highlands",
        "description": "See Pacaya, Fuego and Acatenango from a safe aerial vantage point.",
        "duration_minutes": 120,
        "base_price": Decimal("650"),
        "max_passengers": 3,
        "tiers": [],
    },
    {
        "name": "Antigua Colonial Tour",
        "location": "Antigua Guatemala",
        "description": "Aerial views and a walking tour of the colonial centre of Antigua Guatemala.",
        "duration_minutes": 180,
        "base_price": Decimal("550"),
        "max_passengers": 4,
        "tiers": [(1, 2, "1000"), (3, 4, "1800")],
    },
    {
        "name": "Caribbean Coast Expedition",
        "location": "Rio Dulce",
        "description": "Cross-country flight to Rio Dulce and the Castillo de San Felipe.",
        "duration_minutes": 300,
        "base_price": Decimal("1500"),
        "max_passengers": 4,
        "tiers": [(1, 4, "5200")],
    },
    {
        "name": "Sunset Flight Experience",
        "location": "Guatemala City",
        "description": "Watch the sun set over Guatemala City and the surrounding volcanoes.",
        "duration_minutes": 60,
        "base_price": Decimal("350"),
        "max_passengers": 2,
        "tiers": [(1, 2, "600")],
    },
]

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🚁 Creating seed data for the charter booking service...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(BookingEvent).delete()
        db.query(BookingRevision).delete()
        db.query(Transaction).delete()
        db.query(Booking).delete()
        db.query(Addon).delete()
        db.query(ExperiencePricingTier).delete()
        db.query(Experience).delete()
        db.query(Helicopter).delete()
        db.query(User).delete()

        # 1. Users
        print("Creating users...")
        admin = User(email="admin@charter.test", full_name="System Administrator", role="admin")
        client = User(email="client@charter.test", full_name="Demo Client", phone="+502 5555 0101", role="client")
        pilots = [
            User(email="pilot.one@charter.test", full_name="Pilot One", role="pilot"),
            User(email="pilot.two@charter.test", full_name="Pilot Two", role="pilot"),
        ]
        db.add_all([admin, client] + pilots)
        db.flush()

        # Opening balance goes through the ledger so the balance reconciles
        opening = Decimal("5000.00")
        db.add(Transaction(
            user_id=client.id,
            type="deposit",
            amount=opening,
            payment_method="bank_transfer",
            status="approved",
            reference="Opening balance",
            processed_at=datetime.now(timezone.utc),
            processed_by=admin.id
        ))
        client.account_balance = opening

        # 2. Fleet
        print("Creating helicopters...")
        helicopters = [
            Helicopter(registration="TG-HXA", model="Robinson R44", capacity=3),
            Helicopter(registration="TG-HXB", model="Bell 407", capacity=6),
            Helicopter(registration="TG-HXC", model="Airbus H125", capacity=5, is_active=False),
        ]
        db.add_all(helicopters)
        db.flush()

        # 3. Experiences and pricing tiers
        print("Creating experiences...")
        experiences = []
        for data in EXPERIENCES:
            experience = Experience(
                name=data["name"],
                location=data["location"],
                description=data["description"],
                duration_minutes=data["duration_minutes"],
                base_price=data["base_price"],
                min_passengers=1,
                max_passengers=data["max_passengers"]
            )
            experience.pricing_tiers = [
                ExperiencePricingTier(min_passengers=low, max_passengers=high, price=Decimal(price))
                for low, high, price in data["tiers"]
            ]
            experiences.append(experience)
        db.add_all(experiences)

        # 4. Add-on catalogue
        print("Creating add-ons...")
        addons = [
            Addon(name=name, description=description, price=Decimal(price), category=category)
            for name, description, price, category in ADDONS
        ]
        db.add_all(addons)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - {2 + len(pilots)} users (admin id {admin.id}, client id {client.id})")
        print(f"  - {len(helicopters)} helicopters")
        print(f"  - {len(experiences)} experiences")
        print(f"  - {len(addons)} add-ons")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
