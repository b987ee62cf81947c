from decimal import Decimal

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.auth.schemas import Actor, ActorRole
from src.database import Base, get_db
from src.models import Addon, Experience, ExperiencePricingTier, Helicopter, User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- users and actors ---


def _user(db, email, role, balance="0"):
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, account_balance=Decimal(balance))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _user(db, "admin@charter.test", "admin")


@pytest.fixture
def client_user(db):
    return _user(db, "client@charter.test", "client")


@pytest.fixture
def other_client(db):
    return _user(db, "other@charter.test", "client")


@pytest.fixture
def pilot_user(db):
    return _user(db, "pilot@charter.test", "pilot")


@pytest.fixture
def admin(admin_user):
    return Actor(user_id=admin_user.id, role=ActorRole.ADMIN)


@pytest.fixture
def client(client_user):
    return Actor(user_id=client_user.id, role=ActorRole.CLIENT)


@pytest.fixture
def stranger(other_client):
    return Actor(user_id=other_client.id, role=ActorRole.CLIENT)


@pytest.fixture
def pilot(pilot_user):
    return Actor(user_id=pilot_user.id, role=ActorRole.PILOT)


# --- fleet and catalogue ---


@pytest.fixture
def helicopter(db):
    aircraft = Helicopter(registration="TG-HXB", model="Bell 407", capacity=6)
    db.add(aircraft)
    db.commit()
    db.refresh(aircraft)
    return aircraft


@pytest.fixture
def small_helicopter(db):
    aircraft = Helicopter(registration="TG-HXA", model="Robinson R44", capacity=2)
    db.add(aircraft)
    db.commit()
    db.refresh(aircraft)
    return aircraft


@pytest.fixture
def grounded_helicopter(db):
    aircraft = Helicopter(registration="TG-HXC", model="Airbus H125", capacity=5, is_active=False)
    db.add(aircraft)
    db.commit()
    db.refresh(aircraft)
    return aircraft


@pytest.fixture
def experience(db):
    tour = Experience(
        name="Lake Atitlan Scenic Tour",
        location="Lake Atitlan",
        base_price=Decimal("450"),
        min_passengers=1,
        max_passengers=4,
    )
    tour.pricing_tiers = [
        ExperiencePricingTier(min_passengers=1, max_passengers=1, price=Decimal("450")),
        ExperiencePricingTier(min_passengers=2, max_passengers=2, price=Decimal("800")),
        ExperiencePricingTier(min_passengers=3, max_passengers=4, price=Decimal("1100")),
    ]
    db.add(tour)
    db.commit()
    db.refresh(tour)
    return tour


@pytest.fixture
def untiered_experience(db):
    tour = Experience(
        name="Volcano Discovery Flight",
        location="Volcanic Highlands",
        base_price=Decimal("650"),
        min_passengers=1,
        max_passengers=3,
    )
    db.add(tour)
    db.commit()
    db.refresh(tour)
    return tour


@pytest.fixture
def addon(db):
    item = Addon(
        name="Aerial photo package",
        description="Edited photos of the flight",
        price=Decimal("25.00"),
        category="photography",
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def retired_addon(db):
    item = Addon(
        name="Champagne toast",
        description="No longer offered",
        price=Decimal("85.00"),
        category="catering",
        is_active=False,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


# --- HTTP client ---


@pytest.fixture
async def api(session_factory):
    from src.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    async with httpx.AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor) -> dict:
        return {"X-User-Id": str(actor.user_id), "X-User-Role": actor.role.value}
    return _headers
