"""
Shared fixtures: in-memory SQLite database, API client and seeded users.

Every test gets fresh tables. Routes use the same session as the test so
data arranged in a test is visible to the request without extra commits.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sinergi.database import Base, enable_sqlite_foreign_keys, get_db
from sinergi.main import app
from sinergi.models import Property, Location, Asset
from sinergi.schemas import CreateUserRequest
from sinergi.services.users import create_user
from sinergi.utils.rate_limiter import limiter
from sinergi.utils.security import create_access_token

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(engine, "connect", enable_sqlite_foreign_keys)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

LOGIN_CODE = "123456"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


def make_user(db, email, role, property_ids=None, full_name=None, login_code=LOGIN_CODE):
    return create_user(db, CreateUserRequest(
        email=email,
        login_code=login_code,
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        property_ids=property_ids or [],
    ))


def auth_headers(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def hotel(db):
    prop = Property(name="Hotel Mawar", address="Jl. Melati 1, Bandung")
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


@pytest.fixture
def other_hotel(db):
    prop = Property(name="Hotel Anggrek", address="Jl. Kenanga 5, Bogor")
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


@pytest.fixture
def room(db, hotel):
    location = Location(property_id=hotel.id, name="Kamar 101", type="kamar")
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


@pytest.fixture
def ac_unit(db, hotel, room):
    asset = Asset(
        property_id=hotel.id,
        location_id=room.id,
        name="AC Daikin 1PK",
        category="peralatan_kamar",
        brand="Daikin",
        purchase_price=4500000,
        condition="baik",
        status="aktif",
    )
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


@pytest.fixture
def superadmin(db):
    return make_user(db, "admin@hotelmawar.co.id", "superadmin")


@pytest.fixture
def manager(db, hotel):
    return make_user(db, "manager@hotelmawar.co.id", "hotel_manager", [hotel.id])


@pytest.fixture
def supervisor(db, hotel):
    return make_user(db, "supervisor@hotelmawar.co.id", "supervisor", [hotel.id])


@pytest.fixture
def staff(db, hotel):
    return make_user(db, "staff@hotelmawar.co.id", "staff", [hotel.id])
