import os

os.environ.setdefault("JWT_SECRET", "test-secret")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.security import Actor
from app.db.base import get_db, init_db
from app.db.models.address import Address
from app.db.models.category import Category
from app.db.models.enums import ApprovalStatus, Role
from app.db.models.provider import ServiceProvider
from app.db.models.user import User
from app.main import app
from app.services import bookings as booking_service
from app.services.payment_gateway import get_gateway

from helpers import FixedGateway, future


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _user(db, email, name, role):
    u = User(email=email, full_name=name, role=role, phone="9876543210")
    db.add(u)
    db.flush()
    return u


def _provider(db, user, categories, rate=500, approval=ApprovalStatus.APPROVED, city="Chennai",
              description="Licensed plumber", available=True):
    p = ServiceProvider(
        user_id=user.id,
        city=city,
        description=description,
        experience_years=5,
        hourly_rate=rate,
        credential_info="License PL-2291",
        is_available=available,
        approval_status=approval,
    )
    p.categories = list(categories)
    db.add(p)
    db.flush()
    return p


@pytest.fixture
def world(db):
    """A small marketplace: one approved provider, two customers, an admin."""
    plumbing = Category(name="Plumbing")
    electrical = Category(name="Electrical")
    db.add_all([plumbing, electrical])
    db.flush()

    customer = _user(db, "asha@example.com", "Asha Rao", Role.USER)
    other_customer = _user(db, "ravi@example.com", "Ravi Kumar", Role.USER)
    admin = _user(db, "admin@example.com", "Admin", Role.ADMIN)
    provider_user = _user(db, "meena@example.com", "Meena Pipes", Role.PROVIDER)
    other_provider_user = _user(db, "arun@example.com", "Arun Volt", Role.PROVIDER)

    provider = _provider(db, provider_user, [plumbing])
    other_provider = _provider(db, other_provider_user, [electrical], rate=800, description="Electrician")

    home = Address(user_id=customer.id, line="12 Beach Road", city="Chennai", pincode="600001")
    other_home = Address(user_id=other_customer.id, line="4 Hill St", city="Chennai", pincode="600002")
    db.add_all([home, other_home])
    db.commit()

    return SimpleNamespace(
        plumbing=plumbing,
        electrical=electrical,
        customer=customer,
        other_customer=other_customer,
        admin=admin,
        provider_user=provider_user,
        other_provider_user=other_provider_user,
        provider=provider,
        other_provider=other_provider,
        home=home,
        other_home=other_home,
        customer_actor=Actor(customer.id, Role.USER),
        other_customer_actor=Actor(other_customer.id, Role.USER),
        admin_actor=Actor(admin.id, Role.ADMIN),
        provider_actor=Actor(provider_user.id, Role.PROVIDER),
        other_provider_actor=Actor(other_provider_user.id, Role.PROVIDER),
        make_provider=lambda *a, **kw: _provider(db, *a, **kw),
        make_user=lambda *a: _user(db, *a),
    )


@pytest.fixture
def make_booking(db, world):
    def _make(actor=None, provider=None, category=None, address=None, scheduled_at=None, notes=None):
        return booking_service.create_booking(
            db,
            actor or world.customer_actor,
            provider_id=(provider or world.provider).id,
            category_id=(category or world.plumbing).id,
            address_id=(address or world.home).id,
            scheduled_at=scheduled_at or future(),
            notes=notes,
        )
    return _make


@pytest.fixture
def gateway():
    return FixedGateway(success=True)


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
