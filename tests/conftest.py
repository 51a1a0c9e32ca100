"""
conftest.py — Shared Test Fixtures for WedStay

Provides an in-memory SQLite database, a FastAPI TestClient whose signed-in
principal can be switched per request, and factory fixtures for profiles,
vendors and products.

Business Rules:
- All tests run against an isolated in-memory DB
- Identity is overridden so tests don't need a session cookie
- Each test function gets freshly created tables

Called by: all test files via pytest autodiscovery
Depends on: wedstay.models (Base), wedstay.database (get_db), wedstay.dependencies
"""

import os
os.environ["TESTING"] = "1"  # Must be set before importing wedstay modules
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wedstay.models import (
    Base,
    Product,
    ProductStatus,
    Profile,
    ProfileRole,
    Vendor,
    VendorStatus,
)
from wedstay.schemas.auth import Principal

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default; turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def principal_for(profile: Profile) -> Principal:
    return Principal(auth_id=profile.auth_id, email=profile.email, full_name=profile.full_name)


@pytest.fixture()
def principal_of():
    """principal_of(profile) -> the Principal that signs in as that profile."""
    return principal_for


@pytest.fixture()
def make_profile(db_session: Session):
    """Factory: make_profile("alice", role=ProfileRole.CUSTOMER) -> Profile."""

    def _make(name: str, role: ProfileRole = ProfileRole.CUSTOMER) -> Profile:
        profile = Profile(
            auth_id=f"auth-{name}",
            email=f"{name}@example.com",
            full_name=name.title(),
            role=role,
        )
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def make_vendor(db_session: Session):
    """Factory: make_vendor(profile, "Bloom & Co", status=...) -> Vendor."""

    def _make(profile: Profile, company_name: str, status: VendorStatus = VendorStatus.APPROVED) -> Vendor:
        vendor = Vendor(
            user_id=profile.id,
            company_name=company_name,
            slug=company_name.lower().replace(" ", "-").replace("&", "and"),
            status=status,
            commission_rate=Decimal("15.00"),
        )
        db_session.add(vendor)
        db_session.commit()
        db_session.refresh(vendor)
        return vendor

    return _make


@pytest.fixture()
def make_product(db_session: Session):
    """Factory: make_product(vendor, "Gold Chiavari Chair", status=..., price=...) -> Product."""
    counter = {"n": 0}

    def _make(
        vendor: Vendor,
        name: str,
        status: ProductStatus = ProductStatus.APPROVED,
        price: str | None = "100.00",
        **fields,
    ) -> Product:
        counter["n"] += 1
        slug = name.lower().replace(" ", "-")
        product = Product(
            vendor_id=vendor.id,
            name=name,
            slug=slug,
            handle=f"{slug}-{counter['n']}",
            description=fields.pop("description", f"{name} for weddings"),
            category=fields.pop("category", "furniture"),
            base_price=Decimal(price) if price is not None else None,
            status=status,
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture()
def customer(make_profile) -> Profile:
    return make_profile("carol")


@pytest.fixture()
def admin(make_profile) -> Profile:
    return make_profile("ada", ProfileRole.ADMIN)


@pytest.fixture()
def vendor_owner(make_profile) -> Profile:
    return make_profile("victor", ProfileRole.VENDOR)


@pytest.fixture()
def rival_owner(make_profile) -> Profile:
    return make_profile("rita", ProfileRole.VENDOR)


@pytest.fixture()
def vendor(make_vendor, vendor_owner) -> Vendor:
    """An approved vendor owned by vendor_owner."""
    return make_vendor(vendor_owner, "Bloom Rentals")


@pytest.fixture()
def rival_vendor(make_vendor, rival_owner) -> Vendor:
    """A second approved vendor, used for cross-ownership checks."""
    return make_vendor(rival_owner, "Grand Tents")


@pytest.fixture()
def product(make_product, vendor) -> Product:
    """An approved product of `vendor` priced at 100.00."""
    return make_product(vendor, "Gold Chiavari Chair")


@pytest.fixture()
def rival_product(make_product, rival_vendor) -> Product:
    return make_product(rival_vendor, "Sailcloth Tent", price="2500.00")


# ── HTTP client ──────────────────────────────────────────────────────


@pytest.fixture()
def client(db_session: Session):
    """FastAPI TestClient with identity overridden.

    Starts anonymous; call client.sign_in(profile) / client.sign_out() to
    switch the principal seen by every subsequent request.
    """
    from wedstay.database import get_db
    from wedstay.dependencies import get_principal
    from wedstay.main import app

    current = {"principal": None}

    def _override_db():
        yield db_session

    def _override_principal():
        return current["principal"]

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_principal] = _override_principal

    with TestClient(app) as c:
        c.sign_in = lambda profile: current.update(principal=principal_for(profile))
        c.sign_out = lambda: current.update(principal=None)
        yield c

    app.dependency_overrides.clear()
