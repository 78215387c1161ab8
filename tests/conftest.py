"""
Pytest fixtures for the scrap ledger.

- an in-memory SQLite database shared across threads (StaticPool)
- a session bound to it for calling crud directly
- a local attachment store rooted in tmp_path
- a FastAPI TestClient with the database and store overridden
"""
import os

os.environ.setdefault("LEDGER_DB_URL", "sqlite://")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import crud
import schemas
from attachments import LocalAttachmentStore
from database import init_db
from models import PartyRole, TransactionKind

OWNER = 1
OTHER_OWNER = 2


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(tmp_path):
    return LocalAttachmentStore(root=tmp_path / "attachments")


@pytest.fixture
def supplier(db):
    return crud.create_party(db, OWNER, schemas.PartyCreate(
        name="Ravi Metals", mobile="9800000001", tax_id="27abcde1234f1z5", role=PartyRole.SUPPLIER,
    ))


@pytest.fixture
def customer(db):
    return crud.create_party(db, OWNER, schemas.PartyCreate(
        name="Shree Recyclers", mobile="9800000002", role=PartyRole.CUSTOMER,
    ))


@pytest.fixture
def make_bill(db, supplier, customer):
    """Create a bill for OWNER; defaults give a 5000 + 18% CGST/SGST copper bill."""
    def _make(kind=TransactionKind.PURCHASE, **overrides):
        fields = {
            "bill_number": "B-001",
            "party_id": supplier.id if kind == TransactionKind.PURCHASE else customer.id,
            "material_type": "Copper",
            "weight": 100,
            "rate_per_kg": 50,
            "taxable_amount": 5000,
            "gst_type": "CGST_SGST",
            "gst_percent": 18,
            "bill_date": date(2025, 5, 10),
        }
        fields.update(overrides)
        return crud.create_transaction(db, OWNER, kind, schemas.TransactionCreate(**fields))
    return _make


@pytest.fixture
def client(session_factory, store):
    from fastapi.testclient import TestClient
    from database import get_db
    from main import app, get_attachment_store

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_store] = lambda: store

    with TestClient(app, headers={"X-Owner-Id": str(OWNER)}) as c:
        yield c

    app.dependency_overrides.clear()
