'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Pointing the application at a throwaway in-memory sqlite database before any code is imported.
2. Providing an in-memory data store and the services built on it.
3. Providing a FastAPI TestClient whose data store dependency is overridden.
4. Providing an isolated sqlite session for SQLAlchemy store tests.
'''
import os

# Must happen before the settings object is created on import.
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL_DEVELOPMENT"] = "sqlite+aiosqlite://"

import pytest
from typing import AsyncGenerator
from decimal import Decimal

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# --- Constant Imports ----
from tests.constants import STUDENT_ALICE_ID, STUDENT_BOB_ID, STUDENT_CARA_ID, utc
from tests.database.factories import StudentFactory, ClassSessionFactory, FeeFactory, PaymentFactory

# --- Application Imports ---
from tutoraid_backend.main import app
from tutoraid_backend.common.config import settings
from tutoraid_backend.database.models import Base
from tutoraid_backend.database.store import InMemoryDataStore, SQLAlchemyDataStore, ChangeFeed, get_data_store
from tutoraid_backend.models.enums import CurrencyCode, SessionType, FeeType
from tutoraid_backend.services.billing_service import BillingService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


# --- 1. Data Store Fixtures ---

@pytest.fixture(scope="function")
def store() -> InMemoryDataStore:
    """An empty in-memory data store with its own change feed."""
    return InMemoryDataStore()

@pytest.fixture(scope="function")
async def seeded_store(store: InMemoryDataStore) -> InMemoryDataStore:
    """
    The June 2024 billing sandbox.

    - Alice (USD): two 1-1 piano lessons (60 each, global piano fee), paid 60.
    - Bob (GBP): one group guitar lesson priced by his own 25 fee, paid 40.
    - Cara (EUR): one 1-1 violin lesson with no fee at all -> billing issue.
    - A soft-deleted lesson and payment for Alice that must not count.
    """
    for student_id, name, currency in (
        (STUDENT_ALICE_ID, "Alice", CurrencyCode.USD),
        (STUDENT_BOB_ID, "Bob", CurrencyCode.GBP),
        (STUDENT_CARA_ID, "Cara", CurrencyCode.EUR),
    ):
        await store.add_student(StudentFactory(id=student_id, name=name, currency_code=currency))

    await store.add_fee(FeeFactory(for_discipline="piano", amount=Decimal("60.00")))
    await store.add_fee(FeeFactory(
        for_student=STUDENT_BOB_ID, for_discipline="guitar",
        session_type=SessionType.GROUP, amount=Decimal("25.00"), currency_code=CurrencyCode.GBP
    ))
    await store.add_fee(FeeFactory(
        for_student=STUDENT_CARA_ID, fee_type=FeeType.SUBSCRIPTION, amount=Decimal("200.00")
    ))

    await store.add_class(ClassSessionFactory(student_ids=[STUDENT_ALICE_ID], scheduled_date=utc(2024, 6, 3, 16)))
    await store.add_class(ClassSessionFactory(student_ids=[STUDENT_ALICE_ID], scheduled_date=utc(2024, 6, 17, 16)))
    await store.add_class(ClassSessionFactory(
        student_ids=[STUDENT_ALICE_ID], scheduled_date=utc(2024, 6, 24, 16), deleted=True
    ))
    await store.add_class(ClassSessionFactory(
        discipline="guitar", session_type=SessionType.GROUP,
        student_ids=[STUDENT_BOB_ID], scheduled_date=utc(2024, 6, 5, 10)
    ))
    await store.add_class(ClassSessionFactory(
        discipline="violin", student_ids=[STUDENT_CARA_ID], scheduled_date=utc(2024, 6, 8, 9)
    ))

    await store.add_payment(PaymentFactory(student_id=STUDENT_ALICE_ID, amount=Decimal("60.00")))
    await store.add_payment(PaymentFactory(student_id=STUDENT_ALICE_ID, amount=Decimal("500.00"), deleted=True))
    await store.add_payment(PaymentFactory(
        student_id=STUDENT_BOB_ID, amount=Decimal("40.00"), currency_code=CurrencyCode.GBP
    ))
    return store


# --- 2. Service Fixtures ---

@pytest.fixture(scope="function")
def billing_service(seeded_store: InMemoryDataStore) -> BillingService:
    return BillingService(store=seeded_store)


# --- 3. TestClient ---

@pytest.fixture(scope="function")
def client(seeded_store: InMemoryDataStore) -> TestClient:
    """
    Runs the app's lifespan against the in-memory sqlite URL and overrides the
    data store dependency with the seeded in-memory store.
    """
    assert settings.database_url == "sqlite+aiosqlite://", \
        "Tests must never run against a real database URL."

    app.dependency_overrides[get_data_store] = lambda: seeded_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- 4. SQLAlchemy Session (sqlite) ---

@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    A session bound to a brand-new in-memory sqlite database with all tables created.
    """
    engine = create_async_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()

@pytest.fixture(scope="function")
def sql_store(db_session: AsyncSession) -> SQLAlchemyDataStore:
    """A SQLAlchemy store with a private change feed."""
    return SQLAlchemyDataStore(db_session, feed=ChangeFeed())
