"""Shared test fixtures."""

from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from services.attributes import AttributeStore
from services.clients import ClientStore
from services.directory import ClientDirectory
from services.phone_lookup import PatternPhoneLookup
from services.search import ClientSearch
from services.validation import ClientValidator
from utils.encryption import EncryptionService

TEST_PASSPHRASE = "test-passphrase-for-client-directory"

# Low iteration count keeps key derivation fast in tests
TEST_KDF_ITERATIONS = 1000


@pytest.fixture
def encryption() -> EncryptionService:
    """Initialized encryption service with a fixed passphrase."""
    service = EncryptionService(kdf_iterations=TEST_KDF_ITERATIONS)
    service.initialize(passphrase=TEST_PASSPHRASE)
    return service


@pytest.fixture
async def engine(tmp_path: Path):
    """Temporary SQLite database with the directory tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def attribute_store(db_session) -> AttributeStore:
    return AttributeStore(db_session)


@pytest.fixture
def client_store(db_session, attribute_store) -> ClientStore:
    return ClientStore(db_session, attribute_store)


@pytest.fixture
def client_search(db_session, client_store) -> ClientSearch:
    return ClientSearch(db_session, client_store)


@pytest.fixture
def validator() -> ClientValidator:
    """Validator without an external lookup (pattern fallback only)."""
    return ClientValidator(PatternPhoneLookup())


@pytest.fixture
def directory(db_session, encryption, validator) -> ClientDirectory:
    return ClientDirectory(db_session, encryption, validator)
