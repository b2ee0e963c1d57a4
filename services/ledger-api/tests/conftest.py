"""
Fixtures for the ledger-api tests.

- directory / ledger: in-memory engine over a seeded directory.
- sql_engine / session_factory: file-backed SQLite database with the full schema.
- seeded_db: the same world (one carrier, two facilities, two products) as rows.
- sql_ledger / client: SQL-backed engine and a FastAPI TestClient on top of it.
"""

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from database.base import Base
from database.db_engine import create_database_engine
from database.db_session import create_session_factory
from database.inventory import Product
from database.locations import Location
from fastapi.testclient import TestClient
from ledger_api.config_schema import Settings
from ledger_api.ledger.directories import InMemoryDirectory
from ledger_api.ledger.engine import LedgerEngine
from ledger_api.main import create_app
from ledger_world import LOCATIONS, NOW, PRODUCTS
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def directory() -> InMemoryDirectory:
    directory = InMemoryDirectory()
    for location_id, name, location_type in LOCATIONS:
        directory.add_location(location_id, name, location_type)
    for product_id, _, _ in PRODUCTS:
        directory.add_product(product_id)
    return directory


@pytest.fixture
def ledger(directory: InMemoryDirectory, settings: Settings) -> LedgerEngine:
    return LedgerEngine.in_memory(directory, settings, clock=lambda: NOW)


@pytest.fixture
def sql_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    engine = create_database_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(sql_engine)


@pytest.fixture
def seeded_db(session_factory: sessionmaker[Session]) -> dict[str, Any]:
    with session_factory() as session:
        for location_id, name, location_type in LOCATIONS:
            session.add(
                Location(
                    id=location_id,
                    name=name,
                    address="Logistiikkatie 1",
                    post_code="01510",
                    city="Vantaa",
                    location_type=location_type,
                )
            )
        for product_id, name, pallet_size in PRODUCTS:
            session.add(Product(id=product_id, name=name, pallet_size=pallet_size))
        session.commit()
    return {"locations": LOCATIONS, "products": PRODUCTS}


@pytest.fixture
def sql_ledger(
    session_factory: sessionmaker[Session], seeded_db: dict[str, Any], settings: Settings
) -> LedgerEngine:
    return LedgerEngine.from_session_factory(session_factory, settings)


@pytest.fixture
def client(sql_ledger: LedgerEngine, settings: Settings) -> Generator[TestClient, None, None]:
    app = create_app(settings, ledger=sql_ledger)
    with TestClient(app) as test_client:
        yield test_client
