"""
PostgreSQL fixtures using Testcontainers and Alembic.

Functions:
- pg_url: Session-scoped fixture that provisions a PostgreSQL container and
    migrates it to the latest schema revision.
- pg_engine: Engine built with the same helper the service uses.
- session_factory: Session factory over a freshly truncated schema.
- ledger / client: SQL-backed ledger engine and a TestClient on top of it.
"""

import json
import os
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from database.db_engine import create_database_engine
from database.db_session import create_session_factory
from database.enums import LocationType, OrderStatus
from database.inventory import Product
from database.locations import Location
from database.orders import Order, OrderRow
from fastapi.testclient import TestClient
from ledger_api.config_schema import Settings
from ledger_api.ledger.engine import LedgerEngine
from ledger_api.main import create_app
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from testcontainers.core.wait_strategies import LogMessageWaitStrategy
from testcontainers.postgres import PostgresContainer

ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_INI = ROOT / "packages" / "database" / "alembic.ini"

docker_config_dir = tempfile.mkdtemp()
config_file = Path(docker_config_dir) / "config.json"

with Path.open(config_file, "w") as f:
    json.dump({"credsStore": "", "credHelpers": {}, "auths": {}}, f)

os.environ["DOCKER_CONFIG"] = docker_config_dir


@pytest.fixture(scope="session")
def pg_url() -> Generator[str, None, None]:
    """
    Provisions a temporary PostgreSQL container for the test session and
    applies every Alembic revision to it.
    """
    postgres = PostgresContainer("postgres:15-alpine")
    postgres.waiting_for(LogMessageWaitStrategy("database system is ready to accept connections"))

    with postgres as pg:
        url = pg.get_connection_url()
        previous = os.environ.get("DATABASE_URL")
        os.environ["DATABASE_URL"] = url
        try:
            command.upgrade(Config(str(ALEMBIC_INI)), "head")
        finally:
            if previous is None:
                os.environ.pop("DATABASE_URL", None)
            else:
                os.environ["DATABASE_URL"] = previous
        yield url


@pytest.fixture(scope="session")
def pg_engine(pg_url: str) -> Generator[Engine, None, None]:
    engine = create_database_engine(pg_url, pool_size=5, max_overflow=5)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(pg_engine: Engine) -> sessionmaker[Session]:
    """Session factory over empty tables; ids restart for every test."""
    with pg_engine.begin() as connection:
        connection.execute(
            text(
                "TRUNCATE order_row, orders, storage, location_price, product, location "
                "RESTART IDENTITY CASCADE"
            )
        )
    return create_session_factory(pg_engine)


@pytest.fixture
def seeded(session_factory: sessionmaker[Session]) -> dict[str, int]:
    with session_factory() as session:
        carrier = Location(name="Nordic Haulage", location_type=LocationType.CARRIER)
        hub = Location(
            name="Vantaa Hub",
            address="Logistiikkatie 1",
            post_code="01510",
            city="Vantaa",
            location_type=LocationType.PROCESSING_FACILITY,
        )
        depot = Location(name="Tampere Depot", location_type=LocationType.PROCESSING_FACILITY)
        euro = Product(name="EUR pallet", pallet_size=40)
        half = Product(name="Half pallet", pallet_size=20)
        session.add_all([carrier, hub, depot, euro, half])
        session.flush()

        order = Order(
            location_id=hub.id,
            ordered_at=datetime(2024, 1, 20, tzinfo=UTC),
            status=OrderStatus.OPEN,
        )
        session.add(order)
        session.flush()
        session.add(OrderRow(order_id=order.id, product_id=euro.id, pallet_amount=8))
        session.commit()

        return {
            "carrier": carrier.id,
            "hub": hub.id,
            "depot": depot.id,
            "euro": euro.id,
            "half": half.id,
            "order": order.id,
        }


@pytest.fixture
def ledger(session_factory: sessionmaker[Session], seeded: dict[str, int]) -> LedgerEngine:
    return LedgerEngine.from_session_factory(session_factory, Settings())


@pytest.fixture
def client(ledger: LedgerEngine) -> Generator[TestClient, None, None]:
    with TestClient(create_app(Settings(), ledger=ledger)) as test_client:
        yield test_client
