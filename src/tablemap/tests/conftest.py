"""
Core pytest configuration for the entire test suite.

Every test that needs a database gets its own SQLite file under pytest's tmp_path,
accessed through the aiosqlite driver, so tests never share rows or tables.

Model classes and table fixtures live in tests/test_fixtures/model_fixtures.py and
are registered here.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

# Set the level for noisy third-party loggers before importing modules that might
# initialize them.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest

from tablemap.config.settings import Settings
from tablemap.core.logging.builder import setup_logging
from tablemap.database import Database

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the library's logging configuration for the whole session, with text
    output and no log files. caplog attaches its own handler per test, and the
    `tablemap` logger propagates to the root, so caplog.records sees its events.
    """
    setup_logging(Settings(ENV="testing", LOG_FORMAT="text", LOG_LEVEL="DEBUG", LOG_TO_STDOUT=True))
    yield


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'tablemap.db'}"


@pytest.fixture
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    """
    A private Database handle on an empty SQLite file. The connection is opened
    lazily by the first statement and closed at teardown.
    """
    db = Database("test").inject_dsn(database_url)
    yield db
    await db.terminate()


from .test_fixtures.model_fixtures import (  # noqa: E402
    products,
    memberships,
    tags,
    create_product,
    attachments,
    order_lines,
)
