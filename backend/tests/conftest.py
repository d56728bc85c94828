"""
Pytest fixtures for the merchant directory cache tests
"""
import os

# Must be set before merchant_directory.config is first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from merchant_directory.models.base import Base
from merchant_directory.models import cache_record, import_job  # noqa: F401
from merchant_directory.services.directory_client import FranchisePage


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cache.db"


@pytest.fixture
def engine(db_path):
    """File-backed SQLite so separate sessions get separate connections."""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def reader(session_factory):
    """Independent session used to observe state the way a concurrent reader would."""
    session = session_factory()
    yield session
    session.close()


def make_franchise(index: int, outlets: int = 2, prefix: str = "Franchise") -> dict:
    future = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    return {
        "fid": str(1000 + index),
        "name": f"{prefix} {index}",
        "company": f"{prefix} Holdings {index}",
        "company_address": f"{index} Market Street",
        "outlets": [
            {
                "oid": str(index * 10 + n),
                "name": f"{prefix} {index} Outlet {n}",
                "valid_until": future,
            }
            for n in range(outlets)
        ],
    }


def make_pages(sizes: list[int], per_page: int, total: int | None = None, prefix: str = "Franchise") -> list[FranchisePage]:
    pages = []
    index = 0
    total_pages = len(sizes) if total is not None else None
    for number, size in enumerate(sizes, start=1):
        rows = [make_franchise(index + i, prefix=prefix) for i in range(size)]
        index += size
        pages.append(FranchisePage(
            rows=rows,
            current_page=number,
            per_page=per_page,
            total_count=total,
            total_pages=total_pages,
        ))
    return pages


class FakeDirectoryClient:
    """Serves canned pages; ``on_fetch(page)`` runs before each page is returned."""

    def __init__(self, pages, on_fetch=None):
        self.pages = pages
        self.on_fetch = on_fetch
        self.requested = []
        self.closed = False

    def fetch_page(self, page: int, page_size: int) -> FranchisePage:
        self.requested.append(page)
        if self.on_fetch:
            self.on_fetch(page)
        if page > len(self.pages):
            return FranchisePage(rows=[], current_page=page, per_page=page_size)
        result = self.pages[page - 1]
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


@pytest.fixture
def dispatched():
    """Records job ids handed to the background dispatcher instead of queueing them."""
    return []
