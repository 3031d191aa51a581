"""
Shared fixtures for the category engine tests
"""
from datetime import datetime, timezone
from typing import List, Optional
import pytest

from catalog.database.category_store import MemoryCategoryStore
from catalog.models.category import CategoryRecord, make_slug
from catalog.services.category_service import CategoryService


def make_record(category_id: int, name: str, parent_id: Optional[int] = None,
                description: str = "") -> CategoryRecord:
    return CategoryRecord(
        category_id=category_id,
        name=name,
        description=description,
        slug=make_slug(name),
        parent_id=parent_id,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
    )


def edges(records: List[CategoryRecord]):
    return {(r.category_id, r.parent_id) for r in records}


@pytest.fixture
def engine_records() -> List[CategoryRecord]:
    """Engine -> Filters -> Oil Filter"""
    return [
        make_record(1, "Engine"),
        make_record(2, "Filters", parent_id=1),
        make_record(3, "Oil Filter", parent_id=2),
    ]


@pytest.fixture
def catalog_records() -> List[CategoryRecord]:
    """Two top-level branches, three levels deep"""
    return [
        make_record(1, "Brakes", description="Braking systems"),
        make_record(2, "Engine"),
        make_record(3, "Disc Brakes", parent_id=1),
        make_record(4, "Brake Pads", parent_id=3),
        make_record(5, "Carburetor", parent_id=2),
        make_record(6, "Filters", parent_id=2, description="Air and oil"),
        make_record(7, "Oil Filter", parent_id=6),
    ]


@pytest.fixture
def store(catalog_records) -> MemoryCategoryStore:
    return MemoryCategoryStore(catalog_records)


@pytest.fixture
def service(store) -> CategoryService:
    return CategoryService(store)
