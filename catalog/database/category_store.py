# catalog/database/category_store.py
import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional
from ..exceptions import DuplicateSlug, NotFound, ParentNotFound
from ..models.category import CategoryRecord

RECORD_FIELDS = ('name', 'description', 'slug', 'parent_id', 'image_url')


class CategoryStore(ABC):
    """Persistence boundary for flat category records.

    Implementations set ``category_id`` and the timestamps, return records in
    store order (insertion order), and raise ``StoreError`` when the backend
    itself fails. ``lock()`` serializes structural mutations across callers.
    """

    @abstractmethod
    async def list(self) -> List[CategoryRecord]:
        ...

    @abstractmethod
    async def get(self, category_id: int) -> Optional[CategoryRecord]:
        ...

    @abstractmethod
    async def insert(self, category_data: Dict[str, Any]) -> CategoryRecord:
        ...

    @abstractmethod
    async def update(self, category_id: int, update_data: Dict[str, Any]) -> CategoryRecord:
        ...

    @abstractmethod
    async def delete(self, category_id: int) -> None:
        ...

    @abstractmethod
    async def find_by_name_substring(self, query: str) -> List[CategoryRecord]:
        """Case-insensitive match on name or description, store order"""

    @abstractmethod
    async def delete_many(self, category_ids: Iterable[int]) -> None:
        """Delete all given records in one all-or-nothing step"""

    @abstractmethod
    async def delete_promoting_children(self, category_id: int,
                                        new_parent_id: Optional[int]) -> List[int]:
        """Reparent the direct children to new_parent_id, then delete category_id.

        Both happen in one all-or-nothing step; returns the reparented ids.
        """

    @abstractmethod
    def lock(self):
        """Async context manager held around structural mutations"""


class MemoryCategoryStore(CategoryStore):
    """Dict-backed store for tests, demos and single-process use"""

    def __init__(self, records: Optional[Iterable[CategoryRecord]] = None):
        self._records: Dict[int, CategoryRecord] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        for record in records or []:
            self._records[record.category_id] = record
            self._next_id = max(self._next_id, record.category_id + 1)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _check_constraints(self, data: Dict[str, Any], ignore_id: Optional[int] = None):
        parent_id = data.get('parent_id')
        if parent_id is not None and parent_id not in self._records:
            raise ParentNotFound(parent_id)
        slug = data.get('slug')
        for record in self._records.values():
            if slug is not None and record.slug == slug and record.category_id != ignore_id:
                raise DuplicateSlug(slug, record.category_id)

    async def list(self) -> List[CategoryRecord]:
        return [record.model_copy() for record in self._records.values()]

    async def get(self, category_id: int) -> Optional[CategoryRecord]:
        record = self._records.get(category_id)
        return record.model_copy() if record else None

    async def insert(self, category_data: Dict[str, Any]) -> CategoryRecord:
        data = {key: category_data[key] for key in RECORD_FIELDS if key in category_data}
        self._check_constraints(data)
        record = CategoryRecord(category_id=self._next_id, created_at=self._now(), **data)
        self._records[record.category_id] = record
        self._next_id += 1
        return record.model_copy()

    async def update(self, category_id: int, update_data: Dict[str, Any]) -> CategoryRecord:
        if category_id not in self._records:
            raise NotFound(category_id)
        data = {key: value for key, value in update_data.items() if key in RECORD_FIELDS}
        self._check_constraints(data, ignore_id=category_id)
        record = self._records[category_id].model_copy(
            update={**data, 'updated_at': self._now()}
        )
        self._records[category_id] = record
        return record.model_copy()

    async def delete(self, category_id: int) -> None:
        if self._records.pop(category_id, None) is None:
            raise NotFound(category_id)

    async def find_by_name_substring(self, query: str) -> List[CategoryRecord]:
        needle = query.casefold()
        return [
            record.model_copy() for record in self._records.values()
            if needle in record.name.casefold() or needle in record.description.casefold()
        ]

    async def delete_many(self, category_ids: Iterable[int]) -> None:
        category_ids = list(category_ids)
        missing = [cid for cid in category_ids if cid not in self._records]
        if missing:
            raise NotFound(missing[0])
        for category_id in category_ids:
            del self._records[category_id]

    async def delete_promoting_children(self, category_id: int,
                                        new_parent_id: Optional[int]) -> List[int]:
        if category_id not in self._records:
            raise NotFound(category_id)
        now = self._now()
        promoted = []
        for child_id, record in list(self._records.items()):
            if record.parent_id == category_id:
                self._records[child_id] = record.model_copy(
                    update={'parent_id': new_parent_id, 'updated_at': now}
                )
                promoted.append(child_id)
        del self._records[category_id]
        return promoted

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[None]:
        async with self._lock:
            yield
