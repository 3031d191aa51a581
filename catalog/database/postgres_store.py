# catalog/database/postgres_store.py
import asyncio
import logging
import asyncpg
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional
from ..exceptions import DuplicateSlug, NotFound, ParentNotFound, StoreError
from ..models.category import CategoryRecord
from .category_store import CategoryStore, RECORD_FIELDS
from .database import Database

# pg_advisory_lock key shared by every process that edits the category tree
CATEGORY_TREE_LOCK_KEY = 7_300_451

COLUMNS = "category_id, name, description, slug, parent_id, image_url, created_at, updated_at"


def like_pattern(query: str) -> str:
    """الگوی ILIKE با escape کردن کاراکترهای ویژه"""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def row_to_record(row) -> CategoryRecord:
    return CategoryRecord.model_validate(dict(row))


class PostgresCategoryStore(CategoryStore):
    """ذخیره‌سازی دسته‌بندی‌ها در PostgreSQL"""

    def __init__(self, db: Database):
        self.db = db
        self.logger = logging.getLogger(__name__)
        self._local_lock = asyncio.Lock()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        try:
            async with self.db.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self.logger.error(f"Category store failure: {e}")
            raise StoreError(str(e)) from e

    async def list(self) -> List[CategoryRecord]:
        """دریافت تمام دسته‌بندی‌ها به ترتیب ثبت"""
        async with self._connection() as conn:
            rows = await conn.fetch(f"""
                SELECT {COLUMNS}
                FROM categories
                ORDER BY category_id
            """)
            return [row_to_record(row) for row in rows]

    async def get(self, category_id: int) -> Optional[CategoryRecord]:
        """دریافت اطلاعات دسته‌بندی"""
        async with self._connection() as conn:
            row = await conn.fetchrow(f"""
                SELECT {COLUMNS}
                FROM categories
                WHERE category_id = $1
            """, category_id)
            return row_to_record(row) if row else None

    async def insert(self, category_data: Dict[str, Any]) -> CategoryRecord:
        """افزودن دسته‌بندی جدید"""
        try:
            async with self._connection() as conn:
                row = await conn.fetchrow(f"""
                    INSERT INTO categories (name, description, slug, parent_id, image_url)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {COLUMNS}
                """,
                    category_data['name'],
                    category_data.get('description', ''),
                    category_data['slug'],
                    category_data.get('parent_id'),
                    category_data.get('image_url')
                )
                return row_to_record(row)
        except StoreError as e:
            raise self._constraint_error(e, category_data) from e.__cause__

    async def update(self, category_id: int, update_data: Dict[str, Any]) -> CategoryRecord:
        """بروزرسانی دسته‌بندی"""
        query_parts = []
        params = []
        param_count = 1

        for key, value in update_data.items():
            if key not in RECORD_FIELDS:
                continue
            query_parts.append(f"{key} = ${param_count}")
            params.append(value)
            param_count += 1

        query_parts.append("updated_at = CURRENT_TIMESTAMP")
        params.append(category_id)
        query = f"""
            UPDATE categories
            SET {', '.join(query_parts)}
            WHERE category_id = ${param_count}
            RETURNING {COLUMNS}
        """

        try:
            async with self._connection() as conn:
                row = await conn.fetchrow(query, *params)
        except StoreError as e:
            raise self._constraint_error(e, update_data) from e.__cause__
        if row is None:
            raise NotFound(category_id)
        return row_to_record(row)

    async def delete(self, category_id: int) -> None:
        """حذف یک دسته‌بندی"""
        async with self._connection() as conn:
            result = await conn.execute("""
                DELETE FROM categories
                WHERE category_id = $1
            """, category_id)
        if result != "DELETE 1":
            raise NotFound(category_id)

    async def find_by_name_substring(self, query: str) -> List[CategoryRecord]:
        """جستجوی دسته‌بندی‌ها در نام و توضیحات"""
        async with self._connection() as conn:
            rows = await conn.fetch(f"""
                SELECT {COLUMNS}
                FROM categories
                WHERE name ILIKE $1 OR description ILIKE $1
                ORDER BY category_id
            """, like_pattern(query))
            return [row_to_record(row) for row in rows]

    async def delete_many(self, category_ids: Iterable[int]) -> None:
        """حذف گروهی دسته‌بندی‌ها در یک تراکنش"""
        category_ids = list(category_ids)
        async with self._connection() as conn:
            async with conn.transaction():
                result = await conn.execute("""
                    DELETE FROM categories
                    WHERE category_id = ANY($1::int[])
                """, category_ids)
                if result != f"DELETE {len(category_ids)}":
                    # rolls back the transaction
                    raise NotFound(category_ids[0])

    async def delete_promoting_children(self, category_id: int,
                                        new_parent_id: Optional[int]) -> List[int]:
        """انتقال زیردسته‌ها به والد قبلی و حذف دسته‌بندی"""
        async with self._connection() as conn:
            async with conn.transaction():
                rows = await conn.fetch("""
                    UPDATE categories
                    SET parent_id = $1, updated_at = CURRENT_TIMESTAMP
                    WHERE parent_id = $2
                    RETURNING category_id
                """, new_parent_id, category_id)
                result = await conn.execute("""
                    DELETE FROM categories
                    WHERE category_id = $1
                """, category_id)
                if result != "DELETE 1":
                    raise NotFound(category_id)
        return sorted(row['category_id'] for row in rows)

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[None]:
        """قفل سراسری برای تغییرات ساختاری درخت"""
        async with self._local_lock:
            async with self._connection() as conn:
                await conn.execute("SELECT pg_advisory_lock($1)", CATEGORY_TREE_LOCK_KEY)
                try:
                    yield
                finally:
                    await conn.execute("SELECT pg_advisory_unlock($1)", CATEGORY_TREE_LOCK_KEY)

    @staticmethod
    def _constraint_error(error: StoreError, data: Dict[str, Any]) -> Exception:
        cause = error.__cause__
        if isinstance(cause, asyncpg.UniqueViolationError) and 'slug' in data:
            return DuplicateSlug(data['slug'])
        if isinstance(cause, asyncpg.ForeignKeyViolationError) and data.get('parent_id') is not None:
            return ParentNotFound(data['parent_id'])
        return error
