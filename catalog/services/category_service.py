# catalog/services/category_service.py
import logging
from typing import Any, Dict, List, Optional
from ..config import Config
from ..database.category_store import CategoryStore
from ..exceptions import InvalidCategoryData, NotFound
from ..models.category import (
    CategoryNode, CategoryOption, CategoryRecord, DeletePolicy,
    DeletionResult, make_slug
)
from . import category_tree
from .category_validator import (
    validate_create, validate_delete, validate_move, validate_update
)


class CategoryService:
    """سرویس مدیریت دسته‌بندی‌ها"""

    def __init__(self, store: CategoryStore, image_service=None):
        self.store = store
        self.image_service = image_service
        self.logger = logging.getLogger(__name__)

    async def create(self, name: str, description: str = "",
                     parent_id: Optional[int] = None,
                     image_url: Optional[str] = None) -> CategoryRecord:
        """افزودن دسته‌بندی جدید"""
        category_data = {
            'name': name.strip() if isinstance(name, str) else name,
            'description': description or "",
            'parent_id': parent_id,
            'image_url': image_url
        }

        async with self.store.lock():
            existing = await self.store.list()
            validate_create(category_data, existing)
            category_data['slug'] = make_slug(category_data['name'])
            record = await self.store.insert(category_data)

        self.logger.info(
            f"Category {record.category_id} '{record.slug}' created under {record.parent_id}"
        )
        return record

    async def get(self, category_id: int) -> CategoryRecord:
        """دریافت اطلاعات دسته‌بندی"""
        record = await self.store.get(category_id)
        if record is None:
            raise NotFound(category_id)
        return record

    async def count(self) -> int:
        """تعداد کل دسته‌بندی‌ها"""
        return len(await self.store.list())

    async def update(self, category_id: int, update_data: Dict[str, Any]) -> CategoryRecord:
        """بروزرسانی نام، توضیحات یا تصویر دسته‌بندی"""
        patch = dict(update_data)
        if isinstance(patch.get('name'), str):
            patch['name'] = patch['name'].strip()
        if 'description' in patch and patch['description'] is None:
            patch['description'] = ""

        if 'name' not in patch:
            # content-only change, no cross-record invariant involved
            current = await self.get(category_id)
            validate_update(category_id, patch, [current])
            if not patch:
                return current
            record = await self.store.update(category_id, patch)
        else:
            async with self.store.lock():
                existing = await self.store.list()
                validate_update(category_id, patch, existing)
                patch['slug'] = make_slug(patch['name'])
                record = await self.store.update(category_id, patch)

        self.logger.info(f"Category {category_id} updated: {sorted(update_data)}")
        return record

    async def move(self, category_id: int, new_parent_id: Optional[int]) -> CategoryRecord:
        """تغییر دسته‌بندی والد"""
        async with self.store.lock():
            existing = await self.store.list()
            validate_move(category_id, new_parent_id, existing)
            current = next(r for r in existing if r.category_id == category_id)
            if current.parent_id == new_parent_id:
                return current
            record = await self.store.update(category_id, {'parent_id': new_parent_id})

        self.logger.info(
            f"Category {category_id} moved from {current.parent_id} to {new_parent_id}"
        )
        return record

    async def remove(self, category_id: int, policy: DeletePolicy) -> DeletionResult:
        """حذف دسته‌بندی با سیاست انتخاب‌شده برای زیردسته‌ها"""
        try:
            policy = DeletePolicy(policy)
        except ValueError:
            raise InvalidCategoryData(
                f"Unknown delete policy '{policy}'", field='policy'
            ) from None

        async with self.store.lock():
            existing = await self.store.list()
            plan = validate_delete(category_id, existing)

            if policy is DeletePolicy.CASCADE:
                removed_ids = [category_id] + plan.descendant_ids
                await self.store.delete_many(removed_ids)
                result = DeletionResult(removed_ids=removed_ids)
            else:
                promoted = await self.store.delete_promoting_children(
                    category_id, plan.parent_id
                )
                result = DeletionResult(removed_ids=[category_id], promoted_ids=promoted)

        self.logger.info(
            f"Category {category_id} removed ({policy.value}): "
            f"removed={result.removed_ids} promoted={result.promoted_ids}"
        )
        return result

    async def search(self, query: str) -> List[CategoryRecord]:
        """جستجوی دسته‌بندی‌ها در تمام سطوح درخت"""
        if not query or not query.strip():
            raise InvalidCategoryData("Search query is required", field='query')
        return await self.store.find_by_name_substring(query)

    async def build_tree(self) -> List[CategoryNode]:
        """ساخت درخت دسته‌بندی‌ها"""
        return category_tree.build_tree(await self.store.list())

    @staticmethod
    def flatten(nodes: List[CategoryNode]) -> List[CategoryRecord]:
        return category_tree.flatten(nodes)

    async def render_options(self, exclude_id: Optional[int] = None) -> List[CategoryOption]:
        """گزینه‌های انتخاب دسته‌بندی والد"""
        return category_tree.render_options(
            await self.build_tree(), marker=Config.OPTION_MARKER, exclude_id=exclude_id
        )

    async def ancestors(self, category_id: int) -> List[CategoryRecord]:
        """مسیر والدها از ریشه تا والد مستقیم"""
        existing = await self.store.list()
        if not any(r.category_id == category_id for r in existing):
            raise NotFound(category_id)
        return category_tree.ancestor_chain(category_id, existing)

    async def set_image(self, category_id: int, content: bytes, filename: str) -> CategoryRecord:
        """آپلود تصویر دسته‌بندی و ذخیره آدرس آن"""
        if self.image_service is None:
            raise RuntimeError("No image service configured")
        current = await self.get(category_id)
        uploaded = await self.image_service.upload(content, filename)
        record = await self.update(category_id, {'image_url': uploaded['url']})
        if current.image_url and current.image_url != record.image_url:
            await self.image_service.delete(current.image_url)
        return record
