# catalog/services/category_validator.py
import logging
from typing import Any, Dict, List, Optional
from ..exceptions import (
    CycleDetected, DuplicateSlug, IntegrityError, InvalidCategoryData,
    NotFound, ParentNotFound, SelfParent
)
from ..models.category import CategoryRecord, DeletionPlan, make_slug
from .category_tree import descendant_ids

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({'name', 'description', 'image_url'})


def _by_id(existing: List[CategoryRecord]) -> Dict[int, CategoryRecord]:
    return {record.category_id: record for record in existing}


def _require(category_id: int, index: Dict[int, CategoryRecord]) -> CategoryRecord:
    record = index.get(category_id)
    if record is None:
        raise NotFound(category_id)
    return record


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidCategoryData("Category name cannot be empty.", field='name')
    slug = make_slug(name)
    if not slug:
        raise InvalidCategoryData(
            f"Category name '{name}' does not produce a usable slug.", field='name'
        )
    return slug


def _check_slug_free(slug: str, existing: List[CategoryRecord],
                     ignore_id: Optional[int] = None):
    for record in existing:
        if record.slug == slug and record.category_id != ignore_id:
            raise DuplicateSlug(slug, record.category_id)


def validate_create(candidate: Dict[str, Any], existing: List[CategoryRecord]):
    """بررسی دسته‌بندی جدید پیش از ذخیره"""
    slug = _check_name(candidate.get('name'))
    parent_id = candidate.get('parent_id')
    if parent_id is not None and parent_id not in _by_id(existing):
        raise ParentNotFound(parent_id)
    _check_slug_free(slug, existing)


def validate_update(category_id: int, update_data: Dict[str, Any],
                    existing: List[CategoryRecord]):
    """بررسی تغییرات محتوایی یک دسته‌بندی"""
    _require(category_id, _by_id(existing))

    unknown = set(update_data) - EDITABLE_FIELDS
    if unknown:
        field = sorted(unknown)[0]
        raise InvalidCategoryData(
            f"Field '{field}' cannot be changed by update; use move for parent changes.",
            field=field
        )

    if 'name' in update_data:
        slug = _check_name(update_data['name'])
        _check_slug_free(slug, existing, ignore_id=category_id)


def validate_move(category_id: int, new_parent_id: Optional[int],
                  existing: List[CategoryRecord]):
    """بررسی جابجایی دسته‌بندی و جلوگیری از وابستگی حلقوی"""
    index = _by_id(existing)
    _require(category_id, index)

    if new_parent_id is None:
        return
    if new_parent_id == category_id:
        raise SelfParent(category_id)
    if new_parent_id not in index:
        raise ParentNotFound(new_parent_id)

    current = new_parent_id
    steps = 0
    while current is not None:
        if current == category_id:
            logger.warning(f"Move of {category_id} under {new_parent_id} rejected: cycle")
            raise CycleDetected(category_id, new_parent_id)
        steps += 1
        if steps > len(existing):
            raise IntegrityError(
                f"Ancestor chain of category {new_parent_id} does not reach the top level",
                category_id=new_parent_id
            )
        record = index.get(current)
        if record is None:
            raise IntegrityError(
                f"Ancestor chain of category {new_parent_id} hits missing category {current}",
                category_id=current
            )
        current = record.parent_id


def validate_delete(category_id: int, existing: List[CategoryRecord]) -> DeletionPlan:
    """محاسبه دسته‌بندی‌هایی که با حذف تحت تاثیر قرار می‌گیرند"""
    record = _require(category_id, _by_id(existing))
    return DeletionPlan(
        category_id=category_id,
        parent_id=record.parent_id,
        child_ids=[r.category_id for r in existing if r.parent_id == category_id],
        descendant_ids=descendant_ids(category_id, existing)
    )
