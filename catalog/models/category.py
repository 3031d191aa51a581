# catalog/models/category.py
import re
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel
from .base import TimeStampedModel

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^\w-]+")


def make_slug(name: str) -> str:
    """Lowercase the name, turn whitespace runs into hyphens, drop the rest"""
    slug = _WHITESPACE.sub("-", name.strip().lower())
    return _NON_SLUG.sub("", slug)


class CategoryRecord(TimeStampedModel):
    """Flat category row as persisted by the record store"""
    category_id: int
    name: str
    description: str = ""
    slug: str
    parent_id: Optional[int] = None
    image_url: Optional[str] = None


class CategoryNode(CategoryRecord):
    """In-memory tree view of a record. Not stored in DB."""
    subcategories: List['CategoryNode'] = []

    def to_record(self) -> CategoryRecord:
        return CategoryRecord(**self.model_dump(exclude={'subcategories'}))


class DeletePolicy(str, Enum):
    CASCADE = "cascade"
    PROMOTE = "promote"


class DeletionPlan(BaseModel):
    """Records affected by deleting category_id, before a policy is applied"""
    category_id: int
    parent_id: Optional[int] = None
    child_ids: List[int] = []
    descendant_ids: List[int] = []


class DeletionResult(BaseModel):
    removed_ids: List[int]
    promoted_ids: List[int] = []


class CategoryOption(BaseModel):
    """One entry of a parent-selection control"""
    category_id: int
    label: str
    depth: int
