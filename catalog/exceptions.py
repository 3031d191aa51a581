# catalog/exceptions.py
from typing import Optional


class CategoryError(Exception):
    """Base class for every error raised by the category engine"""


class ValidationError(CategoryError):
    """Input rejected before anything was written to the store"""


class InvalidCategoryData(ValidationError):
    """Empty name, unusable slug, blank query or a forbidden patch field"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ParentNotFound(ValidationError):
    def __init__(self, parent_id: int):
        super().__init__(f"Parent category {parent_id} does not exist")
        self.parent_id = parent_id


class DuplicateSlug(ValidationError):
    def __init__(self, slug: str, existing_id: Optional[int] = None):
        super().__init__(f"Slug '{slug}' is already used by another category")
        self.slug = slug
        self.existing_id = existing_id


class SelfParent(ValidationError):
    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} cannot be its own parent")
        self.category_id = category_id


class CycleDetected(ValidationError):
    def __init__(self, category_id: int, new_parent_id: int):
        super().__init__(
            f"Moving category {category_id} under {new_parent_id} would create a cycle"
        )
        self.category_id = category_id
        self.new_parent_id = new_parent_id


class BrokenReferenceError(CategoryError):
    """A record points at a parent that is not in the record set"""

    def __init__(self, category_id: int, parent_id: int):
        super().__init__(
            f"Category {category_id} references missing parent {parent_id}"
        )
        self.category_id = category_id
        self.parent_id = parent_id


class IntegrityError(CategoryError):
    """The stored graph is already corrupt (cycle or dangling link)"""

    def __init__(self, message: str, category_id: Optional[int] = None):
        super().__init__(message)
        self.category_id = category_id


class NotFound(CategoryError):
    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} not found")
        self.category_id = category_id


class StoreError(CategoryError):
    """Persistence failed; the only error worth retrying as-is"""
