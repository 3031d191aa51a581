"""Category record stores"""
from .category_store import CategoryStore, MemoryCategoryStore
from .database import Database
from .postgres_store import PostgresCategoryStore

__all__ = [
    'CategoryStore',
    'MemoryCategoryStore',
    'Database',
    'PostgresCategoryStore'
]
