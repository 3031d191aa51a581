"""ماژول هندلرها"""
from .base_handler import BaseHandler
from .category_management import CategoryManagementHandler

__all__ = [
    'BaseHandler',
    'CategoryManagementHandler'
]
