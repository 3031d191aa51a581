# catalog/services/search_service.py
import asyncio
import logging
from typing import List, Optional
from ..exceptions import CategoryError
from ..models.category import CategoryRecord
from .category_service import CategoryService


class SearchSuperseded(CategoryError):
    """A newer query replaced this one before it finished"""

    def __init__(self, query: str):
        super().__init__(f"Search '{query}' was superseded by a newer query")
        self.query = query


class SupersedingSearch:
    """Keeps only the newest search alive.

    Starting a new query cancels the one still in flight; its caller gets
    SearchSuperseded and the stale result is never delivered.
    """

    def __init__(self, category_service: CategoryService):
        self.category_service = category_service
        self._current: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(__name__)

    async def search(self, query: str) -> List[CategoryRecord]:
        """جستجو با لغو جستجوی قبلی"""
        previous = self._current
        if previous is not None and not previous.done():
            self.logger.debug("Superseding an in-flight category search")
            previous.cancel()

        task = asyncio.ensure_future(self.category_service.search(query))
        self._current = task
        try:
            return await task
        except asyncio.CancelledError:
            # the task was replaced, not the awaiting caller cancelled
            if self._current is not task and task.cancelled():
                raise SearchSuperseded(query) from None
            raise
        finally:
            if self._current is task:
                self._current = None

    def cancel(self):
        """لغو جستجوی در حال اجرا"""
        if self._current is not None and not self._current.done():
            self._current.cancel()
