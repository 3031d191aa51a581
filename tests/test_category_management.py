"""
Tests for the telegram admin handlers
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import InlineKeyboardMarkup
from telegram.ext import ConversationHandler

from catalog.config import Config
from catalog.exceptions import StoreError
from catalog.services.category_service import CategoryService
from catalog.handlers.category_management import (
    CategoryManagementHandler, WAITING_CATEGORY_DESCRIPTION,
    WAITING_CATEGORY_NAME, WAITING_PARENT_CATEGORY
)

ADMIN_ID = 1001


@pytest.fixture(autouse=True)
def admin_config(monkeypatch):
    monkeypatch.setattr(Config, "ADMIN_IDS", [ADMIN_ID])
    monkeypatch.setattr(Config, "STORE_RETRY_DELAY", 0)


@pytest.fixture
def handler(service):
    return CategoryManagementHandler(service)


def make_update(user_id=ADMIN_ID, text=None, callback_data=None):
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.text = text
    update.message.reply_text = AsyncMock()
    if callback_data is None:
        update.callback_query = None
    else:
        update.callback_query.data = callback_data
        update.callback_query.answer = AsyncMock()
        update.callback_query.edit_message_text = AsyncMock()
    return update


def make_context(*args):
    context = MagicMock()
    context.args = list(args)
    context.user_data = {}
    return context


def replied(update) -> str:
    return update.message.reply_text.call_args.args[0]


@pytest.mark.unit
@pytest.mark.asyncio
class TestCategoryCommands:

    async def test_non_admin_is_denied(self, handler, store):
        update = make_update(user_id=7)

        await handler.delete_category(update, make_context("2", "cascade"))

        assert "دسترسی" in replied(update)
        assert len(await store.list()) == 7

    async def test_show_tree(self, handler):
        update = make_update()

        await handler.show_tree(update, make_context())

        text = replied(update)
        assert "Brakes (#1)" in text
        assert "        📁 Oil Filter (#7)" in text

    async def test_large_tree_is_sent_in_chunks(self, store):
        for i in range(400):
            await store.insert({'name': f"Spare Part Number {i:03d}", 'slug': f"spare-{i:03d}"})
        handler = CategoryManagementHandler(CategoryService(store))
        update = make_update()

        await handler.show_tree(update, make_context())

        chunks = [c.args[0] for c in update.message.reply_text.call_args_list]
        assert len(chunks) > 1
        assert all(len(chunk) <= 4096 for chunk in chunks)
        assert "Spare Part Number 399" in chunks[-1]

    async def test_show_tree_store_failure(self, store):
        store.list = AsyncMock(side_effect=StoreError("down"))
        handler = CategoryManagementHandler(CategoryService(store))
        update = make_update()

        await handler.show_tree(update, make_context())

        assert store.list.await_count == Config.STORE_RETRY_ATTEMPTS
        assert "پایگاه داده" in replied(update)

    async def test_view_category_breadcrumb(self, handler):
        update = make_update()

        await handler.view_category(update, make_context("4"))

        assert "Brakes › Disc Brakes › Brake Pads" in replied(update)

    async def test_move_cycle_message(self, handler, store):
        update = make_update()

        await handler.move_category(update, make_context("2", "7"))

        assert "حلقه" in replied(update)
        assert (await store.get(2)).parent_id is None

    async def test_move_to_root(self, handler, store):
        update = make_update()

        await handler.move_category(update, make_context("6", "root"))

        assert (await store.get(6)).parent_id is None
        assert "✅" in replied(update)

    async def test_delete_promote(self, handler, store):
        update = make_update()

        await handler.delete_category(update, make_context("6", "promote"))

        assert "[6]" in replied(update)
        assert (await store.get(7)).parent_id == 2

    async def test_delete_requires_policy(self, handler, store):
        update = make_update()

        await handler.delete_category(update, make_context("6"))

        assert "cascade" in replied(update)
        assert await store.get(6) is not None

    async def test_search(self, handler):
        update = make_update()

        await handler.search_categories(update, make_context("brake"))

        text = replied(update)
        assert "Brake Pads (#4)" in text
        assert "Engine" not in text

    async def test_registers_all_commands(self, handler):
        handlers = handler.handlers()

        assert isinstance(handlers[0], ConversationHandler)
        search = next(h for h in handlers[1:] if 'category_search' in h.commands)
        assert search.block is False
        commands = {c for h in handlers[1:] for c in h.commands}
        assert commands == {
            'categories', 'category', 'category_search', 'category_move', 'category_delete'
        }


@pytest.mark.unit
@pytest.mark.asyncio
class TestAddCategoryConversation:

    async def test_full_flow(self, handler, store):
        context = make_context()

        state = await handler.start_add_category(make_update(), context)
        assert state == WAITING_CATEGORY_NAME

        state = await handler.handle_category_name(make_update(text="Air Filter"), context)
        assert state == WAITING_CATEGORY_DESCRIPTION

        update = make_update(text="/skip")
        state = await handler.handle_category_description(update, context)
        assert state == WAITING_PARENT_CATEGORY
        markup = update.message.reply_text.call_args.kwargs['reply_markup']
        assert isinstance(markup, InlineKeyboardMarkup)
        labels = [row[0].text for row in markup.inline_keyboard]
        assert "— Filters" in labels

        update = make_update(callback_data="parent_category_6")
        state = await handler.handle_parent_selection(update, context)

        assert state == ConversationHandler.END
        created = (await store.list())[-1]
        assert (created.name, created.parent_id, created.description) == ("Air Filter", 6, "")
        assert context.user_data == {}

    async def test_duplicate_name_reports_error(self, handler, store):
        context = make_context()
        context.user_data.update({'new_category_name': "Brakes", 'new_category_description': ""})
        update = make_update(callback_data="parent_category_none")

        state = await handler.handle_parent_selection(update, context)

        assert state == ConversationHandler.END
        assert "brakes" in update.callback_query.edit_message_text.call_args.args[0]
        assert len(await store.list()) == 7
