# catalog/handlers/category_management.py
import logging
from typing import Dict, Optional
from telegram import Update
from telegram.ext import (
    ContextTypes, ConversationHandler, CommandHandler,
    MessageHandler, CallbackQueryHandler, filters
)
from .base_handler import BaseHandler
from ..exceptions import CategoryError
from ..services.search_service import SearchSuperseded, SupersedingSearch
from ..utils.formatters import format_breadcrumb, format_tree, split_message
from ..utils.retry import retry_on_store_error

# Conversation states
WAITING_CATEGORY_NAME, WAITING_CATEGORY_DESCRIPTION, WAITING_PARENT_CATEGORY = range(3)

ACCESS_DENIED = "⛔️ شما به این بخش دسترسی ندارید."

logger = logging.getLogger(__name__)


def _parse_parent(value: str) -> Optional[int]:
    return None if value.lower() in ("root", "none", "0") else int(value)


class CategoryManagementHandler(BaseHandler):
    """هندلر مدیریت دسته‌بندی‌ها"""

    def __init__(self, category_service):
        super().__init__(category_service)
        self._searches: Dict[int, SupersedingSearch] = {}
        self._build_tree = retry_on_store_error()(category_service.build_tree)
        self._render_options = retry_on_store_error()(category_service.render_options)

    async def _deny(self, update: Update) -> bool:
        if await self.is_admin(update.effective_user.id):
            return False
        if update.callback_query:
            await update.callback_query.answer()
            await update.callback_query.edit_message_text(ACCESS_DENIED)
        else:
            await update.message.reply_text(ACCESS_DENIED)
        return True

    async def show_tree(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """نمایش درخت دسته‌بندی‌ها"""
        if await self._deny(update):
            return
        try:
            tree = await self._build_tree()
        except CategoryError as e:
            logger.error(f"Loading category tree failed: {e}")
            await update.message.reply_text(self.messages.category_error(e))
            return

        if not tree:
            await update.message.reply_text("🗂 هنوز دسته‌بندی‌ای ثبت نشده است.")
            return
        for chunk in split_message("🗂 دسته‌بندی‌ها:\n\n" + format_tree(tree)):
            await update.message.reply_text(chunk)

    async def view_category(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """نمایش جزئیات دسته‌بندی: /category <id>"""
        if await self._deny(update):
            return
        try:
            category_id = int(context.args[0])
        except (IndexError, ValueError):
            await update.message.reply_text("ℹ️ استفاده: /category <id>")
            return

        try:
            category = await self.category_service.get(category_id)
            ancestors = await self.category_service.ancestors(category_id)
        except CategoryError as e:
            await update.message.reply_text(self.messages.category_error(e))
            return

        await update.message.reply_text(
            self.messages.format_category(category, format_breadcrumb(ancestors, category))
        )

    async def search_categories(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """جستجوی دسته‌بندی‌ها: /category_search <query>"""
        if await self._deny(update):
            return
        query = " ".join(context.args or [])
        user_id = update.effective_user.id
        search = self._searches.setdefault(user_id, SupersedingSearch(self.category_service))

        try:
            results = await search.search(query)
        except SearchSuperseded:
            logger.debug(f"Search '{query}' superseded by a newer query")
            return
        except CategoryError as e:
            await update.message.reply_text(self.messages.category_error(e))
            return

        await update.message.reply_text(self.messages.format_search_results(query, results))

    async def move_category(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """جابجایی دسته‌بندی: /category_move <id> <parent_id|root>"""
        if await self._deny(update):
            return
        try:
            category_id = int(context.args[0])
            new_parent_id = _parse_parent(context.args[1])
        except (IndexError, ValueError):
            await update.message.reply_text("ℹ️ استفاده: /category_move <id> <parent_id|root>")
            return

        try:
            record = await self.category_service.move(category_id, new_parent_id)
        except CategoryError as e:
            await update.message.reply_text(self.messages.category_error(e))
            return

        target = f"#{record.parent_id}" if record.parent_id else "سطح اصلی"
        await update.message.reply_text(f"✅ دسته‌بندی «{record.name}» به {target} منتقل شد.")

    async def delete_category(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """حذف دسته‌بندی: /category_delete <id> <cascade|promote>"""
        if await self._deny(update):
            return
        try:
            category_id = int(context.args[0])
            policy = context.args[1]
        except (IndexError, ValueError):
            await update.message.reply_text(
                "ℹ️ استفاده: /category_delete <id> <cascade|promote>\n"
                "cascade: حذف همراه با تمام زیردسته‌ها\n"
                "promote: انتقال زیردسته‌ها به والد و حذف فقط همین دسته‌بندی"
            )
            return

        try:
            result = await self.category_service.remove(category_id, policy)
        except CategoryError as e:
            await update.message.reply_text(self.messages.category_error(e))
            return

        await update.message.reply_text(self.messages.format_deletion(result))

    async def start_add_category(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """شروع فرآیند افزودن دسته‌بندی"""
        if await self._deny(update):
            return ConversationHandler.END

        context.user_data.clear()
        await update.message.reply_text(
            "📝 نام دسته‌بندی را وارد کنید:",
            reply_markup=self.keyboards.cancel_keyboard()
        )
        return WAITING_CATEGORY_NAME

    async def handle_category_name(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """دریافت نام دسته‌بندی"""
        name = update.message.text.strip()
        if not name:
            await update.message.reply_text("❌ نام دسته‌بندی نمی‌تواند خالی باشد. دوباره وارد کنید:")
            return WAITING_CATEGORY_NAME

        context.user_data['new_category_name'] = name
        await update.message.reply_text(
            "📝 لطفاً توضیحات دسته‌بندی را وارد کنید:\n"
            "(برای رد کردن این مرحله روی /skip کلیک کنید)",
            reply_markup=self.keyboards.cancel_keyboard()
        )
        return WAITING_CATEGORY_DESCRIPTION

    async def handle_category_description(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """دریافت توضیحات دسته‌بندی"""
        if update.message.text == "/skip":
            context.user_data['new_category_description'] = ""
        else:
            context.user_data['new_category_description'] = update.message.text

        try:
            options = await self._render_options()
        except CategoryError as e:
            await update.message.reply_text(self.messages.category_error(e))
            context.user_data.clear()
            return ConversationHandler.END

        await update.message.reply_text(
            "🔍 آیا این دسته‌بندی زیرمجموعه دسته‌بندی دیگری است؟\n"
            "لطفاً دسته‌بندی والد را انتخاب کنید:",
            reply_markup=self.keyboards.parent_options(options)
        )
        return WAITING_PARENT_CATEGORY

    async def handle_parent_selection(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """پردازش انتخاب دسته‌بندی والد و ایجاد دسته‌بندی"""
        query = update.callback_query
        await query.answer()

        parent_data = query.data.split('_')[2]
        parent_id = None if parent_data == 'none' else int(parent_data)

        try:
            category = await self.category_service.create(
                name=context.user_data['new_category_name'],
                description=context.user_data.get('new_category_description', ""),
                parent_id=parent_id
            )
        except CategoryError as e:
            await query.edit_message_text(self.messages.category_error(e))
        else:
            await query.edit_message_text(
                f"✅ دسته‌بندی «{category.name}» با شناسه #{category.category_id} ایجاد شد."
            )

        # پاک کردن داده‌های موقت
        context.user_data.clear()
        return ConversationHandler.END

    def conversation_handler(self) -> ConversationHandler:
        """هندلر مکالمه افزودن دسته‌بندی"""
        return ConversationHandler(
            entry_points=[CommandHandler('category_add', self.start_add_category)],
            states={
                WAITING_CATEGORY_NAME: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_category_name)
                ],
                WAITING_CATEGORY_DESCRIPTION: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_category_description),
                    CommandHandler('skip', self.handle_category_description)
                ],
                WAITING_PARENT_CATEGORY: [
                    CallbackQueryHandler(self.handle_parent_selection, pattern='^parent_category_')
                ]
            },
            fallbacks=[
                CommandHandler('cancel', self.cancel_conversation),
                CallbackQueryHandler(self.cancel_conversation, pattern='^cancel$')
            ]
        )

    def handlers(self):
        """تمام هندلرهای مدیریت دسته‌بندی"""
        return [
            self.conversation_handler(),
            CommandHandler('categories', self.show_tree),
            CommandHandler('category', self.view_category),
            CommandHandler('category_search', self.search_categories, block=False),
            CommandHandler('category_move', self.move_category),
            CommandHandler('category_delete', self.delete_category)
        ]
