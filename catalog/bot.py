# catalog/bot.py
import asyncio
import logging
from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes
from .config import Config
from .database import Database, PostgresCategoryStore
from .handlers import CategoryManagementHandler
from .services.category_service import CategoryService
from .services.image_service import ImageService

class CatalogBot:
    def __init__(self, category_service: CategoryService, token: str = None):
        """راه‌اندازی ربات"""
        self.category_service = category_service
        self.application = Application.builder().token(token or Config.TELEGRAM_TOKEN).build()
        self.logger = logging.getLogger(__name__)
        self.setup_handlers()

    def setup_handlers(self):
        """تنظیم هندلرهای ربات"""
        self.application.add_handler(CommandHandler("start", self.start_command))

        # هندلرهای مدیریت دسته‌بندی‌ها
        category_handler = CategoryManagementHandler(self.category_service)
        for handler in category_handler.handlers():
            self.application.add_handler(handler)

        self.application.add_error_handler(self.on_error)

    @staticmethod
    async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
        """راهنمای دستورات"""
        await update.message.reply_text(
            "🗂 مدیریت دسته‌بندی‌ها\n\n"
            "/categories - نمایش درخت دسته‌بندی‌ها\n"
            "/category <id> - جزئیات دسته‌بندی\n"
            "/category_add - افزودن دسته‌بندی\n"
            "/category_search <متن> - جستجو\n"
            "/category_move <id> <parent_id|root> - جابجایی\n"
            "/category_delete <id> <cascade|promote> - حذف"
        )

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        self.logger.error("Unhandled error while processing an update", exc_info=context.error)

    async def start(self):
        """اجرای ربات تا زمان توقف"""
        async with self.application:
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Bot is polling")
            try:
                await asyncio.Event().wait()
            finally:
                await self.application.updater.stop()
                await self.application.stop()

    @classmethod
    async def create(cls, db: Database) -> "CatalogBot":
        """ساخت ربات با سرویس‌های متصل به دیتابیس"""
        service = CategoryService(PostgresCategoryStore(db), image_service=ImageService())
        return cls(service)
