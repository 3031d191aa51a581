# catalog/utils/messages.py
from typing import List
from ..exceptions import (
    BrokenReferenceError, CategoryError, CycleDetected, DuplicateSlug,
    IntegrityError, InvalidCategoryData, NotFound, ParentNotFound,
    SelfParent, StoreError
)
from ..models.category import CategoryRecord, DeletionResult
from .formatters import format_datetime

class Messages:
    @staticmethod
    def format_category(category: CategoryRecord, breadcrumb: str = "") -> str:
        """قالب‌بندی اطلاعات دسته‌بندی"""
        return (
            f"📁 {category.name} (#{category.category_id})\n"
            f"🔗 {breadcrumb or category.name}\n"
            f"📝 توضیحات: {category.description or 'ندارد'}\n"
            f"🖼 تصویر: {category.image_url or 'ندارد'}\n"
            f"🕒 ایجاد: {format_datetime(category.created_at)}\n"
        )

    @staticmethod
    def format_search_results(query: str, results: List[CategoryRecord]) -> str:
        """قالب‌بندی نتایج جستجو"""
        if not results:
            return f"🔍 نتیجه‌ای برای «{query}» یافت نشد."
        lines = [f"🔍 {len(results)} نتیجه برای «{query}»:"]
        lines.extend(f"- {r.name} (#{r.category_id})" for r in results)
        return "\n".join(lines)

    @staticmethod
    def format_deletion(result: DeletionResult) -> str:
        """قالب‌بندی نتیجه حذف"""
        message = f"✅ {len(result.removed_ids)} دسته‌بندی حذف شد: {result.removed_ids}"
        if result.promoted_ids:
            message += f"\n↗️ زیردسته‌های منتقل‌شده: {result.promoted_ids}"
        return message

    @staticmethod
    def category_error(error: CategoryError) -> str:
        """پیام مناسب برای هر نوع خطای دسته‌بندی"""
        if isinstance(error, ParentNotFound):
            return f"❌ دسته‌بندی والد #{error.parent_id} وجود ندارد."
        if isinstance(error, DuplicateSlug):
            return f"❌ دسته‌بندی دیگری با نام مشابه ({error.slug}) وجود دارد. نام دیگری انتخاب کنید."
        if isinstance(error, SelfParent):
            return "❌ یک دسته‌بندی نمی‌تواند والد خودش باشد."
        if isinstance(error, CycleDetected):
            return (
                f"❌ دسته‌بندی #{error.new_parent_id} زیرمجموعه #{error.category_id} است؛ "
                "جابجایی باعث ایجاد حلقه می‌شود."
            )
        if isinstance(error, InvalidCategoryData):
            return f"❌ داده نامعتبر: {error}"
        if isinstance(error, NotFound):
            return f"❌ دسته‌بندی #{error.category_id} یافت نشد."
        if isinstance(error, (BrokenReferenceError, IntegrityError)):
            return "⚠️ ساختار دسته‌بندی‌ها در پایگاه داده ناسازگار است. با پشتیبانی فنی تماس بگیرید."
        if isinstance(error, StoreError):
            return "⏳ ارتباط با پایگاه داده برقرار نشد. لطفاً کمی بعد دوباره تلاش کنید."
        return f"❌ خطا: {error}"
