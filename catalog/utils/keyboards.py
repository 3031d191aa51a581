# catalog/utils/keyboards.py
from typing import List
from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from ..models.category import CategoryOption

class Keyboards:
    @staticmethod
    def cancel_keyboard() -> InlineKeyboardMarkup:
        """کیبورد انصراف"""
        return InlineKeyboardMarkup([[
            InlineKeyboardButton("🔙 انصراف", callback_data="cancel")
        ]])

    @staticmethod
    def parent_options(options: List[CategoryOption]) -> InlineKeyboardMarkup:
        """کیبورد انتخاب دسته‌بندی والد"""
        keyboard = [[
            InlineKeyboardButton("🌐 دسته‌بندی اصلی", callback_data="parent_category_none")
        ]]
        for option in options:
            keyboard.append([
                InlineKeyboardButton(
                    option.label,
                    callback_data=f"parent_category_{option.category_id}"
                )
            ])
        keyboard.append([InlineKeyboardButton("🔙 انصراف", callback_data="cancel")])
        return InlineKeyboardMarkup(keyboard)
