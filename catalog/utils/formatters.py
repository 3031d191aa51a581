# catalog/utils/formatters.py
from datetime import datetime
from typing import List, Optional
import pytz
from ..config import Config
from ..models.category import CategoryNode, CategoryRecord

def format_datetime(dt: Optional[datetime]) -> str:
    """قالب‌بندی تاریخ و زمان"""
    if dt is None:
        return "-"
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local_time = dt.astimezone(local_tz)
    return local_time.strftime("%Y-%m-%d %H:%M:%S")

def format_tree(nodes: List[CategoryNode]) -> str:
    """نمایش متنی درخت دسته‌بندی‌ها"""
    lines = []
    stack = [(node, 0) for node in reversed(nodes)]
    while stack:
        node, depth = stack.pop()
        icon = "📂" if node.subcategories else "📁"
        lines.append(f"{'    ' * depth}{icon} {node.name} (#{node.category_id})")
        stack.extend((child, depth + 1) for child in reversed(node.subcategories))
    return "\n".join(lines)

def split_message(text: str, limit: int = 4000) -> List[str]:
    """تقسیم متن طولانی به چند پیام در مرز خطوط"""
    chunks = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks

def format_breadcrumb(ancestors: List[CategoryRecord], record: CategoryRecord) -> str:
    """مسیر کامل دسته‌بندی از ریشه"""
    return " › ".join([a.name for a in ancestors] + [record.name])
