# catalog/services/image_service.py
import aiofiles
import hashlib
import logging
import magic
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from ..config import Config
from ..exceptions import InvalidCategoryData, StoreError

class ImageService:
    """سرویس ذخیره تصاویر دسته‌بندی‌ها"""

    ALLOWED_TYPES = {
        'image/jpeg': '.jpg',
        'image/png': '.png',
        'image/gif': '.gif',
        'image/webp': '.webp'
    }

    def __init__(self, upload_path: Optional[Path] = None, base_url: Optional[str] = None,
                 max_size: Optional[int] = None):
        self.upload_path = Path(upload_path or Config.UPLOAD_DIR)
        self.base_url = (base_url or Config.IMAGE_BASE_URL).rstrip('/')
        self.max_size = max_size or Config.MAX_IMAGE_SIZE
        self.logger = logging.getLogger(__name__)
        self.upload_path.mkdir(parents=True, exist_ok=True)

    async def upload(self, content: bytes, original_filename: str) -> Dict[str, Any]:
        """ذخیره تصویر آپلود شده و برگرداندن آدرس آن"""
        if not content:
            raise InvalidCategoryData("Image file is empty", field='image')

        if len(content) > self.max_size:
            raise InvalidCategoryData(
                f"Image exceeds the {self.max_size} byte limit", field='image'
            )

        mime_type = magic.from_buffer(content, mime=True)
        if mime_type not in self.ALLOWED_TYPES:
            raise InvalidCategoryData(
                f"Image type '{mime_type}' is not allowed", field='image'
            )

        # نام یکتا بر اساس زمان و هش محتوا
        file_hash = hashlib.sha256(content).hexdigest()
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f"{timestamp}_{file_hash[:8]}{self.ALLOWED_TYPES[mime_type]}"
        save_path = self.upload_path / filename

        try:
            async with aiofiles.open(save_path, 'wb') as f:
                await f.write(content)
        except OSError as e:
            self.logger.error(f"Saving image {original_filename} failed: {e}")
            raise StoreError(f"Could not store image: {e}") from e

        self.logger.info(f"Image {original_filename} stored as {filename}")
        return {
            'url': f"{self.base_url}/{filename}",
            'filename': filename,
            'mime_type': mime_type,
            'size': len(content)
        }

    async def delete(self, image_url: str) -> bool:
        """حذف تصویر ذخیره‌شده توسط همین سرویس"""
        if not image_url.startswith(f"{self.base_url}/"):
            return False
        file_path = self.upload_path / Path(image_url).name
        if not file_path.exists():
            return False
        try:
            file_path.unlink()
        except OSError as e:
            self.logger.warning(f"Removing old image {file_path.name} failed: {e}")
            return False
        self.logger.info(f"Old image {file_path.name} removed")
        return True
