import base64
import logging
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

BADGE_SIZE = (512, 512)


def sniff_image_mime(content: bytes) -> Optional[str]:
    """Returns the MIME type Pillow detects for the bytes, or None if they are not an image."""
    try:
        with Image.open(BytesIO(content)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError):
        return None


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def make_badge_data_url(image_bytes: bytes, mime_type: str = 'image/png') -> str:
    """
    Shrinks a generated visualization into a badge thumbnail and returns it as
    a WEBP data URL. Images Pillow cannot decode are passed through untouched.
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            if img.mode in ('RGBA', 'LA'):
                background = Image.new(img.mode[:-1], img.size, (255, 255, 255) if img.mode == 'RGBA' else 255)
                background.paste(img, mask=img.getchannel('A'))
                img = background

            img.thumbnail(BADGE_SIZE)
            output_buffer = BytesIO()
            img.convert('RGB').save(output_buffer, format='WEBP', quality=85)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not re-encode visualization ({mime_type}), keeping original: {e}")
        return to_data_url(image_bytes, mime_type)

    return to_data_url(output_buffer.getvalue(), 'image/webp')
