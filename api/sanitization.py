"""
Input sanitization for free-text activity descriptions and display names.
"""

import re
import html
import logging
from typing import Optional

CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
MAX_DISPLAY_NAME_LENGTH = 50


def sanitize_activity_text(text: str, max_length: int) -> str:
    """
    Activity descriptions go to the analysis prompt, not to a browser, so they
    are not HTML escaped; control characters and embedded quotes are removed.
    """
    cleaned = CONTROL_CHARS.sub('', (text or '').strip()).replace('"', "'")
    if len(cleaned) > max_length:
        logging.warning(f"Activity text truncated from {len(cleaned)} to {max_length} characters")
        cleaned = cleaned[:max_length]
    return cleaned


def sanitize_display_name(name: Optional[str]) -> Optional[str]:
    """HTML-escaped, control characters dropped, truncated. None when nothing is left."""
    if not name:
        return None
    cleaned = CONTROL_CHARS.sub('', html.escape(name.strip()))
    if len(cleaned) > MAX_DISPLAY_NAME_LENGTH:
        logging.warning(f"Display name truncated from {len(cleaned)} to {MAX_DISPLAY_NAME_LENGTH} characters")
        cleaned = cleaned[:MAX_DISPLAY_NAME_LENGTH]
    return cleaned or None
