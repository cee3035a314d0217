import html
import re
from typing import Optional

import bleach

TEXT_MAX_LENGTH = 5000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_text(value: Optional[str], max_length: int = TEXT_MAX_LENGTH) -> Optional[str]:
    """
    Strip HTML tags and control characters from free text (notes, bios, messages).
    Returns None if input is None.

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    value = value.strip()
    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    # bleach escapes the text it keeps; stored values are plain text
    cleaned = html.unescape(bleach.clean(value, tags=[], attributes={}, strip=True))
    return _CONTROL_CHARS.sub("", cleaned)

