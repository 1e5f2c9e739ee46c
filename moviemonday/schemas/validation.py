"""Input validation helpers with XSS protection"""

from typing import List, Optional
import re
import bleach

# Allowed HTML tags for user input
ALLOWED_TAGS = ['b', 'i', 'u', 'em', 'strong', 'p', 'br']

DANGEROUS_PATTERNS = [
    r'<script[^>]*>',
    r'javascript:',
    r'on\w+\s*=',
    r'<iframe',
]


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def sanitize_html(value: Optional[str]) -> Optional[str]:
        """Remove dangerous HTML/JavaScript"""
        if not value:
            return value
        return bleach.clean(value, tags=ALLOWED_TAGS, strip=True)

    @staticmethod
    def validate_no_script(value: Optional[str]) -> Optional[str]:
        """Block common XSS patterns"""
        if not value:
            return value

        for pattern in DANGEROUS_PATTERNS:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value

    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = cls.validate_no_script(value.strip())
        return cls.sanitize_html(value)


def clean_string_list(values: Optional[List[str]]) -> List[str]:
    """
    Trim entries and drop blanks and stray "[]" markers left by older clients.
    Entries are plain text, so markup is stripped entirely.
    """
    cleaned = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if not value or value.replace(" ", "") == "[]":
            continue
        cleaned.append(bleach.clean(value, tags=[], strip=True))
    return cleaned


# Utility validation functions
def validate_pagination(page: int, limit: int) -> tuple[int, int]:
    """Validate pagination parameters"""
    page = max(1, min(page, 10000))
    limit = max(1, min(limit, 100))
    return page, limit
