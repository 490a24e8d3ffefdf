"""Input validation schemas with XSS protection"""

from pydantic import BaseModel, Field, field_validator
import re
import bleach


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def sanitize_text(value: str) -> str:
        """Strip every HTML tag, keeping the text"""
        if not value:
            return value
        return bleach.clean(value, tags=[], strip=True)

    @staticmethod
    def validate_no_script(value: str) -> str:
        """Block common XSS patterns"""
        if not value:
            return value

        dangerous_patterns = [
            r'<script[^>]*>',
            r'javascript:',
            r'on\w+\s*=',
            r'<iframe',
        ]

        for pattern in dangerous_patterns:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value


class SearchQuerySchema(BaseModel, SafeStringMixin):
    """Validated search query"""
    query: str = Field(..., min_length=1, max_length=200)

    @field_validator('query')
    @classmethod
    def clean_query(cls, v):
        v = cls.validate_no_script(v.strip())
        # bleach escapes bare & and < as entities; the query is matched as plain text
        v = cls.sanitize_text(v).replace("&amp;", "&").replace("&lt;", "<").replace("&gt;", ">")
        if not v.strip():
            raise ValueError("Search query is required")
        return v.strip()


class CategorySlugSchema(BaseModel, SafeStringMixin):
    """Validated category slug from the URL"""
    slug: str = Field(..., min_length=1, max_length=100)

    @field_validator('slug')
    @classmethod
    def clean_slug(cls, v):
        return cls.validate_no_script(v)


def validate_pagination(page: int, limit: int, max_limit: int = 100) -> tuple[int, int]:
    """Clamp pagination parameters"""
    page = max(1, min(page, 10000))
    limit = max(1, min(limit, max_limit))
    return page, limit
