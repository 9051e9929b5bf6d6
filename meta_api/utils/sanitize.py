"""
Input Sanitization Utilities

HTML sanitization for meta values and schema text, built on bleach.
These functions are used as sanitize rules on registered meta keys.
"""

import bleach
from typing import Optional
import re


# Allowed tags for rich meta values (e.g. a formatted excerpt)
RICH_CONTENT_TAGS = [
    'p', 'br', 'strong', 'em', 'u', 'blockquote', 'code', 'pre',
    'ul', 'ol', 'li', 'a', 'span'
]

# Allowed attributes for rich meta values
RICH_CONTENT_ATTRS = {
    'a': ['href', 'title', 'rel'],
    'code': ['class'],
    'span': ['class'],
}

# Allowed protocols for URLs
ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']


def sanitize_html(
    text: Optional[str],
    tags: Optional[list[str]] = None,
    attributes: Optional[dict] = None,
) -> str:
    """
    Sanitize HTML content to prevent XSS attacks.

    Args:
        text: The HTML text to sanitize
        tags: List of allowed HTML tags (default: RICH_CONTENT_TAGS)
        attributes: Dict of allowed attributes per tag (default: RICH_CONTENT_ATTRS)

    Returns:
        Sanitized HTML string
    """
    if text is None:
        return ""

    return bleach.clean(
        text,
        tags=tags if tags is not None else RICH_CONTENT_TAGS,
        attributes=attributes if attributes is not None else RICH_CONTENT_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )


def sanitize_plain_text(text: Optional[str]) -> str:
    """
    Strip all HTML tags and return plain text only.
    Used for schema descriptions and plain string meta values.

    Args:
        text: The text to sanitize

    Returns:
        Plain text with HTML tags stripped
    """
    if text is None:
        return ""

    cleaned = bleach.clean(text, tags=[], strip=True)

    # Normalize whitespace
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()

    return cleaned


def sanitize_url(url: Optional[str]) -> Optional[str]:
    """
    Validate and sanitize URLs to prevent javascript: and data: URLs.

    Args:
        url: The URL to sanitize

    Returns:
        Sanitized URL or None if invalid
    """
    if not url:
        return None

    url = url.strip()
    url_lower = url.lower()

    dangerous_protocols = ['javascript:', 'data:', 'vbscript:', 'file:']
    if any(url_lower.startswith(proto) for proto in dangerous_protocols):
        return None

    # If no protocol, assume https://
    if not any(url_lower.startswith(f'{proto}:') for proto in ALLOWED_PROTOCOLS):
        if not url_lower.startswith('//'):
            url = f'https://{url}'

    return url
