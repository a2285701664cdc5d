import html
from typing import Optional
import bleach

# Tags an admin may use when composing a bulk message
ALLOWED_TAGS = [
    'p', 'br', 'strong', 'b', 'em', 'i', 'u', 'a',
    'ul', 'ol', 'li', 'h1', 'h2', 'h3', 'h4', 'blockquote',
]

ALLOWED_ATTRIBUTES = {'a': ['href', 'title', 'target']}

ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']


def sanitize_html(html_content: Optional[str]) -> str:
    """
    Strip everything but a small set of formatting tags from user supplied HTML.
    Script, style and event handler content never survives.
    """
    if not html_content:
        return ''

    return bleach.clean(
        html_content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def sanitize_text(value: Optional[str]) -> str:
    """Escape plain text (names, subjects) for interpolation into HTML"""
    if value is None:
        return ''
    return html.escape(str(value), quote=True)
