# core/templates.py

"""
Minimal ``{{variable}}`` templating for email bodies and subjects.

Supported syntax:
    {{ key }}                  replaced with str(variables[key]) ("" for None)
    {{#key}}...{{/key}}        kept when variables[key] is truthy, else dropped

Placeholders whose key is not in ``variables`` are left as-is.
"""

import re
from typing import Any, Dict, Optional

MAX_HTML_LENGTH = 1_000_000
MAX_TEXT_LENGTH = 500_000

_SECTION = re.compile(r"{{#\s*([\w.-]+)\s*}}(.*?){{/\s*\1\s*}}", re.DOTALL)
_TAG = re.compile(r"<[^>]*>")


def _is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _render_sections(template: str, variables: Dict[str, Any]) -> str:
    def replace(match: re.Match) -> str:
        key, body = match.group(1), match.group(2)
        if _is_truthy(variables.get(key)):
            return _render_sections(body, variables)
        return ""

    # Loop so sections exposed by an outer replacement are resolved too
    previous = None
    while previous != template:
        previous = template
        template = _SECTION.sub(replace, template)
    return template


def render_template(template: str, variables: Optional[Dict[str, Any]] = None) -> str:
    """
    Render a template string.

    Args:
        template: HTML / text / subject containing placeholders
        variables: Merge-field values

    Returns:
        Rendered string
    """
    if not template:
        return template or ""

    variables = variables or {}
    rendered = _render_sections(template, variables)

    for key, value in variables.items():
        placeholder = re.compile(r"{{\s*" + re.escape(str(key)) + r"\s*}}")
        replacement = "" if value is None else str(value)
        rendered = placeholder.sub(lambda _m: replacement, rendered)

    return rendered


def generate_preview(content: str, length: int = 150) -> str:
    """Plain-text preview: tags stripped, cut to `length` chars plus '...'."""
    text_content = _TAG.sub("", content or "")
    text_content = re.sub(r"\s+", " ", text_content).strip()

    if len(text_content) <= length:
        return text_content

    return text_content[:length].strip() + "..."


def validate_email_content(html: Optional[str], text: Optional[str]) -> Optional[str]:
    """Return an error message when the rendered content is unusable."""
    if not html and not text:
        return "Either HTML or text content is required"

    if html and len(html) > MAX_HTML_LENGTH:
        return "HTML content exceeds 1MB limit"

    if text and len(text) > MAX_TEXT_LENGTH:
        return "Text content exceeds 500KB limit"

    return None
