"""Placeholder substitution for notification templates.

A template is plain text or HTML with ``{{name}}`` placeholders. Substitution
is the only operation: the text between the braces is a lookup key and is
never evaluated, and any other brace or ``{%`` text is ordinary content. A
placeholder with no matching variable is left exactly as written, so a
partially filled template still goes out and the gap is visible to the reader.

Values render as their string form. HTML rendering (email bodies) escapes
values with ``markupsafe``; the template's own markup is never touched.
"""

from __future__ import annotations

from collections.abc import Mapping
import re
from typing import Any

from markupsafe import escape

from notification_service.features.notifications.exceptions import TemplateRenderError
from notification_service.infra.logging import get_lazy_logger

_lazy = get_lazy_logger(__name__)

# Inner text may not contain braces, so "{{ {{a}} }}" resolves the inner "{{a}}"
PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

_MISSING = object()


def _lookup(variables: Mapping[str, Any], key: str) -> Any:
    """Value for ``key``. A dotted key that is not itself a variable walks nested mappings."""
    if key in variables:
        return variables[key]
    value: Any = variables
    for part in key.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


class TemplateRenderer:
    """Renders subject and body patterns.

    Subjects and realtime payloads are rendered as text. Email bodies are HTML,
    so substituted values are escaped when ``escape_html`` is enabled.
    """

    def __init__(self, *, escape_html: bool = True) -> None:
        self._escape_html = escape_html

    def render(self, pattern: str | None, variables: Mapping[str, Any], *, html: bool = False) -> str:
        """Substitute every resolvable placeholder in ``pattern``.

        Args:
            pattern: Template text; None renders as an empty string.
            variables: Placeholder values. None renders as an empty string.
            html: Escape substituted values for an HTML body.

        Returns:
            The rendered text. Missing variables never fail a render.

        Raises:
            TemplateRenderError: If a value cannot be converted to text.
        """
        if not pattern:
            return ""
        convert = escape if html and self._escape_html else str

        def substitute(match: re.Match[str]) -> str:
            key = match.group(1)
            value = _lookup(variables, key)
            if value is _MISSING:
                return match.group(0)
            if value is None:
                return ""
            try:
                return str(convert(value))
            except Exception as exc:
                msg = f"Failed to render placeholder {key!r}: {exc}"
                raise TemplateRenderError(msg) from exc

        rendered = PLACEHOLDER.sub(substitute, pattern)
        _lazy.debug(lambda: f"Rendered template ({len(pattern)} chars, html={html})")
        return rendered

    def render_subject(self, pattern: str | None, variables: Mapping[str, Any]) -> str:
        return self.render(pattern, variables, html=False)

    def render_body(self, pattern: str | None, variables: Mapping[str, Any]) -> str:
        return self.render(pattern, variables, html=True)

    def render_text(self, pattern: str | None, variables: Mapping[str, Any]) -> str:
        """Body rendered without escaping, for channels that do not display HTML."""
        return self.render(pattern, variables, html=False)

    def referenced_variables(self, pattern: str | None) -> set[str]:
        """Keys referenced by placeholders in ``pattern``."""
        if not pattern:
            return set()
        return {match.group(1) for match in PLACEHOLDER.finditer(pattern) if match.group(1)}

    def missing_variables(self, pattern: str | None, variables: Mapping[str, Any]) -> list[str]:
        """Referenced keys that resolve to nothing in ``variables``, sorted."""
        return sorted(key for key in self.referenced_variables(pattern) if _lookup(variables, key) is _MISSING)

    def validate(self, pattern: str | None, variables: Mapping[str, Any]) -> bool:
        """True when every referenced placeholder resolves."""
        return not self.missing_variables(pattern, variables)


_renderer: TemplateRenderer | None = None


def get_template_renderer() -> TemplateRenderer:
    """Get or create the singleton TemplateRenderer instance."""
    global _renderer
    if _renderer is None:
        _renderer = TemplateRenderer()
    return _renderer
