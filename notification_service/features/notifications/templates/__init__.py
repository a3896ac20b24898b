"""Template rendering, caching and the default template set."""

from __future__ import annotations

from .cache import TemplateCache, TemplateSnapshot
from .renderer import TemplateRenderer, get_template_renderer
from .seeds import DEFAULT_TEMPLATES, seed_default_templates

__all__ = [
    "DEFAULT_TEMPLATES",
    "TemplateCache",
    "TemplateRenderer",
    "TemplateSnapshot",
    "get_template_renderer",
    "seed_default_templates",
]
