"""Response template rendering."""

from kcode.template.engine import (
    TemplateEngine,
    TemplateRenderError,
    format_value,
    is_truthy,
)

__all__ = ["TemplateEngine", "TemplateRenderError", "format_value", "is_truthy"]
