"""
Template rendering for {{variable}} placeholders
"""
import re
from typing import Any

from .context import FlowContext

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def format_value(value: Any) -> str:
    """String form of a context value as flow authors expect to see it"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "\n".join(format_value(item) for item in value)
    return str(value)


def render_template(template: str, context: FlowContext) -> str:
    """
    Replace {{name}} placeholders with values from the context.

    Unknown names are left as written. Substituted values are not scanned
    again, so a value containing "{{x}}" stays literal.
    """
    if not template:
        return ""

    def _substitute(match: "re.Match[str]") -> str:
        value = context.get(match.group(1))
        if value is None:
            return match.group(0)
        return format_value(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)
