"""
Variable Resolver - Resolves {{key}} placeholders from a run context

Supports:
- {{key}} - top-level context value
- Nested paths: {{patient.name}}
- Unresolved placeholders are left untouched ("{{missing}}" stays as-is)
"""

import re
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


class VariableResolver:
    """
    Resolves placeholder references against a flat (or nested) context map.

    Examples:
        {{entity_id}} -> "a1"
        {{patient.name}} -> "Sara"
        "Hello {{patient.name}}" -> "Hello Sara"
    """

    # Pattern to match {{key}} or {{key.path}}
    VARIABLE_PATTERN = re.compile(r'\{\{\s*(\w+(?:\.\w+)*)\s*\}\}')

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        """
        Initialize resolver with available data.

        Args:
            context: Run context (caller-supplied keys plus entity_type/entity_id)
        """
        self.context = context or {}

    def render(self, template: Any) -> str:
        """
        Render a template string, always returning a string.

        Every resolvable placeholder is replaced by str(value); unresolved
        placeholders are kept verbatim.
        """
        if template is None:
            return ''
        text = str(template)

        def replace_var(match):
            value = self.lookup(match.group(1))
            if value is _MISSING:
                return match.group(0)
            return self.stringify(value)

        return self.VARIABLE_PATTERN.sub(replace_var, text)

    def resolve(self, value: Any) -> Any:
        """
        Resolve placeholders in value (recursively handles dicts, lists, strings).

        If a string is exactly one placeholder, the raw context value is
        returned so record payloads keep their types.
        """
        if isinstance(value, str):
            match = self.VARIABLE_PATTERN.fullmatch(value)
            if match:
                resolved = self.lookup(match.group(1))
                return value if resolved is _MISSING else resolved
            return self.render(value)
        elif isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self.resolve(item) for item in value]
        else:
            # Primitive value (int, bool, None, etc)
            return value

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at path, or default when it does not resolve."""
        value = self.lookup(path)
        return default if value is _MISSING else value

    def lookup(self, path: str) -> Any:
        """
        Walk a dotted path through the context.

        Returns the module-level _MISSING sentinel when any segment is absent,
        so that a present-but-None value can be told apart from a missing key.
        """
        current: Any = self.context
        for part in path.split('.'):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                logger.debug(f"Placeholder not resolved: {path}")
                return _MISSING
        return current

    @staticmethod
    def stringify(value: Any) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if value is None:
            return 'null'
        return str(value)
