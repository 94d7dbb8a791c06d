"""
Variable resolver for {{path.to.value}} placeholders in node inputs.

Deliberately not an expression language: a placeholder is a dotted path
looked up in the execution context. Resolution is total - unknown paths
become the empty string and nothing here raises.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
FIELD_MAP_PREFIX = "fieldMap."
FIELD_MAP_NODE_TYPES = frozenset({"data-table"})

_MISSING = object()


class VariableResolver:
    """Substitutes {{dotted.path}} placeholders against a context mapping."""

    def resolve(self, value: Any, context: dict[str, Any]) -> Any:
        """
        Resolve placeholders in any input value.

        - A string made of a single placeholder that points at an object or
          array returns that structure.
        - Other strings are template-resolved and stay strings.
        - Objects and arrays are resolved through their JSON text so that
          placeholders nested anywhere inside them resolve too.
        - Everything else passes through unchanged.
        """
        if isinstance(value, str):
            whole = PLACEHOLDER_PATTERN.fullmatch(value.strip())
            if whole:
                found = self.lookup(whole.group(1), context)
                if isinstance(found, (dict, list)):
                    return copy.deepcopy(found)
            return self.resolve_template(value, context)

        if isinstance(value, (dict, list)):
            return self._resolve_structure(value, context)

        return value

    def resolve_template(self, template: str, context: dict[str, Any]) -> str:
        """Replace every placeholder in a string. Always returns a string."""

        def replacer(match: re.Match[str]) -> str:
            return self._stringify(self.lookup(match.group(1), context))

        return PLACEHOLDER_PATTERN.sub(replacer, template)

    def resolve_inputs(self, inputs: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
        """Resolve every field of a node's input mapping."""
        return {key: self.resolve(value, context) for key, value in (inputs or {}).items()}

    def compose_field_map(self, inputs: dict[str, Any], node_type: str) -> dict[str, Any]:
        """
        Fold ``fieldMap.<column>`` inputs into a single ``data`` object.

        Only applies to node types fed by the form-style field mapper, and only
        when at least one mapped field has a non-empty value.
        """
        if node_type not in FIELD_MAP_NODE_TYPES:
            return inputs

        mapped = {
            key[len(FIELD_MAP_PREFIX):]: value
            for key, value in inputs.items()
            if key.startswith(FIELD_MAP_PREFIX) and value is not None and value != ""
        }
        if not mapped:
            return inputs
        return {**inputs, "data": mapped}

    def lookup(self, path: str, context: Any) -> Any:
        """
        Walk a dotted path through nested mappings and lists.

        Keys match case-sensitively first, then case-insensitively. Returns
        ``None`` when any segment is missing.
        """
        current = context
        for part in path.strip().split("."):
            current = self._step(current, part.strip())
            if current is _MISSING:
                return None
        return current

    def _step(self, current: Any, part: str) -> Any:
        if isinstance(current, dict):
            if part in current:
                return current[part]
            lowered = part.lower()
            for key, value in current.items():
                if isinstance(key, str) and key.lower() == lowered:
                    return value
            return _MISSING
        if isinstance(current, list) and part.isdigit():
            index = int(part)
            return current[index] if index < len(current) else _MISSING
        return _MISSING

    def _resolve_structure(self, value: dict[str, Any] | list[Any], context: dict[str, Any]) -> Any:
        """Serialize, substitute inside the JSON text, parse back."""
        serialized = json.dumps(value, default=str)

        def replacer(match: re.Match[str]) -> str:
            text = self._stringify(self.lookup(match.group(1), context))
            # Placeholders only ever sit inside JSON string literals
            return json.dumps(text)[1:-1]

        try:
            return json.loads(PLACEHOLDER_PATTERN.sub(replacer, serialized))
        except ValueError:
            logger.warning("Could not round-trip structured input, resolving leaves instead")
            if isinstance(value, dict):
                return {k: self.resolve(v, context) for k, v in value.items()}
            return [self.resolve(v, context) for v in value]

    def _stringify(self, value: Any) -> str:
        """Convert a looked-up value to its template text."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return str(value)


# Singleton instance
variable_resolver = VariableResolver()
