"""Build placeholder values from JSON-schema-like nodes.

Used to pre-fill request bodies and parameter rows. Nothing here validates
against the schema and nothing raises: unknown shapes fall back to ``""``.
"""

import json
from typing import Any


def default_for_type(type_name: Any) -> Any:
    """Base placeholder for a declared schema ``type``."""
    if type_name == "string":
        return ""
    if type_name in ("number", "integer"):
        return 0
    if type_name == "boolean":
        return False
    if type_name == "array":
        return []
    if type_name == "object":
        return {}
    return ""


def synthesize(schema: Any, prefer_example: bool = True) -> Any:
    """Produce a representative value for ``schema``.

    An explicit ``example`` wins when ``prefer_example`` is set. ``allOf``
    branches are merged, ``oneOf``/``anyOf`` take their first branch, and
    objects are built property by property.
    """
    if not isinstance(schema, dict):
        return ""

    if prefer_example and "example" in schema:
        return schema["example"]

    if isinstance(schema.get("allOf"), list):
        merged: dict = {}
        for branch in schema["allOf"]:
            value = synthesize(branch, prefer_example)
            if isinstance(value, dict):
                merged.update(value)
        return merged

    for key in ("oneOf", "anyOf"):
        branches = schema.get(key)
        if isinstance(branches, list) and branches:
            return synthesize(branches[0], prefer_example)

    schema_type = schema.get("type")
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    if schema_type == "object" or (schema_type is None and properties):
        return {name: synthesize(prop, prefer_example) for name, prop in properties.items()}

    return default_for_type(schema_type)


def as_text(value: Any) -> str:
    """Render a synthesized value for a key/value row."""
    if isinstance(value, str):
        return value
    return json.dumps(value)
