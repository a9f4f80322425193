"""JSON Schema validation for authentication templates.

Only the parts of a template the provisioning pipeline reads are constrained;
scripts, scenarios and any other members pass through untouched.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

_OPTIONAL_STRING = {"type": "string"}

TEMPLATE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://bitauth.com/schemas/bitauth-provisioning-template.schema.json",
    "title": "Authentication template (provisioning subset)",
    "type": "object",
    "required": ["entities"],
    "properties": {
        "name": _OPTIONAL_STRING,
        "description": _OPTIONAL_STRING,
        "entities": {
            "type": "object",
            "additionalProperties": {"$ref": "#/$defs/entity"},
        },
    },
    "$defs": {
        "entity": {
            "type": "object",
            "properties": {
                "name": _OPTIONAL_STRING,
                "description": _OPTIONAL_STRING,
                "variables": {
                    "type": ["object", "null"],
                    "additionalProperties": {"$ref": "#/$defs/variable"},
                },
            },
        },
        "variable": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {"type": "string"},
                "name": _OPTIONAL_STRING,
                "description": _OPTIONAL_STRING,
                "hdPublicKeyDerivationPath": _OPTIONAL_STRING,
            },
        },
    },
}


@lru_cache(maxsize=1)
def template_validator() -> Draft202012Validator:
    """Cached validator for ``TEMPLATE_SCHEMA``."""
    Draft202012Validator.check_schema(TEMPLATE_SCHEMA)
    return Draft202012Validator(TEMPLATE_SCHEMA)


def validate_template_document(obj: Any) -> List[str]:
    """Every schema violation of ``obj`` as ``<json path>: <message>``.

    Returns an empty list when the document is structurally valid.
    """
    errors = sorted(template_validator().iter_errors(obj), key=lambda e: e.json_path)
    return [f"{error.json_path}: {error.message}" for error in errors]
