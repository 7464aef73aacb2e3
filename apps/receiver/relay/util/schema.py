"""Helpers for loading JSON schemas and collecting field errors."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

_SCHEMA_DIR = Path(__file__).resolve().parents[1] / "schemas"


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    path = _SCHEMA_DIR / f"{name}.schema.json"
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def _validator(name: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(name))


def invalid_fields(document: dict[str, Any], *, schema_name: str) -> set[str]:
    """Return the top-level property names of ``document`` that fail the schema.

    Missing required properties are reported by name, as are properties with
    the wrong type. Errors that are not attached to a property are ignored;
    the caller is expected to have checked the document is an object.
    """

    fields: set[str] = set()
    for error in _validator(schema_name).iter_errors(document):
        if error.validator == "required":
            fields.update(name for name in error.validator_value if name not in error.instance)
        elif error.path:
            fields.add(str(error.path[0]))
    return fields
