"""Helpers for generating MCP Tool JSON Schemas from Pydantic models."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)

_NULL_VARIANT = {"type": "null"}


def _simplify_anyof_nulls(schema: dict[str, Any]) -> None:
    """Flatten ``anyOf: [{type: X}, {type: null}]`` into ``type: X`` in-place.

    Pydantic v2 emits that shape for ``X | None`` fields and several MCP hosts
    render it as an unknown type.
    """
    for prop in schema.get("properties", {}).values():
        any_of = prop.get("anyOf")
        if not any_of:
            continue

        non_null = [v for v in any_of if v != _NULL_VARIANT]
        if len(non_null) == 1 and len(any_of) == 2:
            del prop["anyOf"]
            prop.update(non_null[0])


def input_schema_from_model(model: type[ModelT]) -> dict[str, Any]:
    """Return a JSON Schema dict usable as an MCP Tool ``inputSchema``."""
    schema = model.model_json_schema(mode="validation")

    # Pydantic titles only add noise to host UIs.
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)

    _simplify_anyof_nulls(schema)
    return schema
