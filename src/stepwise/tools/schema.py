"""OpenAI function-calling schemas from tool parameter models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stepwise.tools.base import Tool


def parameters_schema(tool: Tool) -> dict[str, Any]:
    schema = tool.params_model.model_json_schema()
    schema.pop("title", None)
    schema.setdefault("properties", {})
    return schema


def tool_schema(tool: Tool) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": parameters_schema(tool),
        },
    }
