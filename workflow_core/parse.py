"""
Parse workflow-store payloads into a strongly typed Workflow.

Unknown parameter types and block kinds are reported as such before
pydantic validation runs, so callers see ``UnknownParameterType`` /
``UnsupportedBlockKind`` rather than a generic union-tag error.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import ValidationError

from workflow_core.errors import InvalidDefinitionError
from workflow_core.parameters import classify
from workflow_core.schema import Workflow, check_block_kinds


def parse_workflow(payload: Any) -> Workflow:
    """
    Accepts either a JSON string or a mapping shaped like a workflow record and
    returns a validated Workflow instance.
    """

    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise InvalidDefinitionError(f"Invalid workflow JSON payload: {exc}") from exc
    elif isinstance(payload, Mapping):
        data = payload
    else:
        raise InvalidDefinitionError(
            f"Unsupported payload type {type(payload).__name__}; expected str or Mapping"
        )

    if not isinstance(data, Mapping):
        raise InvalidDefinitionError("Workflow payload must be a JSON object")

    definition = data.get("workflow_definition") or {}
    for parameter in definition.get("parameters") or []:
        if not isinstance(parameter, Mapping):
            raise InvalidDefinitionError(f"Parameter must be an object, got {type(parameter).__name__}")
        classify(parameter)
    check_block_kinds(definition.get("blocks") or [])

    try:
        return Workflow.model_validate(data)
    except ValidationError as exc:
        raise InvalidDefinitionError(f"Workflow validation failed: {exc}") from exc


__all__ = ["parse_workflow"]
