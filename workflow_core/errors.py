"""
Shared exception hierarchy for the workflow definition model.

Every local contract violation aborts the conversion or reconciliation that
raised it; callers never receive a partially built graph or parameter set.
"""

from __future__ import annotations

from typing import Iterable, Optional


class WorkflowEditorError(Exception):
    """Base class for all workflow editor errors."""


class InvalidDefinitionError(WorkflowEditorError):
    """Raised when a workflow payload fails structural validation."""


class UnknownParameterType(WorkflowEditorError):
    """Raised when a parameter carries a ``parameter_type`` outside the closed set."""

    def __init__(self, parameter_type: object, key: Optional[str] = None) -> None:
        self.parameter_type = parameter_type
        self.key = key
        where = f" (parameter '{key}')" if key else ""
        super().__init__(f"Unknown parameter type: {parameter_type!r}{where}")


class ParameterKindError(WorkflowEditorError):
    """Raised when a parameter is used on the wrong side of the editable/system split."""


class UnsupportedBlockKind(WorkflowEditorError):
    """Raised when a block carries a ``block_type`` the converter cannot shape."""

    def __init__(self, block_type: object, label: Optional[str] = None) -> None:
        self.block_type = block_type
        self.label = label
        where = f" (block '{label}')" if label else ""
        super().__init__(f"Unsupported block kind: {block_type!r}{where}")


class GraphStructureError(WorkflowEditorError):
    """Raised when a graph cannot be walked back into an ordered block list."""


class ParameterKeyCollision(WorkflowEditorError):
    """Raised when a save would produce two parameters with the same key."""

    def __init__(self, keys: Iterable[str], reason: str) -> None:
        self.keys = sorted(set(keys))
        super().__init__(f"{reason}: {', '.join(self.keys)}")


__all__ = [
    "WorkflowEditorError",
    "InvalidDefinitionError",
    "UnknownParameterType",
    "ParameterKindError",
    "UnsupportedBlockKind",
    "GraphStructureError",
    "ParameterKeyCollision",
]
