"""
Workflow editor boundary: loading workflows from the store, the editing
session the canvas talks to, and persisting saves.
"""

from .cache import WorkflowQueryCache
from .client import WorkflowClient, serialize_update
from .errors import SaveInProgressError, TransportError
from .session import WorkflowEditorSession, load_workflow_list

__all__ = [
    "WorkflowQueryCache",
    "WorkflowClient",
    "serialize_update",
    "SaveInProgressError",
    "TransportError",
    "WorkflowEditorSession",
    "load_workflow_list",
]
