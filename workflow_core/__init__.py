"""
Workflow definition model, graph conversion and save reconciliation.

Everything in this package is synchronous and side-effect free.
"""

from workflow_core.graph_builder import WorkflowGraphBuilder, get_elements, to_blocks
from workflow_core.parameters import classify, editable_parameters, extract_system_managed, to_editable_view
from workflow_core.parse import parse_workflow
from workflow_core.reconcile import reconcile

__all__ = [
    "WorkflowGraphBuilder",
    "get_elements",
    "to_blocks",
    "classify",
    "editable_parameters",
    "extract_system_managed",
    "to_editable_view",
    "parse_workflow",
    "reconcile",
]
