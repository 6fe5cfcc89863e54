"""
Errors raised at the workflow store boundary.
"""

from __future__ import annotations

from typing import Optional

from workflow_core.errors import WorkflowEditorError


class TransportError(WorkflowEditorError):
    """Raised when a request to the workflow store fails (network, auth or server error)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SaveInProgressError(WorkflowEditorError):
    """Raised when a save is requested while another save for the same session is in flight."""


__all__ = ["TransportError", "SaveInProgressError"]
