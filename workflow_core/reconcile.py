"""
Save reconciliation: build the replacement body for a workflow from the
editor's output and the last-known definition.

The editor only ever sees user-editable parameters. System-managed ones are
taken verbatim from the prior definition and placed ahead of the edited ones,
so a save can never drop, change or duplicate them.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, List

from shared.logger import get_logger
from workflow_core.errors import ParameterKeyCollision
from workflow_core.parameters import Parameter, extract_system_managed, materialize
from workflow_core.schema import Workflow, WorkflowDefinition, WorkflowDefinitionUpdate, parse_blocks

logger = get_logger("workflow_core.reconcile")


def merge_parameters(prior_parameters: Iterable[Parameter], edited_parameters: Iterable[Any]) -> List[Parameter]:
    """
    System-managed parameters from *prior_parameters* followed by the
    materialized *edited_parameters*.

    Raises:
        ParameterKeyCollision: If an edited key matches a system-managed key,
            or two edited parameters share a key
        ParameterKindError: If an edited parameter is of a system-managed kind
    """
    system_managed = extract_system_managed(prior_parameters)
    edited = [materialize(parameter) for parameter in edited_parameters]

    system_keys = {parameter.key for parameter in system_managed}
    collisions = [parameter.key for parameter in edited if parameter.key in system_keys]
    if collisions:
        raise ParameterKeyCollision(collisions, "Edited parameters reuse system-managed keys")

    counts = Counter(parameter.key for parameter in edited)
    duplicates = [key for key, count in counts.items() if count > 1]
    if duplicates:
        raise ParameterKeyCollision(duplicates, "Edited parameters share keys")

    return [*system_managed, *edited]


def reconcile(
    prior: Workflow,
    edited_parameters: Iterable[Any],
    edited_blocks: Iterable[Any],
    title: str,
) -> WorkflowDefinitionUpdate:
    """
    Build the update payload for a save.

    Top-level settings other than the title are carried over from *prior*
    unchanged. Nothing is mutated; identical inputs give equal results.
    """
    parameters = merge_parameters(prior.workflow_definition.parameters, edited_parameters)
    blocks = parse_blocks(edited_blocks)

    update = WorkflowDefinitionUpdate(
        title=title,
        description=prior.description,
        proxy_location=prior.proxy_location,
        webhook_callback_url=prior.webhook_callback_url,
        totp_verification_url=prior.totp_verification_url,
        workflow_definition=WorkflowDefinition(parameters=parameters, blocks=blocks),
        is_saved_task=prior.is_saved_task,
    )
    logger.info(
        f"Reconciled workflow '{title}': {len(parameters)} parameters, {len(blocks)} top-level blocks"
    )
    return update


__all__ = ["merge_parameters", "reconcile"]
