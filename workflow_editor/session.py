"""
Editor session: one workflow, loaded once, edited on the canvas, saved back.

The session is the owner of the fetched workflow and of the graph derived from
it. Saves go through ``handle_save``; only one may be in flight at a time, and
a successful save invalidates the cached workflow and workflow listings so the
next ``load`` re-derives the graph from the store.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from shared.logger import get_logger
from workflow_core.graph_builder import WorkflowGraphBuilder, get_workflow_graph_builder
from workflow_core.parameters import EditableParameter, editable_parameters
from workflow_core.reconcile import reconcile
from workflow_core.schema import Block, Edge, Graph, Node, Workflow, WorkflowDefinitionUpdate

from .cache import WorkflowQueryCache, workflow_key, workflows_key
from .client import WorkflowClient
from .errors import SaveInProgressError, TransportError

logger = get_logger("workflow_editor.session")


class WorkflowEditorSession:
    """Editing session for a single workflow."""

    def __init__(
        self,
        client: WorkflowClient,
        workflow_permanent_id: str,
        cache: Optional[WorkflowQueryCache] = None,
        graph_builder: Optional[WorkflowGraphBuilder] = None,
    ):
        self.client = client
        self.workflow_permanent_id = workflow_permanent_id
        self.cache = cache if cache is not None else WorkflowQueryCache()
        self.graph_builder = graph_builder or get_workflow_graph_builder()

        self.workflow: Optional[Workflow] = None
        self.graph: Graph = Graph()
        self.editable_parameters: List[EditableParameter] = []
        self._saving = False

    @property
    def is_loaded(self) -> bool:
        return self.workflow is not None

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def title(self) -> Optional[str]:
        return self.workflow.title if self.workflow else None

    @property
    def nodes(self) -> List[Node]:
        return self.graph.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.graph.edges

    async def load(self) -> Workflow:
        """Return the cached workflow or fetch it, then derive the graph and editable parameters."""
        key = workflow_key(self.workflow_permanent_id)
        workflow = self.cache.get(key)
        if workflow is None:
            workflow = await self.client.get_workflow(self.workflow_permanent_id)
            self.cache.set(key, workflow)
        else:
            logger.debug(f"Using cached workflow {self.workflow_permanent_id}")

        graph = self.graph_builder.to_graph(workflow.workflow_definition.blocks)
        parameters = editable_parameters(workflow.workflow_definition.parameters)

        self.workflow = workflow
        self.graph = graph
        self.editable_parameters = parameters
        return workflow

    def to_blocks(self) -> List[Block]:
        """The current graph as an ordered block list."""
        return self.graph_builder.to_blocks(self.graph)

    def build_update(
        self,
        parameters: Iterable[Any],
        blocks: Iterable[Any],
        title: str,
    ) -> WorkflowDefinitionUpdate:
        if not self.is_loaded:
            raise RuntimeError("Workflow is not loaded; call load() before saving")
        return reconcile(self.workflow, parameters, blocks, title)

    async def handle_save(
        self,
        parameters: Iterable[Any],
        blocks: Iterable[Any],
        title: str,
    ) -> Any:
        """
        Save the edited parameters and blocks.

        Raises:
            SaveInProgressError: If another save of this session has not finished
            TransportError: If the store rejects the request; the cache and the
                graph are left untouched so the save can be retried
            WorkflowEditorError: On a local contract violation; nothing is sent
        """
        if self._saving:
            raise SaveInProgressError(f"A save for workflow {self.workflow_permanent_id} is already in progress")
        self._saving = True
        try:
            update = self.build_update(parameters, blocks, title)
            try:
                result = await self.client.save(self.workflow_permanent_id, update)
            except TransportError as e:
                logger.error(f"Failed to save workflow {self.workflow_permanent_id}: {e.message}")
                raise
            self.invalidate()
            logger.info(f"Changes saved for workflow {self.workflow_permanent_id}")
            return result
        finally:
            self._saving = False

    def invalidate(self) -> None:
        self.cache.invalidate(workflow_key(self.workflow_permanent_id))
        self.cache.invalidate(workflows_key())


async def load_workflow_list(
    client: WorkflowClient,
    cache: WorkflowQueryCache,
    page: int = 1,
    page_size: int = 10,
) -> List[Any]:
    """Workflow listing page, served from *cache* until a save invalidates it."""
    key = workflows_key(page, page_size)
    cached = cache.get(key)
    if cached is not None:
        return cached
    workflows = await client.list_workflows(page=page, page_size=page_size)
    cache.set(key, workflows)
    return workflows


__all__ = ["WorkflowEditorSession", "load_workflow_list"]
