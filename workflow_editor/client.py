"""
HTTP client for the workflow store.

Loads workflow records as JSON and replaces workflow definitions with a single
``PUT`` whose body is the YAML serialization of the update.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import yaml

from shared.config import config
from shared.logger import get_logger
from workflow_core.parse import parse_workflow
from workflow_core.schema import Workflow, WorkflowDefinitionUpdate

from .errors import TransportError

logger = get_logger("workflow_editor.client")

CredentialGetter = Callable[[], Awaitable[Optional[str]]]


def serialize_update(update: WorkflowDefinitionUpdate) -> str:
    """YAML body for a workflow replace, keys kept in payload order."""
    return yaml.safe_dump(update.to_payload(), sort_keys=False, allow_unicode=True)


class WorkflowClient:
    """Talks to the workflow store over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        credential_getter: Optional[CredentialGetter] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.workflow_api_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else config.workflow_api_key
        self.credential_getter = credential_getter
        self.timeout = timeout if timeout is not None else config.workflow_api_timeout
        self.transport = transport

    async def _auth_headers(self) -> Dict[str, str]:
        if self.credential_getter is not None:
            try:
                token = await self.credential_getter()
            except Exception as e:
                logger.error(f"Credential getter failed: {e}")
                raise TransportError(f"Failed to obtain credentials: {e}") from e
            if token:
                return {"Authorization": f"Bearer {token}"}
        if self.api_key:
            return {"x-api-key": self.api_key}
        return {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = await self._auth_headers()
        headers.update(kwargs.pop("headers", {}))
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(f"Workflow API error: {method} {path} -> {e.response.status_code} - {e.response.text[:200]}")
            raise TransportError(
                f"Request failed with status code {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"Workflow API timeout: {method} {path}")
            raise TransportError(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Workflow API request error: {method} {path} - {e}")
            raise TransportError(str(e) or type(e).__name__) from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Workflow API returned a non-JSON body: {response.text[:200]}") from e

    async def get_workflow(self, workflow_permanent_id: str) -> Workflow:
        """Fetch and validate one workflow."""
        response = await self._request("GET", f"/workflows/{workflow_permanent_id}")
        workflow = parse_workflow(self._json(response))
        logger.info(f"Loaded workflow {workflow_permanent_id} ({len(workflow.workflow_definition.blocks)} blocks)")
        return workflow

    async def list_workflows(self, page: int = 1, page_size: int = 10) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/workflows", params={"page": page, "page_size": page_size})
        return self._json(response)

    async def save(self, workflow_id: str, update: WorkflowDefinitionUpdate) -> Any:
        """
        Replace the remote definition of *workflow_id* with *update*.

        A single idempotent ``PUT``; on failure the remote workflow is left as
        it was and ``TransportError`` is raised. No retries.

        Returns:
            The updated workflow record as returned by the store
        """
        body = serialize_update(update)
        response = await self._request(
            "PUT",
            f"/workflows/{workflow_id}",
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        logger.info(f"Saved workflow {workflow_id}")
        if not response.content:
            return None
        return self._json(response)


__all__ = ["CredentialGetter", "WorkflowClient", "serialize_update"]
