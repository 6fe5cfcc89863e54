from copy import deepcopy
from typing import List, Optional

import asyncio
import httpx
import pytest
import yaml

from workflow_editor.cache import WorkflowQueryCache
from workflow_editor.client import WorkflowClient
from tests.workflow_editor.shared_data import (
    API_KEY,
    BASE_URL,
    WORKFLOW_ID,
    WORKFLOW_RECORD,
    configure_workflow_test_logging,
)


configure_workflow_test_logging()


class FakeWorkflowStore:
    """Minimal workflow store behind an httpx.MockTransport."""

    def __init__(self, record: dict):
        self.record = deepcopy(record)
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self.gate: Optional[asyncio.Event] = None
        self.put_received = asyncio.Event()

    @property
    def puts(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == "PUT"]

    @property
    def gets(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == "GET"]

    def put_body(self, index: int = -1) -> dict:
        return yaml.safe_load(self.puts[index].content)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "PUT":
            self.put_received.set()
            if self.gate is not None:
                await self.gate.wait()
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="upstream failure")
        if request.method == "GET" and path.endswith(f"/workflows/{WORKFLOW_ID}"):
            return httpx.Response(200, json=self.record)
        if request.method == "GET" and path.endswith("/workflows"):
            return httpx.Response(200, json=[self.record])
        if request.method == "PUT" and path.endswith(f"/workflows/{WORKFLOW_ID}"):
            body = yaml.safe_load(request.content)
            self.record = {**self.record, **body, "version": self.record["version"] + 1}
            return httpx.Response(200, json=self.record)
        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def store() -> FakeWorkflowStore:
    return FakeWorkflowStore(WORKFLOW_RECORD)


@pytest.fixture
def client(store: FakeWorkflowStore) -> WorkflowClient:
    return WorkflowClient(
        BASE_URL,
        api_key=API_KEY,
        transport=httpx.MockTransport(store.handle),
    )


@pytest.fixture
def cache() -> WorkflowQueryCache:
    return WorkflowQueryCache()
