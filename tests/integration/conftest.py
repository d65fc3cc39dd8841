"""Integration test fixtures.

Provides an in-memory search cluster served through httpx.MockTransport, so
full admin workflows run through the real transport, retry loop and executor
without any network.
"""

import json
import threading
from typing import Any, Dict, Optional

import httpx
import pytest

from search_admin.client import RequestExecutor, SearchAdminClient
from search_admin.models import ClientConfig
from search_admin.transport import RESOURCE_ALREADY_EXISTS, RetryableTransport


def _error(status: int, error_type: str, reason: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"error": {"type": error_type, "reason": reason}, "status": status},
    )


class FakeCluster:
    """
    Minimal index admin API.

    Supports:
    - PUT /{index}: create (400 resource_already_exists_exception if present)
    - GET /{index}: settings and mappings (404 index_not_found_exception)
    - PUT /{index}/_mapping: merge properties (400 mapper_parsing_exception)
    - DELETE /{index}
    - Fault injection: queued statuses or connection errors served first
    """

    def __init__(self) -> None:
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.down = False
        self._faults: list[Any] = []
        self._lock = threading.Lock()

    def fail_next(self, *faults: Any) -> None:
        """Queue status codes or exceptions to serve before normal handling."""
        self._faults.extend(faults)

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            if self.down:
                raise httpx.ConnectError("connection refused", request=request)
            if self._faults:
                fault = self._faults.pop(0)
                if isinstance(fault, Exception):
                    raise fault
                return httpx.Response(fault, text="<html>upstream unavailable</html>")
            return self._route(request)

    def _route(self, request: httpx.Request) -> httpx.Response:
        parts = [p for p in request.url.path.split("/") if p]
        if len(parts) == 1:
            index = parts[0]
            if request.method == "PUT":
                return self._create(index, request)
            if request.method == "GET":
                return self._get(index)
            if request.method == "DELETE":
                return self._delete(index)
        if len(parts) == 2 and parts[1] == "_mapping" and request.method == "PUT":
            return self._put_mapping(parts[0], request)
        return _error(400, "illegal_argument_exception", f"no handler for {request.method} {request.url.path}")

    def _body(self, request: httpx.Request) -> Optional[Dict[str, Any]]:
        if not request.content:
            return {}
        try:
            body = json.loads(request.content)
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    def _create(self, index: str, request: httpx.Request) -> httpx.Response:
        if index in self.indices:
            return _error(400, RESOURCE_ALREADY_EXISTS, f"index [{index}] already exists")
        body = self._body(request)
        if body is None:
            return _error(400, "parse_exception", "request body is not a JSON object")
        self.indices[index] = {
            "settings": body.get("settings", {}),
            "mappings": body.get("mappings", {"properties": {}}),
        }
        return httpx.Response(200, json={"acknowledged": True, "shards_acknowledged": True, "index": index})

    def _get(self, index: str) -> httpx.Response:
        if index not in self.indices:
            return _error(404, "index_not_found_exception", f"no such index [{index}]")
        return httpx.Response(200, json={index: self.indices[index]})

    def _delete(self, index: str) -> httpx.Response:
        if self.indices.pop(index, None) is None:
            return _error(404, "index_not_found_exception", f"no such index [{index}]")
        return httpx.Response(200, json={"acknowledged": True})

    def _put_mapping(self, index: str, request: httpx.Request) -> httpx.Response:
        if index not in self.indices:
            return _error(404, "index_not_found_exception", f"no such index [{index}]")
        body = self._body(request)
        if not body or not isinstance(body.get("properties"), dict):
            return _error(400, "mapper_parsing_exception", "mapping must define properties")
        self.indices[index]["mappings"].setdefault("properties", {}).update(body["properties"])
        return httpx.Response(200, json={"acknowledged": True})


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def admin_client(cluster: FakeCluster):
    """SearchAdminClient wired to the fake cluster with instant retries."""
    transport = RetryableTransport(
        transport=httpx.MockTransport(cluster.handle),
        max_attempts=3,
        retry_wait_min=0.0,
        retry_wait_max=0.0,
        sleep=lambda _: None,
    )
    executor = RequestExecutor(transport, max_workers=4)
    config = ClientConfig(base_url="http://search.test:9200", username="elastic", password="changeme")

    yield SearchAdminClient(config, executor)

    executor.close()
    transport.close()
