"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import Any, Callable, Dict, List, Optional

from labci import client as client_module
from labci.client import Page
from labci.logger import reset_logger
from labci.models import Job


def ts(second: int) -> str:
    """ISO timestamp as the API sends it, `second` seconds after a fixed base."""
    minute, sec = divmod(second, 60)
    return f"2024-05-01T10:{minute:02d}:{sec:02d}.000Z"


def job_payload(job_id: int, name: str, status: str, created: int, pipeline_id: int = 77) -> Dict[str, Any]:
    return {
        "id": job_id,
        "name": name,
        "stage": "test",
        "status": status,
        "ref": "main",
        "created_at": ts(created),
        "web_url": f"https://gitlab.example.com/acme/app/-/jobs/{job_id}",
        "pipeline": {"id": pipeline_id, "status": "running", "ref": "main", "sha": "abc123"},
    }


def pipeline_payload(pipeline_id: int, ref: str = "main", sha: str = "abc123", status: str = "running") -> Dict[str, Any]:
    return {
        "id": pipeline_id,
        "iid": pipeline_id,
        "project_id": 42,
        "status": status,
        "source": "push",
        "ref": ref,
        "sha": sha,
        "web_url": f"https://gitlab.example.com/acme/app/-/pipelines/{pipeline_id}",
        "created_at": ts(0),
        "updated_at": ts(5),
    }


class FakeClient:
    """
    Stand-in for GitLabClient that serves canned payloads.

    Routes map (method, path) to either a payload or a callable taking
    (params, json) and returning the payload. For get_page the payload is
    an (items, Page) tuple.
    """

    def __init__(self):
        self.routes: Dict[tuple, Any] = {}
        self.calls: List[tuple] = []

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def _respond(self, method: str, path: str, params=None, json=None):
        self.calls.append((method, path, params, json))
        try:
            response = self.routes[(method, path)]
        except KeyError:
            raise AssertionError(f"unexpected request {method} {path}")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(params, json)
        return response

    def get(self, path: str, params: Optional[Dict[str, Any]] = None):
        return self._respond("GET", path, params=params)

    def get_page(self, path: str, params: Optional[Dict[str, Any]] = None):
        return self._respond("GET", path, params=params)

    def post(self, path: str, json=None, params=None):
        return self._respond("POST", path, params=params, json=json)

    def delete(self, path: str) -> None:
        self._respond("DELETE", path)

    def stream(self, path: str):
        return self._respond("GET", path)

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c[1] for c in self.calls if method is None or c[0] == method]

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None


@pytest.fixture(autouse=True)
def fresh_logger():
    """Each test starts with a new global logger.

    Modules keep the instance they got at import time; silence its console
    so it never writes to a capture stream left over from another test.
    """
    client_module.logger.configure(enable_console=False)
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_job() -> Callable[..., Job]:
    """Build a Job model from a few fields."""
    def _make(job_id: int, name: str, status: str, created: int) -> Job:
        return Job.model_validate(job_payload(job_id, name, status, created))
    return _make


@pytest.fixture
def single_page() -> Callable[[list], tuple]:
    def _page(items: list) -> tuple:
        return items, Page(current=1, total=1, next=None, per_page=500, total_items=len(items))
    return _page
