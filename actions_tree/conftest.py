"""Shared fakes for actions_tree tests (no network)."""

import copy
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Set up path for imports
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

from common_github import GitHubAPIClient
from actions_tree.runs_node import RunsNode

API = "https://api.github.com"
REPO_URL = "https://github.com/octo/hello"


def run_url(run_id: str) -> str:
    return f"{API}/repos/octo/hello/actions/runs/{run_id}"


def run_payload(run_id: str = "42", *, status: str = "queued", conclusion: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    base = run_url(run_id)
    d: Dict[str, Any] = {
        "id": run_id,
        "status": status,
        "conclusion": conclusion,
        "event": "push",
        "head_branch": "main",
        "head_commit": {"message": "Fix flaky test\n\nlonger body"},
        "url": base,
        "html_url": f"https://github.com/octo/hello/actions/runs/{run_id}",
        "rerun_url": f"{base}/rerun",
        "cancel_url": f"{base}/cancel",
    }
    d.update(extra)
    return d


class FakeClient(GitHubAPIClient):
    """Scripted request issuer: responses are served per (method, url) in order.

    The last scripted response for a route repeats, so a poll can run forever.
    An Exception instance as a response is raised instead of returned.
    """

    def __init__(self):
        super().__init__(token="test-token")
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self._routes: Dict[Tuple[str, str], List[Any]] = {}

    def route(self, method: str, url: str, *responses: Any) -> None:
        self._routes.setdefault((method.upper(), url), []).extend(responses)

    def issue(self, method, url, context=None, *, params=None, timeout=10):
        key = (str(method).upper(), url)
        self.calls.append((key[0], key[1], params))
        queue = self._routes.get(key)
        if not queue:
            raise AssertionError(f"unexpected request: {key}")
        resp = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(resp, Exception):
            raise resp
        return copy.deepcopy(resp)

    def count(self, method: str, url: str) -> int:
        return sum(1 for m, u, _ in self.calls if m == method.upper() and u == url)


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def runs_node(fake_client: FakeClient, sleeps: SleepRecorder) -> RunsNode:
    return RunsNode(REPO_URL, client=fake_client, node_id="site/actions", per_page=2, sleep=sleeps)
