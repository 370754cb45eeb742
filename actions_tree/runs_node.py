"""Tree node for a repository's workflow runs (parent of RunNode).

Paging:
  GET /repos/{owner}/{repo}/actions/runs?per_page=N&page=P
  {"total_count": 123, "workflow_runs": [...]}

Each load_children() call returns the next page; clear_cache=True starts over
at page 1. has_more_children() is true until total_count runs were handed out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from common_github import ActionContext, GitHubAPIClient, get_repo_fullname
from common_github.actions_types import ActionRecord, parse_runs_listing

from .run_node import POLL_INTERVAL_S, RunNode, SleepFn

logger = logging.getLogger(__name__)


class RunsNode:
    context_value = "githubActionRuns"
    label = "Actions"

    def __init__(
        self,
        repository_url: str,
        *,
        client: GitHubAPIClient,
        node_id: Optional[str] = None,
        per_page: int = 30,
        sleep: SleepFn = asyncio.sleep,
        poll_interval_s: float = POLL_INTERVAL_S,
    ):
        self.repository_url = str(repository_url)
        # Fail early on a bad repository reference rather than on first load.
        self.owner, self.name = get_repo_fullname(self.repository_url)
        self.id = node_id or f"{self.owner}/{self.name}/actions"
        self.per_page = max(1, min(100, int(per_page)))
        self._client = client
        self._sleep = sleep
        self._poll_interval_s = float(poll_interval_s)
        self._next_page = 1
        self._loaded = 0
        self._total_count: Optional[int] = None

    def _make_run_node(self, record: ActionRecord) -> RunNode:
        return RunNode(
            self,
            record,
            client=self._client,
            sleep=self._sleep,
            poll_interval_s=self._poll_interval_s,
        )

    async def load_children(self, clear_cache: bool = False, context: Optional[ActionContext] = None) -> List[RunNode]:
        """Return the next page of run nodes."""
        if clear_cache:
            self._next_page = 1
            self._loaded = 0
            self._total_count = None

        url = self._client.api_url(f"/repos/{self.owner}/{self.name}/actions/runs")
        params: Dict[str, Any] = {"per_page": self.per_page, "page": self._next_page}
        body = await asyncio.to_thread(self._client.issue, "GET", url, context, params=params)
        records, total_count = parse_runs_listing(body)

        self._next_page += 1
        self._loaded += len(records)
        # An empty page ends paging even if total_count says otherwise.
        self._total_count = total_count if records else self._loaded
        logger.debug("%s: loaded %d run(s) (%d/%d)", self.id, len(records), self._loaded, self._total_count)
        return [self._make_run_node(r) for r in records]

    def has_more_children(self) -> bool:
        if self._total_count is None:
            return True
        return self._loaded < self._total_count

    async def get_run(self, run_id: str, context: Optional[ActionContext] = None) -> RunNode:
        """Fetch a single run by id."""
        url = self._client.api_url(f"/repos/{self.owner}/{self.name}/actions/runs/{run_id}")
        body = await asyncio.to_thread(self._client.issue, "GET", url, context)
        return self._make_run_node(ActionRecord.from_api(body))
