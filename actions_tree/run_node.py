"""Tree node for one GitHub Actions workflow run.

The node owns the latest ActionRecord for its run and is the only thing that
replaces it. Replacement happens in exactly one place, `refresh()`, which
rerun/cancel drive through `poll_until_terminal()` until the run reaches a
conclusion.

Network calls go through a blocking GitHubAPIClient; they run in a worker
thread so the event loop keeps serving other nodes while a request is in
flight, and the poll wait is an asyncio.sleep for the same reason.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional

from common_github import ActionContext, GitHubAPIClient, get_repo_fullname
from common_github.actions_types import ActionRecord, parse_jobs_listing
from common_types import RunConclusion

from . import notify
from .icons import icon_key
from .job_nodes import JobNode, classify_job
from .notify import LogNotifier, Notifier

if TYPE_CHECKING:
    from .runs_node import RunsNode

logger = logging.getLogger(__name__)

# Seconds between refreshes while waiting for a rerun/cancel to reach a conclusion.
POLL_INTERVAL_S = 2.0

SleepFn = Callable[[float], Awaitable[Any]]


async def poll_until_terminal(
    refresh: Callable[[], Awaitable[None]],
    is_terminal: Callable[[], bool],
    *,
    interval_s: float = POLL_INTERVAL_S,
    sleep: SleepFn = asyncio.sleep,
) -> int:
    """Refresh now, then keep refreshing every `interval_s` until `is_terminal()`.

    No upper bound on iterations. A refresh error propagates immediately.
    Cancelling the awaiting task raises CancelledError out of the sleep.

    Returns:
        Number of refreshes performed.
    """
    await refresh()
    refreshes = 1
    while not is_terminal():
        logger.debug("poll: not terminal after %d refresh(es); sleeping %.1fs", refreshes, interval_s)
        await sleep(interval_s)
        await refresh()
        refreshes += 1
    return refreshes


class RunNode:
    """One workflow run in the tree (children: its jobs)."""

    context_value = "githubActionRun"

    def __init__(
        self,
        parent: "RunsNode",
        record: ActionRecord,
        *,
        client: GitHubAPIClient,
        sleep: SleepFn = asyncio.sleep,
        poll_interval_s: float = POLL_INTERVAL_S,
    ):
        # Lookup only (identity path + repository URL); the parent owns us, not the reverse.
        self._parent_ref = weakref.ref(parent)
        self._record = record
        self._client = client
        self._sleep = sleep
        self.poll_interval_s = float(poll_interval_s)

    @property
    def parent(self) -> "RunsNode":
        parent = self._parent_ref()
        if parent is None:
            raise RuntimeError(f"run {self._record.id}: parent node no longer exists")
        return parent

    @property
    def record(self) -> ActionRecord:
        return self._record

    @property
    def id(self) -> str:
        return f"{self.parent.id}/{self._record.id}"

    @property
    def name(self) -> str:
        return self._record.title

    @property
    def label(self) -> str:
        return self.name

    @property
    def description(self) -> str:
        return self._record.event

    @property
    def icon_key(self) -> str:
        return icon_key(self._record.conclusion, self._record.status)

    async def _issue(self, method: str, url: str, context: Optional[ActionContext]) -> Any:
        return await asyncio.to_thread(self._client.issue, method, url, context)

    async def load_children(self, context: Optional[ActionContext] = None) -> List[JobNode]:
        """Fetch this run's jobs; one node per job, response order kept."""
        owner, name = get_repo_fullname(self.parent.repository_url)
        url = self._client.api_url(f"/repos/{owner}/{name}/actions/runs/{self._record.id}/jobs")
        body = await self._issue("GET", url, context)
        node_id = self.id
        return [classify_job(job, node_id) for job in parse_jobs_listing(body)]

    def has_more_children(self) -> bool:
        return False

    async def refresh(self, context: Optional[ActionContext] = None) -> None:
        """Re-fetch the run and swap in the new record (nothing carried over)."""
        body = await self._issue("GET", self._record.url, context)
        self._record = ActionRecord.from_api(body)

    async def rerun(self, context: Optional[ActionContext] = None, notifier: Optional[Notifier] = None) -> None:
        notifier = notifier or LogNotifier()
        run_id = self._record.id
        await self._issue("POST", self._record.rerun_url, context)
        notifier.info(notify.rerun_started(run_id))

        await self._wait_for_run_to_finish(context)
        # A rerun that ended up cancelled did not "complete".
        if self._record.conclusion is not RunConclusion.CANCELLED:
            notifier.info(notify.rerun_completed(run_id))

    async def cancel(self, context: Optional[ActionContext] = None, notifier: Optional[Notifier] = None) -> None:
        notifier = notifier or LogNotifier()
        run_id = self._record.id
        await self._issue("POST", self._record.cancel_url, context)
        notifier.info(notify.cancel_started(run_id))

        await self._wait_for_run_to_finish(context)
        notifier.info(notify.cancel_completed(run_id))

    async def _wait_for_run_to_finish(self, context: Optional[ActionContext]) -> None:
        refreshes = await poll_until_terminal(
            lambda: self.refresh(context),
            lambda: self._record.is_terminal,
            interval_s=self.poll_interval_s,
            sleep=self._sleep,
        )
        logger.debug(
            "run %s reached %s after %d refresh(es)",
            self._record.id,
            self._record.conclusion.value if self._record.conclusion else None,
            refreshes,
        )

    def __repr__(self) -> str:
        return f"RunNode(id={self._record.id!r}, status={self._record.status.value!r}, conclusion={self._record.conclusion!r})"
