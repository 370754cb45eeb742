# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Typed records for GitHub Actions workflow runs and jobs.

This module exists to keep `common_github/__init__.py` transport-only and to
give the tree nodes one place where raw REST payloads become typed values.

Payloads are validated when they cross into this module: a run payload with
the wrong shape raises RemoteParseError instead of producing a half-filled
record.

Example run payload (GET /repos/{owner}/{repo}/actions/runs/{run_id}):
  {
    "id": 21507141526,
    "run_attempt": 2,
    "event": "pull_request",
    "head_branch": "feature/x",
    "status": "in_progress",
    "conclusion": null,
    "head_commit": {"message": "Fix flaky test"},
    "url": "https://api.github.com/repos/owner/repo/actions/runs/21507141526",
    "html_url": "https://github.com/owner/repo/actions/runs/21507141526",
    "rerun_url": "https://api.github.com/repos/owner/repo/actions/runs/21507141526/rerun",
    "cancel_url": "https://api.github.com/repos/owner/repo/actions/runs/21507141526/cancel"
  }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

from common_types import RunConclusion, RunStatus, parse_conclusion, parse_status

from .exceptions import RemoteParseError

# GitHub uses this sentinel for "not started yet" in some job payloads.
_ZERO_TIMESTAMP = "0001-01-01T00:00:00Z"


def _require_str(data: Mapping[str, Any], key: str, *, what: str) -> str:
    val = data.get(key)
    if not isinstance(val, str) or not val.strip():
        raise RemoteParseError(f"{what}: field {key!r} must be a non-empty string")
    return val


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    val = data.get(key)
    if val is None:
        return None
    return str(val)


def _id_str(val: Any) -> str:
    # bool is an int subclass; an id of True is a broken payload.
    if isinstance(val, bool) or not isinstance(val, (int, str)):
        return ""
    return str(val).strip()


def _parse_iso(ts: Optional[str]) -> Optional[datetime]:
    s = str(ts or "").strip()
    if not s or s == _ZERO_TIMESTAMP:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_elapsed(total_seconds: int) -> str:
    """12 -> '12s', 185 -> '3m5s'."""
    total_seconds = max(0, int(total_seconds))
    if total_seconds < 60:
        return f"{total_seconds}s"
    return f"{total_seconds // 60}m{total_seconds % 60}s"


@dataclass(frozen=True)
class ActionRecord:
    """Latest known snapshot of one workflow run.

    Identity (equality/hash) is the run id only; everything else is snapshot
    data that a refresh replaces wholesale.
    """

    id: str
    status: RunStatus = field(compare=False)
    event: str = field(compare=False)
    url: str = field(compare=False)
    rerun_url: str = field(compare=False)
    cancel_url: str = field(compare=False)
    conclusion: Optional[RunConclusion] = field(default=None, compare=False)
    title: str = field(default="", compare=False)
    html_url: Optional[str] = field(default=None, compare=False)
    head_branch: Optional[str] = field(default=None, compare=False)
    run_attempt: Optional[int] = field(default=None, compare=False)
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.conclusion is not None

    @classmethod
    def from_api(cls, data: Any) -> "ActionRecord":
        """Build a record from a REST run payload, rejecting anything off-shape."""
        if not isinstance(data, dict):
            raise RemoteParseError(f"workflow run: expected a JSON object, got {type(data).__name__}")

        run_id = _id_str(data.get("id"))
        if not run_id:
            raise RemoteParseError("workflow run: field 'id' is missing or not an int/string")

        try:
            status = parse_status(data.get("status"))
            conclusion = parse_conclusion(data.get("conclusion"))
        except ValueError as e:
            raise RemoteParseError(f"workflow run {run_id}: {e}") from e

        head_commit = data.get("head_commit")
        if head_commit is not None and not isinstance(head_commit, dict):
            raise RemoteParseError(f"workflow run {run_id}: field 'head_commit' must be an object")
        title = ""
        if isinstance(head_commit, dict) and isinstance(head_commit.get("message"), str):
            title = head_commit["message"]
        elif isinstance(data.get("display_title"), str):
            title = data["display_title"]

        event = data.get("event")
        if not isinstance(event, str):
            raise RemoteParseError(f"workflow run {run_id}: field 'event' must be a string")

        attempt = data.get("run_attempt")
        if attempt is not None and (isinstance(attempt, bool) or not isinstance(attempt, int)):
            raise RemoteParseError(f"workflow run {run_id}: field 'run_attempt' must be an integer")

        what = f"workflow run {run_id}"
        return cls(
            id=run_id,
            status=status,
            conclusion=conclusion,
            event=event,
            url=_require_str(data, "url", what=what),
            rerun_url=_require_str(data, "rerun_url", what=what),
            cancel_url=_require_str(data, "cancel_url", what=what),
            title=title,
            html_url=_optional_str(data, "html_url"),
            head_branch=_optional_str(data, "head_branch"),
            run_attempt=attempt,
            raw=dict(data),
        )


@dataclass(frozen=True)
class ActionJob:
    """One job of a workflow run. Only `conclusion_raw` drives behavior (skipped or not)."""

    id: str
    name: str
    conclusion_raw: Optional[str] = None
    status_raw: Optional[str] = None
    html_url: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_skipped(self) -> bool:
        return self.conclusion_raw == RunConclusion.SKIPPED.value

    @property
    def conclusion(self) -> Optional[RunConclusion]:
        try:
            return parse_conclusion(self.conclusion_raw)
        except ValueError:
            return None

    @property
    def status(self) -> Optional[RunStatus]:
        try:
            return parse_status(self.status_raw)
        except ValueError:
            return None

    def elapsed_text(self, *, now: Optional[datetime] = None) -> str:
        """Elapsed wall time ('queued' if the job has not started)."""
        start = _parse_iso(self.started_at)
        if start is None:
            return "queued"
        end = _parse_iso(self.completed_at)
        if end is None:
            end = now or datetime.now(timezone.utc)
        return format_elapsed(int((end - start).total_seconds()))

    @classmethod
    def from_api(cls, data: Any) -> "ActionJob":
        if not isinstance(data, dict):
            raise RemoteParseError(f"workflow job: expected a JSON object, got {type(data).__name__}")
        conclusion = data.get("conclusion")
        status = data.get("status")
        return cls(
            id=_id_str(data.get("id")),
            name=str(data.get("name") or ""),
            conclusion_raw=conclusion if isinstance(conclusion, str) else None,
            status_raw=status if isinstance(status, str) else None,
            html_url=_optional_str(data, "html_url"),
            started_at=_optional_str(data, "started_at"),
            completed_at=_optional_str(data, "completed_at"),
            raw=dict(data),
        )


def parse_jobs_listing(body: Any) -> List[ActionJob]:
    """Parse GET .../actions/runs/{run_id}/jobs -> jobs in response order."""
    if not isinstance(body, dict):
        raise RemoteParseError("jobs listing: expected a JSON object")
    jobs = body.get("jobs")
    if not isinstance(jobs, list):
        raise RemoteParseError("jobs listing: field 'jobs' must be a list")
    return [ActionJob.from_api(j) for j in jobs]


def parse_runs_listing(body: Any) -> Tuple[List[ActionRecord], int]:
    """Parse GET .../actions/runs -> (records, total_count)."""
    if not isinstance(body, dict):
        raise RemoteParseError("runs listing: expected a JSON object")
    runs = body.get("workflow_runs")
    if not isinstance(runs, list):
        raise RemoteParseError("runs listing: field 'workflow_runs' must be a list")
    records = [ActionRecord.from_api(r) for r in runs]
    total_count = body.get("total_count")
    if total_count is None:
        total_count = len(records)
    if isinstance(total_count, bool) or not isinstance(total_count, int):
        raise RemoteParseError("runs listing: field 'total_count' must be an integer")
    return records, int(total_count)
