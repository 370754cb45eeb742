"""Job nodes under a workflow run.

One node type with a `kind` tag instead of two classes: a job is either
NORMAL or SKIPPED, and `classify_job` is the only place that decides which.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from common_github.actions_types import ActionJob
from common_types import RunConclusion

from .icons import CONCLUSIONS_CATEGORY, STATUSES_CATEGORY


class JobNodeKind(str, Enum):
    NORMAL = "normal"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class JobNode:
    kind: JobNodeKind
    job: ActionJob
    parent_id: str

    @property
    def id(self) -> str:
        return f"{self.parent_id}/{self.job.id}"

    @property
    def label(self) -> str:
        return self.job.name

    @property
    def description(self) -> str:
        if self.kind is JobNodeKind.SKIPPED:
            return RunConclusion.SKIPPED.value
        return self.job.elapsed_text()

    @property
    def context_value(self) -> str:
        return "githubActionJobSkipped" if self.kind is JobNodeKind.SKIPPED else "githubActionJob"

    @property
    def icon_key(self) -> str:
        if self.kind is JobNodeKind.SKIPPED:
            return f"{CONCLUSIONS_CATEGORY}/{RunConclusion.SKIPPED.value}"
        conclusion = self.job.conclusion
        if conclusion is not None:
            return f"{CONCLUSIONS_CATEGORY}/{conclusion.value}"
        status = self.job.status
        # Jobs with an unparseable status render as queued.
        return f"{STATUSES_CATEGORY}/{status.value if status is not None else 'queued'}"


def classify_job(job: ActionJob, parent_id: str) -> JobNode:
    kind = JobNodeKind.SKIPPED if job.is_skipped else JobNodeKind.NORMAL
    return JobNode(kind=kind, job=job, parent_id=parent_id)
