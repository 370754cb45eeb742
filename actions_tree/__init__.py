"""
GitHub Actions run tree.

Tree nodes for one repository's workflow runs:
- `RunsNode`   (runs_node.py): lists a repository's runs, pages through them
- `RunNode`    (run_node.py): one run; lazy job loading, refresh, rerun/cancel + poll-until-terminal
- `JobNode`    (job_nodes.py): one job, NORMAL or SKIPPED, produced by `classify_job`

Side pieces:
- `icons.py`: icon keys ("conclusions/<x>" / "statuses/<x>")
- `notify.py`: the notification port used by rerun/cancel
- `cli.py`: `python -m actions_tree OWNER/REPO [--run|--rerun|--cancel RUN_ID]`
"""

from common_github import GITHUB_API_BASE_URL  # noqa: F401

from .icons import all_icon_keys, icon_key  # noqa: F401
from .job_nodes import JobNode, JobNodeKind, classify_job  # noqa: F401
from .notify import LogNotifier, Notifier, RecordingNotifier  # noqa: F401
from .run_node import POLL_INTERVAL_S, RunNode, poll_until_terminal  # noqa: F401
from .runs_node import RunsNode  # noqa: F401

__all__ = [
    "GITHUB_API_BASE_URL",
    "POLL_INTERVAL_S",
    "JobNode",
    "JobNodeKind",
    "LogNotifier",
    "Notifier",
    "RecordingNotifier",
    "RunNode",
    "RunsNode",
    "all_icon_keys",
    "classify_job",
    "icon_key",
    "poll_until_terminal",
]
