#!/usr/bin/env python3
"""
CLI for the GitHub Actions run tree.

Shows a repository's recent workflow runs with their jobs, or reruns/cancels a
run and waits (polling) until GitHub reports a conclusion.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from common_github import GITHUB_API_STATS, GitHubAPIClient, RemoteFetchError

from .notify import LogNotifier
from .run_node import POLL_INTERVAL_S, RunNode
from .runs_node import RunsNode

logger = logging.getLogger(__name__)


@dataclass
class TextTreeNode:
    """One rendered line plus children (text counterpart of the dashboards' TreeNodeVM)."""

    text: str
    children: List["TextTreeNode"] = field(default_factory=list)


def render_tree_lines(roots: List[TextTreeNode]) -> List[str]:
    """Render a forest with ├─/└─ connectors. Roots are printed flush left."""
    out: List[str] = []

    def walk(node: TextTreeNode, prefix: str, is_last: bool) -> None:
        out.append(f"{prefix}{'└─ ' if is_last else '├─ '}{node.text}")
        child_prefix = prefix + ("   " if is_last else "│  ")
        for i, ch in enumerate(node.children):
            walk(ch, child_prefix, i == len(node.children) - 1)

    for root in roots:
        out.append(root.text)
        for i, ch in enumerate(root.children):
            walk(ch, "", i == len(root.children) - 1)
    return out


def _node_text(icon: str, label: str, description: str) -> str:
    first_line = (label or "").strip().splitlines()[0] if (label or "").strip() else "(no title)"
    desc = f"  ({description})" if description else ""
    return f"[{icon}] {first_line}{desc}"


async def _run_tree_node(run: RunNode, *, with_jobs: bool) -> TextTreeNode:
    node = TextTreeNode(text=f"{_node_text(run.icon_key, run.label, run.description)}  #{run.record.id}")
    if with_jobs:
        for job in await run.load_children():
            node.children.append(TextTreeNode(text=_node_text(job.icon_key, job.label, job.description)))
    return node


async def _show_runs(runs_node: RunsNode, *, max_runs: int, with_jobs: bool) -> List[str]:
    runs: List[RunNode] = []
    while len(runs) < max_runs and runs_node.has_more_children():
        page = await runs_node.load_children()
        if not page:
            break
        runs.extend(page)
    root = TextTreeNode(text=f"{runs_node.owner}/{runs_node.name} · {runs_node.label}")
    for run in runs[:max_runs]:
        root.children.append(await _run_tree_node(run, with_jobs=with_jobs))
    return render_tree_lines([root])


async def _show_run(runs_node: RunsNode, run_id: str, *, with_jobs: bool) -> List[str]:
    run = await runs_node.get_run(run_id)
    return render_tree_lines([await _run_tree_node(run, with_jobs=with_jobs)])


async def _act_on_run(runs_node: RunsNode, run_id: str, *, action: str) -> List[str]:
    run = await runs_node.get_run(run_id)
    notifier = LogNotifier(logging.getLogger("actions_tree.output"))
    if action == "rerun":
        await run.rerun(notifier=notifier)
    else:
        await run.cancel(notifier=notifier)
    conclusion = run.record.conclusion.value if run.record.conclusion else "none"
    return [f"run {run.record.id}: conclusion={conclusion}"]


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show GitHub Actions workflow runs as a tree, or rerun/cancel a run and wait for it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Recent runs with their jobs
  %(prog)s ai-dynamo/dynamo

  # One run
  %(prog)s ai-dynamo/dynamo --run 21507141526

  # Rerun / cancel and wait until GitHub reports a conclusion
  %(prog)s ai-dynamo/dynamo --rerun 21507141526
  %(prog)s ai-dynamo/dynamo --cancel 21507141526 --interval 5
""",
    )
    parser.add_argument("repo", help="Repository as owner/repo or https://github.com/owner/repo")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--run", metavar="RUN_ID", help="Show a single run")
    group.add_argument("--rerun", metavar="RUN_ID", help="Rerun a run and wait for its conclusion")
    group.add_argument("--cancel", metavar="RUN_ID", help="Cancel a run and wait for its conclusion")
    parser.add_argument("--max-runs", type=int, default=10, help="Runs to list (default: 10)")
    parser.add_argument("--no-jobs", action="store_true", help="Do not fetch jobs for each run")
    parser.add_argument(
        "--interval",
        type=float,
        default=POLL_INTERVAL_S,
        help=f"Seconds between polls for --rerun/--cancel (default: {POLL_INTERVAL_S})",
    )
    parser.add_argument("--token", help="GitHub token (default: ~/.config/github-token or gh CLI config)")
    parser.add_argument("--debug", action="store_true", help="Debug logging (REST calls + stats)")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format='[%(levelname)s] %(message)s')
    else:
        logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')

    if args.max_runs <= 0:
        logger.error("--max-runs must be positive")
        return 2
    if args.interval < 0:
        logger.error("--interval must be >= 0")
        return 2

    try:
        client = GitHubAPIClient(token=args.token, require_auth=bool(args.rerun or args.cancel), debug_rest=args.debug)
        runs_node = RunsNode(args.repo, client=client, per_page=min(100, args.max_runs), poll_interval_s=args.interval)
    except (RuntimeError, ValueError) as e:
        logger.error("%s", e)
        return 2

    try:
        if args.rerun:
            lines = asyncio.run(_act_on_run(runs_node, args.rerun, action="rerun"))
        elif args.cancel:
            lines = asyncio.run(_act_on_run(runs_node, args.cancel, action="cancel"))
        elif args.run:
            lines = asyncio.run(_show_run(runs_node, args.run, with_jobs=not args.no_jobs))
        else:
            lines = asyncio.run(_show_runs(runs_node, max_runs=args.max_runs, with_jobs=not args.no_jobs))
    except RemoteFetchError as e:
        logger.error("%s", e)
        return 1
    finally:
        if args.debug:
            logger.debug("GitHub API stats: %s", json.dumps(GITHUB_API_STATS.to_dict(), sort_keys=True))

    sys.stdout.write("\n".join(lines) + "\n")
    return 0
