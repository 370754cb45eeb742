"""
Pytest tests for actions_tree/run_node.py (RunNode + poll_until_terminal).

Run from the repo root:
    pytest actions_tree/test_run_node.py -v
"""

import asyncio
import gc

import pytest

from actions_tree.conftest import REPO_URL, SleepRecorder, run_payload, run_url
from actions_tree.job_nodes import JobNodeKind
from actions_tree.notify import RecordingNotifier
from actions_tree.run_node import POLL_INTERVAL_S, RunNode, poll_until_terminal
from actions_tree.runs_node import RunsNode
from common_github.actions_types import ActionRecord
from common_github.exceptions import RemoteFetchError, RemoteParseError, RemoteStatusError, RemoteTransportError
from common_types import RunConclusion, RunStatus

RERUN_STARTED = 'Rerun for action "42" has started.'
RERUN_COMPLETED = 'Rerun for action "42" has completed.'
CANCEL_STARTED = 'Cancel for action "42" has started.'
CANCEL_COMPLETED = 'Cancel for action "42" has completed.'
JOBS_URL = run_url("42") + "/jobs"


def _node(runs_node, **payload_kw) -> RunNode:
    return RunNode(
        runs_node,
        ActionRecord.from_api(run_payload(**payload_kw)),
        client=runs_node._client,
        sleep=runs_node._sleep,
    )


# ============================================================================
# Identity / display
# ============================================================================

def test_identity_label_description(runs_node):
    node = _node(runs_node)
    assert node.id == "site/actions/42"
    assert node.id == node.id  # stable across reads
    assert node.label == "Fix flaky test\n\nlonger body"
    assert node.name == node.label
    assert node.description == "push"
    assert node.has_more_children() is False


@pytest.mark.parametrize("conclusion", ["success", "failure", "cancelled", "skipped"])
def test_icon_uses_conclusions_when_concluded(runs_node, conclusion):
    """A concluded run never consults status for its icon."""
    node = _node(runs_node, status="queued", conclusion=conclusion)
    assert node.icon_key == f"conclusions/{conclusion}"


@pytest.mark.parametrize("status,expected", [
    ("queued", "statuses/queued"),
    ("in_progress", "statuses/in_progress"),
    ("in-progress", "statuses/in_progress"),
])
def test_icon_uses_statuses_while_running(runs_node, status, expected):
    node = _node(runs_node, status=status, conclusion=None)
    assert node.icon_key == expected


def test_parent_is_a_weak_reference(fake_client):
    parent = RunsNode(REPO_URL, client=fake_client, node_id="p")
    node = RunNode(parent, ActionRecord.from_api(run_payload()), client=fake_client)
    assert node.id == "p/42"
    del parent
    gc.collect()
    with pytest.raises(RuntimeError):
        _ = node.id


# ============================================================================
# load_children
# ============================================================================

def test_load_children_partitions_and_keeps_order(runs_node, fake_client):
    fake_client.route("GET", JOBS_URL, {
        "total_count": 5,
        "jobs": [
            {"id": 1, "name": "build", "conclusion": "success", "status": "completed"},
            {"id": 2, "name": "docs", "conclusion": "skipped", "status": "completed"},
            {"id": 3, "name": "test", "conclusion": None, "status": "in_progress"},
            {"id": 4, "name": "lint", "status": "queued"},
            {"id": 5, "name": "gpu", "conclusion": "skipped", "status": "completed"},
        ],
    })
    node = _node(runs_node)

    children = asyncio.run(node.load_children())

    assert [c.label for c in children] == ["build", "docs", "test", "lint", "gpu"]
    assert [c.kind for c in children] == [
        JobNodeKind.NORMAL,
        JobNodeKind.SKIPPED,
        JobNodeKind.NORMAL,
        JobNodeKind.NORMAL,
        JobNodeKind.SKIPPED,
    ]
    assert children[1].id == "site/actions/42/2"
    assert fake_client.count("GET", JOBS_URL) == 1


def test_load_children_does_not_merge_with_previous_results(runs_node, fake_client):
    fake_client.route(
        "GET", JOBS_URL,
        {"jobs": [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]},
        {"jobs": [{"id": 3, "name": "c"}]},
    )
    node = _node(runs_node)
    assert len(asyncio.run(node.load_children())) == 2
    assert [c.label for c in asyncio.run(node.load_children())] == ["c"]


def test_load_children_rejects_bad_shape(runs_node, fake_client):
    fake_client.route("GET", JOBS_URL, {"jobs": "nope"})
    with pytest.raises(RemoteParseError):
        asyncio.run(_node(runs_node).load_children())


def test_load_children_propagates_transport_error(runs_node, fake_client):
    fake_client.route(
        "GET", JOBS_URL,
        RemoteTransportError("boom", url="x"),
    )
    with pytest.raises(RemoteFetchError):
        asyncio.run(_node(runs_node).load_children())


# ============================================================================
# refresh
# ============================================================================

def test_refresh_replaces_record_wholesale(runs_node, fake_client):
    """A field dropped from the new payload does not survive from the old record."""
    node = _node(runs_node, head_branch="main", run_attempt=1)
    assert node.record.head_branch == "main"

    newer = run_payload(status="in_progress", run_attempt=2)
    del newer["head_branch"]
    newer["head_commit"] = {"message": "Second attempt"}
    fake_client.route("GET", run_url("42"), newer)

    old = node.record
    asyncio.run(node.refresh())

    assert node.record is not old
    assert node.record.head_branch is None
    assert "head_branch" not in node.record.raw
    assert node.record.run_attempt == 2
    assert node.record.status is RunStatus.IN_PROGRESS
    assert node.label == "Second attempt"
    # Old snapshot is untouched.
    assert old.head_branch == "main"


def test_refresh_error_keeps_previous_record(runs_node, fake_client):
    fake_client.route("GET", run_url("42"), RemoteStatusError("404", url=run_url("42"), status_code=404))
    node = _node(runs_node)
    before = node.record
    with pytest.raises(RemoteStatusError):
        asyncio.run(node.refresh())
    assert node.record is before


# ============================================================================
# poll_until_terminal
# ============================================================================

@pytest.mark.parametrize("n", [0, 1, 3, 7])
def test_poll_refreshes_n_plus_one_and_sleeps_n(n):
    state = {"refreshes": 0}
    sleeps = SleepRecorder()

    async def refresh():
        state["refreshes"] += 1

    def is_terminal():
        return state["refreshes"] > n

    total = asyncio.run(poll_until_terminal(refresh, is_terminal, sleep=sleeps))

    assert total == n + 1
    assert state["refreshes"] == n + 1
    assert sleeps.calls == [POLL_INTERVAL_S] * n


def test_poll_refresh_error_aborts_immediately():
    sleeps = SleepRecorder()
    calls = []

    async def refresh():
        calls.append(1)
        if len(calls) == 2:
            raise RemoteTransportError("connection reset", url="x")

    with pytest.raises(RemoteTransportError):
        asyncio.run(poll_until_terminal(refresh, lambda: False, sleep=sleeps))
    assert len(calls) == 2
    assert len(sleeps.calls) == 1


def test_poll_can_be_cancelled_from_outside(runs_node, fake_client):
    """Cancelling the awaiting task stops an otherwise endless poll."""
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route("GET", run_url("42"), run_payload(status="in_progress"))
    node = RunNode(
        runs_node,
        ActionRecord.from_api(run_payload()),
        client=fake_client,
        poll_interval_s=0.01,
    )
    notifier = RecordingNotifier()

    async def scenario():
        task = asyncio.create_task(node.rerun(notifier=notifier))
        while fake_client.count("GET", run_url("42")) < 3:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert notifier.messages == [RERUN_STARTED]


# ============================================================================
# rerun / cancel
# ============================================================================

def test_rerun_scenario_success(runs_node, fake_client, sleeps):
    """queued -> POST rerun -> in_progress -> success: start + completion notices."""
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route(
        "GET", run_url("42"),
        run_payload(status="in_progress"),
        run_payload(status="completed", conclusion="success"),
    )
    node = _node(runs_node, status="queued")
    notifier = RecordingNotifier()

    asyncio.run(node.rerun(notifier=notifier))

    assert notifier.messages == [RERUN_STARTED, RERUN_COMPLETED]
    assert node.record.conclusion is RunConclusion.SUCCESS
    assert [c[:2] for c in fake_client.calls] == [
        ("POST", run_url("42") + "/rerun"),
        ("GET", run_url("42")),
        ("GET", run_url("42")),
    ]
    assert sleeps.calls == [POLL_INTERVAL_S]


def test_rerun_ending_cancelled_has_no_completion_notice(runs_node, fake_client, sleeps):
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route(
        "GET", run_url("42"),
        run_payload(status="in_progress"),
        run_payload(status="completed", conclusion="cancelled"),
    )
    node = _node(runs_node, status="queued")
    notifier = RecordingNotifier()

    asyncio.run(node.rerun(notifier=notifier))

    assert notifier.messages == [RERUN_STARTED]
    assert node.record.conclusion is RunConclusion.CANCELLED


@pytest.mark.parametrize("conclusion", ["success", "failure", "timed_out"])
def test_rerun_completion_notice_fires_once_for_other_conclusions(runs_node, fake_client, conclusion):
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route("GET", run_url("42"), run_payload(status="completed", conclusion=conclusion))
    notifier = RecordingNotifier()

    asyncio.run(_node(runs_node).rerun(notifier=notifier))

    assert notifier.messages.count(RERUN_COMPLETED) == 1


def test_rerun_start_notice_comes_after_post_and_before_polling(runs_node, fake_client):
    order = []
    notifier = RecordingNotifier()
    original_issue = fake_client.issue

    def issue(method, url, context=None, **kw):
        order.append(f"{method} {len(notifier.messages)}")
        return original_issue(method, url, context, **kw)

    fake_client.issue = issue
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route("GET", run_url("42"), run_payload(status="completed", conclusion="success"))

    asyncio.run(_node(runs_node).rerun(notifier=notifier))

    # POST issued with no notices yet; first GET sees the start notice already emitted.
    assert order == ["POST 0", "GET 1"]


def test_rerun_post_failure_emits_nothing(runs_node, fake_client):
    fake_client.route("POST", run_url("42") + "/rerun", RemoteStatusError("403", url="x", status_code=403))
    notifier = RecordingNotifier()
    with pytest.raises(RemoteFetchError):
        asyncio.run(_node(runs_node).rerun(notifier=notifier))
    assert notifier.messages == []
    assert fake_client.count("GET", run_url("42")) == 0


def test_rerun_poll_failure_leaves_start_without_completion(runs_node, fake_client):
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route(
        "GET", run_url("42"),
        run_payload(status="in_progress"),
        RemoteTransportError("timeout", url=run_url("42")),
    )
    notifier = RecordingNotifier()
    with pytest.raises(RemoteTransportError):
        asyncio.run(_node(runs_node).rerun(notifier=notifier))
    assert notifier.messages == [RERUN_STARTED]


@pytest.mark.parametrize("conclusion", ["cancelled", "success", "failure"])
def test_cancel_completion_notice_is_unconditional(runs_node, fake_client, sleeps, conclusion):
    fake_client.route("POST", run_url("42") + "/cancel", None)
    fake_client.route(
        "GET", run_url("42"),
        run_payload(status="in_progress"),
        run_payload(status="in_progress"),
        run_payload(status="completed", conclusion=conclusion),
    )
    node = _node(runs_node, status="in_progress")
    notifier = RecordingNotifier()

    asyncio.run(node.cancel(notifier=notifier))

    assert notifier.messages == [CANCEL_STARTED, CANCEL_COMPLETED]
    assert fake_client.count("POST", run_url("42") + "/cancel") == 1
    assert fake_client.count("GET", run_url("42")) == 3
    assert sleeps.calls == [POLL_INTERVAL_S, POLL_INTERVAL_S]


def test_rerun_default_notifier_logs(runs_node, fake_client, caplog):
    fake_client.route("POST", run_url("42") + "/rerun", None)
    fake_client.route("GET", run_url("42"), run_payload(status="completed", conclusion="success"))
    with caplog.at_level("INFO", logger="actions_tree.notify"):
        asyncio.run(_node(runs_node).rerun())
    assert RERUN_STARTED in caplog.text
    assert RERUN_COMPLETED in caplog.text
