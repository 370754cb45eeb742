"""Notification port for long-running run operations.

rerun/cancel take a Notifier argument instead of writing to a shared output
channel, so callers decide where "started"/"completed" messages go:
- LogNotifier: INFO lines on a logging logger (what the CLI uses)
- RecordingNotifier: keeps the messages in a list
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol


RERUN_STARTED = 'Rerun for action "{0}" has started.'
RERUN_COMPLETED = 'Rerun for action "{0}" has completed.'
CANCEL_STARTED = 'Cancel for action "{0}" has started.'
CANCEL_COMPLETED = 'Cancel for action "{0}" has completed.'


def rerun_started(run_id: str) -> str:
    return RERUN_STARTED.format(run_id)


def rerun_completed(run_id: str) -> str:
    return RERUN_COMPLETED.format(run_id)


def cancel_started(run_id: str) -> str:
    return CANCEL_STARTED.format(run_id)


def cancel_completed(run_id: str) -> str:
    return CANCEL_COMPLETED.format(run_id)


class Notifier(Protocol):
    def info(self, message: str) -> None:
        ...


class LogNotifier:
    """Writes notifications to a logger at INFO."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def info(self, message: str) -> None:
        self.logger.info("%s", message)


class RecordingNotifier:
    """Collects notifications in order."""

    def __init__(self):
        self.messages: List[str] = []

    def info(self, message: str) -> None:
        self.messages.append(str(message))
