#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Common shared enums/types that must be used by both:
- `common_github/` (API/data layer)
- `actions_tree/` tree nodes and CLI

This module MUST NOT import `common_github` or `actions_tree` to avoid cycles.

Wire spellings are normalized here and only here: the REST API says
`in_progress`, older payloads and some callers say `in-progress`; conclusions
come as `skipped` but `skip` shows up in hand-written fixtures.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class RunConclusion(str, Enum):
    """Terminal outcome of a workflow run or job (None while still running)."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    NEUTRAL = "neutral"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"


class RunStatus(str, Enum):
    """Execution phase of a workflow run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    REQUESTED = "requested"
    PENDING = "pending"


_CONCLUSION_ALIASES = {
    "skip": RunConclusion.SKIPPED,
    "canceled": RunConclusion.CANCELLED,
}

_STATUS_ALIASES = {
    "in-progress": RunStatus.IN_PROGRESS,
    "inprogress": RunStatus.IN_PROGRESS,
}


def parse_conclusion(value: Any) -> Optional[RunConclusion]:
    """Normalize a wire conclusion. None/"" -> None; unknown tokens raise ValueError."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"conclusion must be a string or null, got {type(value).__name__}")
    s = value.strip().lower()
    if not s:
        return None
    if s in _CONCLUSION_ALIASES:
        return _CONCLUSION_ALIASES[s]
    try:
        return RunConclusion(s)
    except ValueError:
        raise ValueError(f"unknown conclusion: {value!r}") from None


def parse_status(value: Any) -> RunStatus:
    """Normalize a wire status. Missing or unknown tokens raise ValueError."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"status must be a non-empty string, got {value!r}")
    s = value.strip().lower()
    if s in _STATUS_ALIASES:
        return _STATUS_ALIASES[s]
    try:
        return RunStatus(s)
    except ValueError:
        raise ValueError(f"unknown status: {value!r}") from None
