# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub API error types.

Everything network-facing raises a RemoteFetchError subclass, so callers that
only care "did the remote call work" catch the base class, and tests can
assert on the specific failure mode.
"""

from __future__ import annotations

from typing import Optional


class RemoteFetchError(Exception):
    def __init__(self, message: str, *, url: str = "", method: str = "GET", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = str(url or "")
        self.method = str(method or "GET").upper()
        self.status_code = int(status_code) if status_code is not None else None


class RemoteTransportError(RemoteFetchError):
    """requests raised before we got a response (DNS, connect, timeout...)."""


class RemoteStatusError(RemoteFetchError):
    """Response came back with a non-2xx status."""


class RemoteRateLimitError(RemoteStatusError):
    pass


class RemoteParseError(RemoteFetchError):
    """Body was not JSON, or not the shape we expected."""
