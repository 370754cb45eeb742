# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub API client and utilities for the Actions run tree.

The client here is deliberately small: it authenticates, issues one REST
request, and either hands back the parsed JSON body or raises a
RemoteFetchError subclass (see `common_github/exceptions.py`). There is no
retry and no caching; callers that poll (rerun/cancel) own their loop.

Typed records for runs and jobs live in `common_github/actions_types.py`.
"""

# Standard library imports
import json
import logging
import re
import threading
import time
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Third-party imports
import requests
import yaml

from .exceptions import (
    RemoteFetchError,
    RemoteParseError,
    RemoteRateLimitError,
    RemoteStatusError,
    RemoteTransportError,
)

GITHUB_API_BASE_URL = "https://api.github.com"


# ======================================================================================
# GLOBAL API STATISTICS
# ======================================================================================
# Every REST request issued by GitHubAPIClient is counted here. The CLI prints
# a summary with --debug.

class _GitHubAPIStats:
    """Global singleton for tracking GitHub API REST call statistics."""

    def __init__(self):
        self._mu = threading.Lock()
        self.reset()

    def reset(self):
        """Reset all statistics."""
        with self._mu:
            self.rest_calls_total = 0
            self.rest_calls_by_label = {}  # Dict[str, int] - "<METHOD> <label>" -> count
            self.rest_time_total_s = 0.0
            self.rest_errors_total = 0
            self.rest_errors_by_status = {}  # Dict[int, int]; 0 = transport failure
            self.rest_last_error = {}  # Dict[str, Any]

    def record_call(self, *, method: str, label: str, dt_s: float) -> None:
        key = f"{method} {label}"
        with self._mu:
            self.rest_calls_total += 1
            self.rest_calls_by_label[key] = int(self.rest_calls_by_label.get(key, 0)) + 1
            self.rest_time_total_s += float(dt_s)

    def record_error(self, *, status: int, url: str, body: str = "") -> None:
        with self._mu:
            self.rest_errors_total += 1
            self.rest_errors_by_status[int(status)] = int(self.rest_errors_by_status.get(int(status), 0)) + 1
            # Keep last error small.
            self.rest_last_error = {"status": int(status), "url": str(url or ""), "body": str(body or "")[:300]}

    def to_dict(self) -> Dict[str, Any]:
        with self._mu:
            return {
                "rest.calls_total": self.rest_calls_total,
                "rest.calls_by_label": dict(self.rest_calls_by_label),
                "rest.time_total_s": round(self.rest_time_total_s, 3),
                "rest.errors_total": self.rest_errors_total,
                "rest.errors_by_status": dict(self.rest_errors_by_status),
                "rest.last_error": dict(self.rest_last_error),
            }


# Global instance - all clients write to this
GITHUB_API_STATS = _GitHubAPIStats()


def get_repo_fullname(repository_url: str) -> Tuple[str, str]:
    """Return (owner, name) for a GitHub repository reference.

    Accepts:
      - https://github.com/owner/name(.git)(/...)
      - git@github.com:owner/name.git
      - owner/name
    """
    s = str(repository_url or "").strip()
    m = re.match(r"^git@[^:]+:(?P<path>.+)$", s)
    if m:
        path = m.group("path")
    elif "://" in s:
        path = urllib.parse.urlparse(s).path
    else:
        path = s
    parts = [p for p in path.split("/") if p]
    if len(parts) < 2:
        raise ValueError(f"not a GitHub repository reference: {repository_url!r}")
    owner, name = parts[0], parts[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        raise ValueError(f"not a GitHub repository reference: {repository_url!r}")
    return owner, name


@dataclass(frozen=True)
class ActionContext:
    """Per-operation authentication/labeling context.

    token: overrides the client token for this one call (e.g. a token the user
           just granted for a write operation).
    operation: free-form label that shows up in debug logs.
    """

    token: Optional[str] = None
    operation: str = ""


class GitHubAPIClient:
    """GitHub REST request issuer with automatic token detection.

    Features:
    - Automatic token detection (--token arg > ~/.config/github-token > GitHub CLI config file)
    - One request per call; errors surface as RemoteFetchError subclasses
    - Per-process request statistics (GITHUB_API_STATS)

    Example:
        client = GitHubAPIClient()
        run = client.issue("GET", client.api_url("/repos/owner/repo/actions/runs/123"))
    """

    @staticmethod
    def get_github_token_from_file() -> Optional[str]:
        """Get GitHub token from a local config file (preferred).

        We intentionally do NOT read GH_TOKEN/GITHUB_TOKEN env vars.

        Currently supported locations (first match wins):
        - ~/.config/github-token   (single line token)
        - ~/.config/gh/hosts.yml   (GitHub CLI login; oauth_token)
        """
        try:
            token_file = Path.home() / ".config" / "github-token"
            if token_file.exists():
                tok = (token_file.read_text() or "").strip()
                if tok:
                    return tok
        except OSError:
            pass
        return GitHubAPIClient.get_github_token_from_cli()

    @staticmethod
    def get_github_token_from_cli() -> Optional[str]:
        """Get GitHub token from GitHub CLI configuration.

        Reads the token from ~/.config/gh/hosts.yml if available.

        Returns:
            GitHub token string, or None if not found
        """
        try:
            gh_config_path = Path.home() / '.config' / 'gh' / 'hosts.yml'
            if gh_config_path.exists():
                with open(gh_config_path, 'r') as f:
                    config = yaml.safe_load(f)
                    if config and 'github.com' in config:
                        github_config = config['github.com'] or {}
                        if 'oauth_token' in github_config:
                            return github_config['oauth_token']
                        for _user, user_config in (github_config.get('users') or {}).items():
                            if isinstance(user_config, dict) and 'oauth_token' in user_config:
                                return user_config['oauth_token']
        except (OSError, yaml.YAMLError):
            pass
        return None

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: str = GITHUB_API_BASE_URL,
        require_auth: bool = False,
        debug_rest: bool = False,
    ):
        """Initialize GitHub API client.

        Args:
            token: GitHub personal access token. If not provided, will try:
                   1. ~/.config/github-token (if present)
                   2. GitHub CLI config (~/.config/gh/hosts.yml)
            base_url: REST API root (GitHub Enterprise uses https://<host>/api/v3).
            require_auth: If True, raise an error if we cannot find a token.
            debug_rest: Log every request/response at DEBUG.
        """
        self.token = token or self.get_github_token_from_file()
        self.require_auth = bool(require_auth)
        self.base_url = str(base_url or GITHUB_API_BASE_URL).rstrip("/")
        self.headers = {'Accept': 'application/vnd.github.v3+json'}
        self.logger = logging.getLogger(self.__class__.__name__)
        self._debug_rest = bool(debug_rest)

        if self.require_auth and not self.token:
            raise RuntimeError(
                "GitHub API authentication is required but no token was found. "
                "Pass --token, or login with gh so ~/.config/gh/hosts.yml exists."
            )

        if self.token:
            self.headers['Authorization'] = f'token {self.token}'

    def has_token(self) -> bool:
        """Check if a GitHub token is configured."""
        return self.token is not None

    def api_url(self, path: str) -> str:
        """'/repos/o/r' -> 'https://api.github.com/repos/o/r'."""
        p = str(path or "")
        return f"{self.base_url}{p}" if p.startswith('/') else f"{self.base_url}/{p}"

    def _rest_label_for_url(self, url: str) -> str:
        """Coarse label for a REST request URL (keeps run/job ids from exploding cardinality)."""
        u = str(url or "")
        try:
            path = urllib.parse.urlparse(u).path or ""
        except ValueError:
            path = ""
        s = path or u

        if re.search(r"/repos/[^/]+/[^/]+/actions/runs/\d+/jobs\b", s):
            return "actions_run_jobs"
        if re.search(r"/repos/[^/]+/[^/]+/actions/runs/\d+/rerun\b", s):
            return "actions_run_rerun"
        if re.search(r"/repos/[^/]+/[^/]+/actions/runs/\d+/cancel\b", s):
            return "actions_run_cancel"
        if re.search(r"/repos/[^/]+/[^/]+/actions/runs/\d+\b", s):
            return "actions_run"
        if re.search(r"/repos/[^/]+/[^/]+/actions/runs\b", s):
            return "actions_runs_list"

        parts = [p for p in (path or "").split("/") if p]
        if len(parts) >= 4 and parts[0] == "repos":
            return f"repos_{parts[3]}"
        return "/".join(parts[:3]) if parts else "unknown"

    def _headers_for(self, context: Optional[ActionContext]) -> Dict[str, str]:
        headers = dict(self.headers or {})
        if context is not None and context.token:
            headers['Authorization'] = f'token {context.token}'
        return headers

    def issue(
        self,
        method: str,
        url: str,
        context: Optional[ActionContext] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: int = 10,
    ) -> Any:
        """Send one authenticated REST request and return the parsed JSON body.

        Returns:
            dict/list for a JSON body, or None for an empty body (e.g. 201/204
            replies to POST .../rerun and .../cancel).

        Raises:
            RemoteTransportError: requests raised (connection, timeout, ...)
            RemoteRateLimitError: 403 with X-RateLimit-Remaining: 0
            RemoteStatusError: any other non-2xx status
            RemoteParseError: body is not valid JSON
        """
        method_u = str(method or "GET").upper()
        label = self._rest_label_for_url(url)
        op = context.operation if context is not None and context.operation else ""
        if self._debug_rest:
            self.logger.debug("GH REST %s [%s] %s%s", method_u, label, url, f" ({op})" if op else "")

        t0_req = time.monotonic()
        try:
            resp = requests.request(
                method_u,
                url,
                headers=self._headers_for(context),
                params=params,
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            GITHUB_API_STATS.record_call(method=method_u, label=label, dt_s=max(0.0, time.monotonic() - t0_req))
            GITHUB_API_STATS.record_error(status=0, url=url, body=str(e))
            raise RemoteTransportError(
                f"GitHub API request failed for {method_u} {url}: {e}", url=url, method=method_u
            ) from e
        GITHUB_API_STATS.record_call(method=method_u, label=label, dt_s=max(0.0, time.monotonic() - t0_req))

        code = int(resp.status_code or 0)
        if self._debug_rest:
            rem = resp.headers.get("X-RateLimit-Remaining")
            self.logger.debug("GH REST RESP [%s] status=%s remaining=%s", label, str(code), str(rem))

        if code < 200 or code >= 300:
            body = ""
            try:
                body = resp.text or ""
            except (ValueError, TypeError):
                body = ""
            GITHUB_API_STATS.record_error(status=code, url=url, body=body)
            if code == 403 and resp.headers.get('X-RateLimit-Remaining') == '0':
                raise RemoteRateLimitError(
                    "GitHub API rate limit exceeded. Provide --token (or login with gh so ~/.config/gh/hosts.yml exists).",
                    url=url, method=method_u, status_code=code,
                )
            raise RemoteStatusError(
                f"GitHub API returned {code} for {method_u} {url}: {body[:300]}",
                url=url, method=method_u, status_code=code,
            )

        text = resp.text or ""
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise RemoteParseError(
                f"GitHub API returned non-JSON body for {method_u} {url}: {e}",
                url=url, method=method_u, status_code=code,
            ) from e


__all__ = [
    "ActionContext",
    "GITHUB_API_BASE_URL",
    "GITHUB_API_STATS",
    "GitHubAPIClient",
    "RemoteFetchError",
    "get_repo_fullname",
]
