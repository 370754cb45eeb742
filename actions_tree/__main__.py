#!/usr/bin/env python3
"""Module entrypoint for `actions_tree`.

Usage:
  - `python3 -m actions_tree owner/repo`
  - `python3 -m actions_tree owner/repo --rerun 21507141526`
"""

from __future__ import annotations

from .cli import _cli


if __name__ == "__main__":
    raise SystemExit(_cli())
