"""Icon keys for run and job nodes.

A key is "<category>/<name>": "conclusions/success", "statuses/queued", ...
Hosts resolve keys to their own icon resources; `all_icon_keys()` lists every
key the enums can produce so a host can check it ships all of them.
"""

from __future__ import annotations

from typing import List, Optional

from common_types import RunConclusion, RunStatus

CONCLUSIONS_CATEGORY = "conclusions"
STATUSES_CATEGORY = "statuses"


def icon_key(conclusion: Optional[RunConclusion], status: RunStatus) -> str:
    """Conclusion wins whenever present; status is only consulted while running."""
    if conclusion is not None:
        return f"{CONCLUSIONS_CATEGORY}/{RunConclusion(conclusion).value}"
    return f"{STATUSES_CATEGORY}/{RunStatus(status).value}"


def all_icon_keys() -> List[str]:
    return [f"{CONCLUSIONS_CATEGORY}/{c.value}" for c in RunConclusion] + [
        f"{STATUSES_CATEGORY}/{s.value}" for s in RunStatus
    ]
