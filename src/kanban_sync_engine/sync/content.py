"""Content classification pass.

Compares the current remote body and local detail with the baseline taken
at the last pull or push.  Each side is compared only against its own
baseline hash, never against the other side.
"""

from __future__ import annotations

from ..remote.models import RemoteIssue
from .models import BaselineEntry, ContentState
from .state import BaselineStore


def remote_changed(baseline: BaselineEntry, issue: RemoteIssue) -> bool:
    return (
        baseline.remote_updated_at != issue.updated_at
        or baseline.remote_body_hash != BaselineStore.content_hash(issue.body or "")
    )


def local_changed(baseline: BaselineEntry, local_detail: str) -> bool:
    return baseline.local_detail_hash_at_pull != BaselineStore.content_hash(
        local_detail
    )


def classify_content(
    baseline: BaselineEntry | None, issue: RemoteIssue, local_detail: str
) -> ContentState:
    """Classify one linked task whose remote issue exists."""
    if baseline is None:
        return ContentState.NO_BASELINE

    remote = remote_changed(baseline, issue)
    local = local_changed(baseline, local_detail)
    if remote and local:
        return ContentState.CONTENT_CONFLICT
    if remote:
        return ContentState.REMOTE_AHEAD
    if local:
        return ContentState.LOCAL_AHEAD
    return ContentState.CLEAN
