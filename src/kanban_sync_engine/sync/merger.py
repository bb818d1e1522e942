"""Three-way merge for conflict artifacts.

Uses the ``merge3`` library for three-way merging (the same algorithm used
by Bazaar/Breezy).  Conflict markers follow Git convention with custom
labels: ``<<<<<<< LOCAL``, ``=======``, ``>>>>>>> REMOTE``.
"""

from __future__ import annotations

from merge3 import Merge3

CONFLICT_START = "<<<<<<< LOCAL"


def attempt_merge(
    base_content: str,
    local_content: str,
    remote_content: str,
) -> tuple[str, bool]:
    """Perform a three-way merge of local and remote changes against a base.

    Args:
        base_content: Local detail at the last baseline.
        local_content: The current local detail.
        remote_content: The detail section of the current issue body.

    Returns:
        A tuple of ``(merged_text, has_conflicts)`` where *merged_text* may
        contain conflict markers.
    """
    m3 = Merge3(
        base_content.splitlines(True),
        local_content.splitlines(True),
        remote_content.splitlines(True),
    )
    merged_text = "".join(
        m3.merge_lines(
            name_a="LOCAL",
            name_b="REMOTE",
            start_marker="<<<<<<<",
            mid_marker="=======",
            end_marker=">>>>>>>",
        )
    )
    return merged_text, CONFLICT_START in merged_text
