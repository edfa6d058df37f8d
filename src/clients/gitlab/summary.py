"""Readable summary of a merge request `changes` payload."""

from __future__ import annotations

from typing import Any, Dict

from .entities import GitLabDiffEntry, GitLabMergeRequestChanges

PREVIEW_LINES = 3
TRUNCATION_MARKER = "\n..."


def change_type(entry: GitLabDiffEntry) -> str:
    if entry.new_file:
        return "added"
    if entry.deleted_file:
        return "deleted"
    if entry.renamed_file:
        return "renamed"
    return "modified"


def diff_preview(diff: str) -> str:
    lines = diff.split("\n")
    preview = "\n".join(lines[:PREVIEW_LINES])
    if len(lines) > PREVIEW_LINES:
        preview += TRUNCATION_MARKER
    return preview


def summarize_merge_request_changes(changes: GitLabMergeRequestChanges) -> Dict[str, Any]:
    kinds = [change_type(entry) for entry in changes.changes]
    return {
        "summary": {
            "total_files_changed": len(kinds),
            "files_added": kinds.count("added"),
            "files_deleted": kinds.count("deleted"),
            "files_renamed": kinds.count("renamed"),
            "files_modified": kinds.count("modified"),
        },
        "file_changes": [
            {
                "old_path": entry.old_path,
                "new_path": entry.new_path,
                "change_type": kind,
                "diff_preview": diff_preview(entry.diff),
            }
            for entry, kind in zip(changes.changes, kinds)
        ],
        "commits": list(changes.commits),
    }
