"""Immutable input models for the MCP tools.

One pydantic model per tool. The registry validates raw tool arguments
against these models and publishes `model_json_schema()` as each tool's
input schema, so field names here match GitLab's API field names.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PositionType = Literal["text", "image", "file"]
Visibility = Literal["private", "internal", "public"]


class ToolArgs(BaseModel):
    # IDs may arrive as JSON numbers; GitLab treats them as opaque strings
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)


class ProjectParams(ToolArgs):
    project_id: str = Field(description="Project ID or URL-encoded path")


class MergeRequestParams(ProjectParams):
    merge_request_iid: str = Field(description="The internal ID of the merge request")


class DiscussionParams(MergeRequestParams):
    discussion_id: str = Field(description="The ID of a thread")


# --- Files & repositories ---


class CreateOrUpdateFileArgs(ProjectParams):
    file_path: str = Field(description="Path where to create/update the file")
    content: str = Field(description="Content of the file")
    commit_message: str = Field(description="Commit message")
    branch: str = Field(description="Branch to create/update the file in")
    previous_path: Optional[str] = Field(default=None, description="Path of the file to move/rename")


class SearchRepositoriesArgs(ToolArgs):
    search: str = Field(description="Search query")
    page: int = Field(default=1, ge=1, description="Page number for pagination (default: 1)")
    per_page: int = Field(default=20, ge=1, le=100, description="Number of results per page (default: 20)")


class CreateRepositoryArgs(ToolArgs):
    name: str = Field(description="Repository name")
    description: Optional[str] = Field(default=None, description="Repository description")
    visibility: Optional[Visibility] = Field(default=None, description="Repository visibility level")
    initialize_with_readme: Optional[bool] = Field(default=None, description="Initialize with README.md")


class GetFileContentsArgs(ProjectParams):
    file_path: str = Field(description="Path to the file or directory")
    ref: str = Field(description="Branch/tag/commit to get contents from")


class FileOperation(ToolArgs):
    file_path: str = Field(description="Path where to create the file")
    content: str = Field(description="Content of the file")


class PushFilesArgs(ProjectParams):
    branch: str = Field(description="Branch to push to")
    files: List[FileOperation] = Field(min_length=1, description="Array of files to push")
    commit_message: str = Field(description="Commit message")


class ForkRepositoryArgs(ProjectParams):
    namespace: Optional[str] = Field(default=None, description="Namespace to fork to (full path)")


class CreateBranchArgs(ProjectParams):
    branch: str = Field(description="Name for the new branch")
    ref: Optional[str] = Field(
        default=None,
        description="Source branch/commit for new branch (defaults to the project's default branch)",
    )


# --- Issues ---


class CreateIssueArgs(ProjectParams):
    title: str = Field(description="Issue title")
    description: Optional[str] = Field(default=None, description="Issue description")
    assignee_ids: Optional[List[int]] = Field(default=None, description="Array of user IDs to assign")
    labels: Optional[List[str]] = Field(default=None, description="Array of label names")
    milestone_id: Optional[int] = Field(default=None, description="Milestone ID to assign")


# --- Merge requests ---


class CreateMergeRequestArgs(ProjectParams):
    title: str = Field(description="Merge request title")
    description: Optional[str] = Field(default=None, description="Merge request description")
    source_branch: str = Field(description="Branch containing changes")
    target_branch: str = Field(description="Branch to merge into")
    draft: Optional[bool] = Field(default=None, description="Create as draft merge request")
    allow_collaboration: Optional[bool] = Field(default=None, description="Allow commits from upstream members")


class CommentMergeRequestArgs(MergeRequestParams):
    body: str = Field(min_length=1, description="Comment content")


class GetMergeRequestDiffsArgs(MergeRequestParams):
    pass


class GetMergeRequestRawDiffsArgs(MergeRequestParams):
    pass


class GetMergeRequestChangesArgs(MergeRequestParams):
    access_raw_diffs: Optional[bool] = Field(
        default=None, description="Retrieve change diffs via Gitaly, bypassing diff size limits"
    )
    with_stats: Optional[bool] = Field(default=None, description="Include addition/deletion statistics")


class ApproveMergeRequestArgs(MergeRequestParams):
    pass


class UnapproveMergeRequestArgs(MergeRequestParams):
    pass


class GetMergeRequestVersionArgs(MergeRequestParams):
    pass


# --- Threads ---


class LineArgs(ToolArgs):
    line_code: str = Field(description="Line code of the diff line, as reported by GitLab")
    type: Optional[Literal["new", "old"]] = Field(default=None, description="Side of the diff the line is on")
    old_line: Optional[int] = Field(default=None, description="Line number in the old version")
    new_line: Optional[int] = Field(default=None, description="Line number in the new version")


class LineRangeArgs(ToolArgs):
    start: LineArgs = Field(description="Start of the line range")
    end: LineArgs = Field(description="End of the line range")


class DiffPositionArgs(ToolArgs):
    base_sha: str = Field(description="SHA of the base commit of the diff. Get from merge request version")
    start_sha: str = Field(
        description="SHA of the starting commit in the diff comparison. Get from merge request version"
    )
    head_sha: str = Field(description="SHA of the head commit in the diff. Get from merge request version")
    old_path: str = Field(description="Path to the file in the old version")
    new_path: str = Field(description="Path to the file in the new version")
    position_type: PositionType = Field(description="Type of position, usually 'text'")
    old_line: Optional[int] = Field(
        default=None,
        description=(
            "Use this without 'new_line' to create a thread on a removed line (line starts with -). "
            "Or use with new_line to create a thread on an unchanged line"
        ),
    )
    new_line: Optional[int] = Field(
        default=None,
        description=(
            "Use this without 'old_line' to create a thread on an added line (line starts with +). "
            "Or use with old_line to create a thread on an unchanged line"
        ),
    )
    line_range: Optional[LineRangeArgs] = Field(
        default=None, description="Line range for a multi-line comment"
    )


class CreateMergeRequestThreadArgs(MergeRequestParams):
    body: str = Field(min_length=1, description="The content of the thread")
    commit_id: Optional[str] = Field(default=None, description="SHA referencing commit to start this thread on")
    position: Optional[DiffPositionArgs] = Field(
        default=None, description="Optional position object for diff/image/file comments"
    )


class ResolveMergeRequestThreadArgs(DiscussionParams):
    resolved: bool = Field(description="Resolve or unresolve the discussion")


class AddNoteToMergeRequestThreadArgs(DiscussionParams):
    body: str = Field(min_length=1, description="The content of the note")
    note_id: Optional[str] = Field(default=None, description="The ID of a thread note")


class GetThreadListMergeRequestArgs(MergeRequestParams):
    page: Optional[int] = Field(default=None, ge=1, description="First page to fetch (default: 1)")
    per_page: Optional[int] = Field(default=None, ge=1, le=100, description="Number of results per page")
