"""Normalized GitLab response records.

Each model mirrors the subset of a GitLab REST v4 payload this server
returns to callers. Unknown keys are dropped, models are frozen, and a
payload missing a required field is rejected by `parse_entity` rather than
returned partially.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from core.errors import ResponseShapeError, field_errors

T = TypeVar("T")


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# --- Users & projects ---


class GitLabUser(Entity):
    id: int
    username: str
    name: str
    avatar_url: Optional[str] = None
    web_url: str


class GitLabOwner(GitLabUser):
    state: str


class GitLabRepository(Entity):
    id: int
    name: str
    path_with_namespace: str
    visibility: str
    owner: Optional[GitLabOwner] = None
    web_url: str
    description: Optional[str] = None
    fork: Optional[bool] = None
    ssh_url_to_repo: str
    http_url_to_repo: str
    created_at: str
    last_activity_at: str
    # Empty projects have no default branch yet
    default_branch: Optional[str] = None


class GitLabForkParentOwner(Entity):
    id: int
    username: str
    avatar_url: Optional[str] = None


class GitLabForkParent(Entity):
    name: str
    path_with_namespace: str
    owner: Optional[GitLabForkParentOwner] = None
    web_url: str


class GitLabFork(GitLabRepository):
    forked_from_project: GitLabForkParent


class GitLabSearchResponse(Entity):
    count: int
    items: List[GitLabRepository]


# --- Repository contents ---


class GitLabReferenceCommit(Entity):
    id: str
    web_url: str


class GitLabReference(Entity):
    name: str
    commit: GitLabReferenceCommit


class GitLabFileContent(Entity):
    file_name: str
    file_path: str
    size: int
    encoding: str
    content: str
    content_sha256: str
    ref: str
    blob_id: str
    last_commit_id: str


class GitLabTreeEntry(Entity):
    id: str
    name: str
    type: Literal["blob", "tree"]
    path: str
    mode: str


class GitLabDirectoryEntry(GitLabTreeEntry):
    web_url: Optional[str] = None


GitLabContent = Union[GitLabFileContent, List[GitLabDirectoryEntry]]


class GitLabCommit(Entity):
    id: str
    short_id: str
    title: str
    author_name: str
    author_email: str
    authored_date: str
    committer_name: str
    committer_email: str
    committed_date: str
    web_url: str
    parent_ids: List[str]


class GitLabCreateUpdateFileResponse(Entity):
    file_path: str
    branch: str
    commit_id: Optional[str] = None
    content: Optional[GitLabFileContent] = None


# --- Issues ---


class GitLabLabel(Entity):
    id: int
    name: str
    color: str
    description: Optional[str] = None


class GitLabMilestone(Entity):
    id: int
    iid: int
    title: str
    description: Optional[str] = None
    state: str
    web_url: str


class GitLabIssue(Entity):
    id: int
    iid: int
    project_id: int
    title: str
    description: Optional[str] = None
    state: Optional[str] = None
    author: GitLabUser
    assignees: List[GitLabUser]
    # Plain names unless the request asked for label details
    labels: List[Union[GitLabLabel, str]]
    milestone: Optional[GitLabMilestone] = None
    web_url: str


# --- Merge requests ---


class GitLabDiffRefs(Entity):
    base_sha: str
    head_sha: str
    start_sha: str


class GitLabMergeRequest(Entity):
    id: int
    iid: int
    project_id: int
    title: str
    description: Optional[str] = None
    state: Optional[str] = None
    merged: Optional[bool] = None
    draft: Optional[bool] = None
    author: GitLabUser
    assignees: List[GitLabUser]
    source_branch: str
    target_branch: str
    diff_refs: Optional[GitLabDiffRefs] = None
    web_url: str
    merge_commit_sha: Optional[str] = None


class GitLabDiffEntry(Entity):
    old_path: str
    new_path: str
    a_mode: str
    b_mode: str
    diff: str
    new_file: bool
    renamed_file: bool
    deleted_file: bool
    # Only reported by newer GitLab releases
    generated_file: Optional[bool] = None


class GitLabMergeRequestChanges(GitLabMergeRequest):
    changes: List[GitLabDiffEntry]
    overflow: Optional[bool] = None
    commits: List[Dict[str, Any]] = Field(default_factory=list)


class GitLabApprovalUser(Entity):
    user: GitLabUser


class GitLabApproval(Entity):
    id: int
    iid: int
    project_id: int
    title: str
    description: Optional[str] = None
    state: str
    merge_status: str
    approvals_required: int
    approvals_left: int
    approved_by: List[GitLabApprovalUser]


class GitLabMergeRequestVersion(Entity):
    id: int
    head_commit_sha: str
    base_commit_sha: str
    start_commit_sha: str
    merge_request_id: int
    created_at: Optional[str] = None
    state: Optional[str] = None
    real_size: Optional[str] = None


# --- Notes & threads ---


class GitLabNote(Entity):
    id: int
    body: str
    author: GitLabUser
    system: bool
    noteable_id: int
    noteable_type: Literal["Issue", "MergeRequest", "Epic", "Commit", "Snippet"]
    project_id: int
    noteable_iid: Optional[int] = None
    resolvable: bool


class GitLabThreadLine(Entity):
    line_code: str
    type: Optional[str] = None
    old_line: Optional[int] = None
    new_line: Optional[int] = None


class GitLabThreadLineRange(Entity):
    start: GitLabThreadLine
    end: GitLabThreadLine


class GitLabThreadPosition(Entity):
    base_sha: str
    start_sha: str
    head_sha: str
    old_path: str
    new_path: str
    position_type: Literal["text", "image", "file"]
    old_line: Optional[int] = None
    new_line: Optional[int] = None
    line_range: Optional[GitLabThreadLineRange] = None


class GitLabThreadNote(GitLabNote):
    type: Optional[Literal["Note", "Discussion", "DiscussionNote", "DiffNote"]] = None
    attachment: Optional[Any] = None
    commit_id: Optional[str] = None
    position: Optional[GitLabThreadPosition] = None
    resolved: Optional[bool] = None
    resolved_by: Optional[GitLabUser] = None


class GitLabThread(Entity):
    id: str
    individual_note: bool
    notes: List[GitLabThreadNote]


@lru_cache(maxsize=None)
def _adapter(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def parse_entity(schema: Any, data: Any, *, context: str) -> Any:
    """Validate a decoded GitLab payload against `schema` (a model or typing form)."""
    try:
        return _adapter(schema).validate_python(data)
    except ValidationError as e:
        raise ResponseShapeError(field_errors(e), context=context) from e
