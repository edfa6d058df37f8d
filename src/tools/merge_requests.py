"""MCP tools for merge requests.

Registers creation, commenting, approval and the read-only diff views
('get_merge_request_diffs', 'get_merge_request_raw_diffs',
'get_merge_request_changes', 'get_merge_request_version').
"""

from __future__ import annotations

from clients.gitlab import GitLabClient
from clients.gitlab.summary import summarize_merge_request_changes
from core.models import (
    ApproveMergeRequestArgs,
    CommentMergeRequestArgs,
    CreateMergeRequestArgs,
    GetMergeRequestChangesArgs,
    GetMergeRequestDiffsArgs,
    GetMergeRequestRawDiffsArgs,
    GetMergeRequestVersionArgs,
    UnapproveMergeRequestArgs,
)
from core.registry import ToolRegistry


def register(registry: ToolRegistry, *, gitlab_client: GitLabClient) -> None:
    @registry.tool(
        name="create_merge_request",
        description="Create a new merge request in a GitLab project",
        input_model=CreateMergeRequestArgs,
    )
    async def create_merge_request(args: CreateMergeRequestArgs):
        return await gitlab_client.create_merge_request(
            args.project_id,
            title=args.title,
            description=args.description,
            source_branch=args.source_branch,
            target_branch=args.target_branch,
            allow_collaboration=args.allow_collaboration,
            draft=args.draft,
        )

    @registry.tool(
        name="comment_merge_request",
        description="Comment a merge request in a GitLab project",
        input_model=CommentMergeRequestArgs,
    )
    async def comment_merge_request(args: CommentMergeRequestArgs):
        return await gitlab_client.comment_merge_request(args.project_id, args.merge_request_iid, args.body)

    @registry.tool(
        name="get_merge_request_diffs",
        description="Get the file diffs of a merge request (all pages)",
        input_model=GetMergeRequestDiffsArgs,
    )
    async def get_merge_request_diffs(args: GetMergeRequestDiffsArgs):
        return await gitlab_client.get_merge_request_diffs(args.project_id, args.merge_request_iid)

    @registry.tool(
        name="get_merge_request_raw_diffs",
        description="Get the raw unified diff of a merge request as plain text",
        input_model=GetMergeRequestRawDiffsArgs,
    )
    async def get_merge_request_raw_diffs(args: GetMergeRequestRawDiffsArgs):
        return await gitlab_client.get_merge_request_raw_diffs(args.project_id, args.merge_request_iid)

    @registry.tool(
        name="get_merge_request_changes",
        description=(
            "Get the changes (diff) from a merge request in a GitLab project. "
            "Returns file changes with diffs, commit info, and optionally statistics."
        ),
        input_model=GetMergeRequestChangesArgs,
    )
    async def get_merge_request_changes(args: GetMergeRequestChangesArgs):
        """Return the raw changes payload next to a per-file summary with short diff previews."""
        changes = await gitlab_client.get_merge_request_changes(
            args.project_id,
            args.merge_request_iid,
            access_raw_diffs=args.access_raw_diffs,
            with_stats=args.with_stats,
        )
        return {
            "raw_changes": changes,
            "summary": summarize_merge_request_changes(changes),
        }

    @registry.tool(
        name="approve_merge_request",
        description="Approve a merge request",
        input_model=ApproveMergeRequestArgs,
    )
    async def approve_merge_request(args: ApproveMergeRequestArgs):
        return await gitlab_client.approve_merge_request(args.project_id, args.merge_request_iid)

    @registry.tool(
        name="unapprove_merge_request",
        description="Unapprove a merge request",
        input_model=UnapproveMergeRequestArgs,
    )
    async def unapprove_merge_request(args: UnapproveMergeRequestArgs):
        return await gitlab_client.unapprove_merge_request(args.project_id, args.merge_request_iid)

    @registry.tool(
        name="get_merge_request_version",
        description=(
            "List the diff versions of a merge request, newest first. "
            "Use base/start/head commit SHAs from a version to build a thread position."
        ),
        input_model=GetMergeRequestVersionArgs,
    )
    async def get_merge_request_version(args: GetMergeRequestVersionArgs):
        return await gitlab_client.get_merge_request_versions(args.project_id, args.merge_request_iid)
