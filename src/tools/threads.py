"""MCP tools for merge request review threads (GitLab discussions)."""

from __future__ import annotations

from clients.gitlab import GitLabClient
from core.models import (
    AddNoteToMergeRequestThreadArgs,
    CreateMergeRequestThreadArgs,
    GetThreadListMergeRequestArgs,
    ResolveMergeRequestThreadArgs,
)
from core.registry import ToolRegistry


def register(registry: ToolRegistry, *, gitlab_client: GitLabClient) -> None:
    @registry.tool(
        name="create_merge_request_thread",
        description=(
            "Create a new thread on a merge request, optionally anchored to a diff position. "
            "If GitLab rejects the line position, the thread is posted as a file-level comment instead."
        ),
        input_model=CreateMergeRequestThreadArgs,
    )
    async def create_merge_request_thread(args: CreateMergeRequestThreadArgs):
        position = args.position.model_dump(exclude_none=True) if args.position else None
        return await gitlab_client.create_merge_request_thread(
            args.project_id,
            args.merge_request_iid,
            body=args.body,
            position=position,
            commit_id=args.commit_id,
        )

    @registry.tool(
        name="resolve_merge_request_thread",
        description="Resolve or unresolve a thread on a merge request",
        input_model=ResolveMergeRequestThreadArgs,
    )
    async def resolve_merge_request_thread(args: ResolveMergeRequestThreadArgs):
        return await gitlab_client.resolve_merge_request_thread(
            args.project_id,
            args.merge_request_iid,
            args.discussion_id,
            resolved=args.resolved,
        )

    @registry.tool(
        name="add_note_to_merge_request_thread",
        description="Add a note (reply) to an existing merge request thread",
        input_model=AddNoteToMergeRequestThreadArgs,
    )
    async def add_note_to_merge_request_thread(args: AddNoteToMergeRequestThreadArgs):
        return await gitlab_client.add_note_to_merge_request_thread(
            args.project_id,
            args.merge_request_iid,
            args.discussion_id,
            body=args.body,
            note_id=args.note_id,
        )

    @registry.tool(
        name="get_thread_list_merge_request",
        description="List all threads of a merge request, starting at `page` (default 1)",
        input_model=GetThreadListMergeRequestArgs,
    )
    async def get_thread_list_merge_request(args: GetThreadListMergeRequestArgs):
        return await gitlab_client.get_merge_request_threads(
            args.project_id,
            args.merge_request_iid,
            page=args.page,
            per_page=args.per_page,
        )
