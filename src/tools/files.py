"""MCP tools for branches and repository files.

Registers 'create_branch', 'get_file_contents', 'create_or_update_file'
and 'push_files'.
"""

from __future__ import annotations

from clients.gitlab import GitLabClient
from core.models import CreateBranchArgs, CreateOrUpdateFileArgs, GetFileContentsArgs, PushFilesArgs
from core.registry import ToolRegistry


def register(registry: ToolRegistry, *, gitlab_client: GitLabClient) -> None:
    @registry.tool(
        name="create_branch",
        description="Create a new branch in a GitLab project",
        input_model=CreateBranchArgs,
    )
    async def create_branch(args: CreateBranchArgs):
        """Create a branch from `ref`, or from the default branch when `ref` is omitted."""
        return await gitlab_client.create_branch(args.project_id, branch=args.branch, ref=args.ref)

    @registry.tool(
        name="get_file_contents",
        description="Get the contents of a file or directory from a GitLab project",
        input_model=GetFileContentsArgs,
    )
    async def get_file_contents(args: GetFileContentsArgs):
        """Return a file record with decoded text content, or a list of directory entries."""
        return await gitlab_client.get_file_contents(args.project_id, args.file_path, args.ref)

    @registry.tool(
        name="create_or_update_file",
        description="Create or update a single file in a GitLab project",
        input_model=CreateOrUpdateFileArgs,
    )
    async def create_or_update_file(args: CreateOrUpdateFileArgs):
        return await gitlab_client.create_or_update_file(
            args.project_id,
            args.file_path,
            content=args.content,
            commit_message=args.commit_message,
            branch=args.branch,
            previous_path=args.previous_path,
        )

    @registry.tool(
        name="push_files",
        description="Push multiple files to a GitLab project in a single commit",
        input_model=PushFilesArgs,
    )
    async def push_files(args: PushFilesArgs):
        return await gitlab_client.push_files(
            args.project_id,
            branch=args.branch,
            commit_message=args.commit_message,
            files=[f.model_dump() for f in args.files],
        )
