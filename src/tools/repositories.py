"""MCP tools for GitLab projects: search, create and fork."""

from __future__ import annotations

from clients.gitlab import GitLabClient
from core.models import CreateRepositoryArgs, ForkRepositoryArgs, SearchRepositoriesArgs
from core.registry import ToolRegistry


def register(registry: ToolRegistry, *, gitlab_client: GitLabClient) -> None:
    @registry.tool(
        name="search_repositories",
        description="Search for GitLab projects",
        input_model=SearchRepositoriesArgs,
    )
    async def search_repositories(args: SearchRepositoriesArgs):
        return await gitlab_client.search_projects(args.search, page=args.page, per_page=args.per_page)

    @registry.tool(
        name="create_repository",
        description="Create a new GitLab project",
        input_model=CreateRepositoryArgs,
    )
    async def create_repository(args: CreateRepositoryArgs):
        return await gitlab_client.create_repository(
            name=args.name,
            description=args.description,
            visibility=args.visibility,
            initialize_with_readme=args.initialize_with_readme,
        )

    @registry.tool(
        name="fork_repository",
        description="Fork a GitLab project to your account or specified namespace",
        input_model=ForkRepositoryArgs,
    )
    async def fork_repository(args: ForkRepositoryArgs):
        return await gitlab_client.fork_project(args.project_id, namespace=args.namespace)
