from __future__ import annotations

from clients.gitlab import GitLabClient
from core.models import CreateIssueArgs
from core.registry import ToolRegistry


def register(registry: ToolRegistry, *, gitlab_client: GitLabClient) -> None:
    @registry.tool(
        name="create_issue",
        description="Create a new issue in a GitLab project",
        input_model=CreateIssueArgs,
    )
    async def create_issue(args: CreateIssueArgs):
        return await gitlab_client.create_issue(
            args.project_id,
            title=args.title,
            description=args.description,
            assignee_ids=args.assignee_ids,
            milestone_id=args.milestone_id,
            labels=args.labels,
        )
