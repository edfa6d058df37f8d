from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx

from core.errors import ResponseShapeError

from .entities import GitLabRepository, parse_entity
from .inputs import encode_segment

RequestFn = Callable[..., Awaitable[httpx.Response]]


async def resolve_default_branch(
    request: RequestFn,
    client: httpx.AsyncClient,
    *,
    project_id: Any,
) -> str:
    resp = await request(client, "GET", f"/projects/{encode_segment(project_id)}")
    try:
        data = resp.json()
    except ValueError as e:
        raise ResponseShapeError([("", "response body is not valid JSON")], context="get_default_branch") from e

    project = parse_entity(GitLabRepository, data, context="get_default_branch")

    # Projects without any commit have no default branch to branch from
    if not project.default_branch:
        raise ResponseShapeError(
            [("default_branch", "project has no default branch")],
            context="get_default_branch",
        )
    return project.default_branch
