"""GitLab client module: one async method per remote operation.

Every method builds its URL from a fixed path template with percent-encoded
segments, sends the request with the bearer token, fails with
`RemoteApiError` on a non-success status, and parses the JSON body into the
normalized records from `entities`. Calls inside one operation share a
single `httpx.AsyncClient` and run strictly in sequence.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Iterable, List, Mapping, Optional
from urllib.parse import urlencode

import httpx

from config import Settings
from core.errors import ExternalServiceError, GitLabMCPError, RemoteApiError, ResponseShapeError

from .entities import (
    GitLabApproval,
    GitLabCommit,
    GitLabContent,
    GitLabCreateUpdateFileResponse,
    GitLabDiffEntry,
    GitLabFileContent,
    GitLabFork,
    GitLabIssue,
    GitLabMergeRequest,
    GitLabMergeRequestChanges,
    GitLabMergeRequestVersion,
    GitLabNote,
    GitLabReference,
    GitLabRepository,
    GitLabSearchResponse,
    GitLabThread,
    GitLabThreadNote,
    parse_entity,
)
from .inputs import compact, encode_segment, join_labels, position_form_fields
from .pagination import collect_pages
from .refs import resolve_default_branch

logger = logging.getLogger(__name__)

_LINE_KEYS = ("old_line", "new_line", "line_range")


class GitLabClient:
    """Async GitLab REST v4 client used by the MCP tools.

    Key behavior:
      - No caching, batching or throttling; each call goes to GitLab.
      - Paged listings (MR diffs, discussions) are accumulated until a short page.
      - `create_or_update_file` probes for the file to choose PUT vs POST.
      - `create_merge_request_thread` retries once as a file-level comment
        when GitLab rejects the line position.
    """

    JSON_CONTENT_TYPE = "application/json"
    FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
    USER_AGENT = "gitlab-mcp-server"

    FALLBACK_NOTICE = (
        "\n\n---\n_Note: line-specific placement of this comment failed, "
        "so it was posted as a file-level comment._"
    )

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.api_url
        self._timeout = float(settings.timeout)
        self._verify = bool(settings.http_verify)
        self._headers = self._build_headers(settings.token)

    # --- Projects ---

    async def fork_project(self, project_id: str, namespace: Optional[str] = None) -> GitLabFork:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"/projects/{encode_segment(project_id)}/fork",
                params=compact({"namespace": namespace}),
            )
            return parse_entity(GitLabFork, self._json(resp, "fork_project"), context="fork_project")

    async def get_default_branch(self, project_id: str) -> str:
        async with self._create_client() as client:
            return await resolve_default_branch(self._request, client, project_id=project_id)

    async def search_projects(self, search: str, page: int = 1, per_page: int = 20) -> GitLabSearchResponse:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "GET",
                "/projects",
                params={"search": search, "page": page, "per_page": per_page},
            )
            items = self._json(resp, "search_projects")

            # GitLab omits X-Total when counting would be too expensive
            total = (resp.headers.get("X-Total") or "").strip()
            count = int(total) if total.isdigit() else len(items) if isinstance(items, list) else 0

            return parse_entity(
                GitLabSearchResponse,
                {"count": count, "items": items},
                context="search_projects",
            )

    async def create_repository(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        visibility: Optional[str] = None,
        initialize_with_readme: Optional[bool] = None,
    ) -> GitLabRepository:
        body = compact(
            {
                "name": name,
                "description": description,
                "visibility": visibility,
                "initialize_with_readme": initialize_with_readme,
            }
        )
        async with self._create_client() as client:
            resp = await self._request(client, "POST", "/projects", json_body=body)
            return parse_entity(GitLabRepository, self._json(resp, "create_repository"), context="create_repository")

    # --- Branches & files ---

    async def create_branch(self, project_id: str, *, branch: str, ref: Optional[str] = None) -> GitLabReference:
        """Create `branch` from `ref`, resolving the default branch first when `ref` is omitted."""
        async with self._create_client() as client:
            if not ref:
                ref = await resolve_default_branch(self._request, client, project_id=project_id)
                logger.debug("Resolved default branch %s for project %s", ref, project_id)

            resp = await self._request(
                client,
                "POST",
                f"/projects/{encode_segment(project_id)}/repository/branches",
                json_body={"branch": branch, "ref": ref},
            )
            return parse_entity(GitLabReference, self._json(resp, "create_branch"), context="create_branch")

    async def get_file_contents(self, project_id: str, file_path: str, ref: str) -> GitLabContent:
        """Read a file (content decoded to text) or a directory listing at `ref`."""
        async with self._create_client() as client:
            return await self._get_file_contents(client, project_id, file_path, ref)

    async def create_or_update_file(
        self,
        project_id: str,
        file_path: str,
        *,
        content: str,
        commit_message: str,
        branch: str,
        previous_path: Optional[str] = None,
    ) -> GitLabCreateUpdateFileResponse:
        """Create or update one file on `branch`.

        The verb is picked by reading the file first: PUT when the read
        succeeds, POST when it fails for any reason. Nothing is held between
        the read and the write, so a concurrent change can still make the
        chosen verb wrong; GitLab then rejects the write.
        """
        url = f"/projects/{encode_segment(project_id)}/repository/files/{encode_segment(file_path)}"
        body = compact(
            {
                "branch": branch,
                "content": content,
                "commit_message": commit_message,
                "previous_path": previous_path,
            }
        )

        async with self._create_client() as client:
            method = "POST"
            try:
                await self._get_file_contents(client, project_id, file_path, branch)
                method = "PUT"
            except GitLabMCPError as e:
                logger.debug("File probe for %s failed (%s); creating", file_path, e)

            resp = await self._request(client, method, url, json_body=body)
            return parse_entity(
                GitLabCreateUpdateFileResponse,
                self._json(resp, "create_or_update_file"),
                context="create_or_update_file",
            )

    async def push_files(
        self,
        project_id: str,
        *,
        branch: str,
        commit_message: str,
        files: Iterable[Mapping[str, str]],
    ) -> GitLabCommit:
        """Commit several new files to `branch` in a single commit."""
        actions = [
            {"action": "create", "file_path": f["file_path"], "content": f["content"]}
            for f in files
        ]
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"/projects/{encode_segment(project_id)}/repository/commits",
                json_body={"branch": branch, "commit_message": commit_message, "actions": actions},
            )
            return parse_entity(GitLabCommit, self._json(resp, "push_files"), context="push_files")

    # --- Issues ---

    async def create_issue(
        self,
        project_id: str,
        *,
        title: str,
        description: Optional[str] = None,
        assignee_ids: Optional[List[int]] = None,
        milestone_id: Optional[int] = None,
        labels: Optional[List[str]] = None,
    ) -> GitLabIssue:
        body = compact(
            {
                "title": title,
                "description": description,
                "assignee_ids": assignee_ids,
                "milestone_id": milestone_id,
                "labels": join_labels(labels),
            }
        )
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"/projects/{encode_segment(project_id)}/issues",
                json_body=body,
            )
            return parse_entity(GitLabIssue, self._json(resp, "create_issue"), context="create_issue")

    # --- Merge requests ---

    async def create_merge_request(
        self,
        project_id: str,
        *,
        title: str,
        source_branch: str,
        target_branch: str,
        description: Optional[str] = None,
        allow_collaboration: Optional[bool] = None,
        draft: Optional[bool] = None,
    ) -> GitLabMergeRequest:
        body = compact(
            {
                "title": title,
                "description": description,
                "source_branch": source_branch,
                "target_branch": target_branch,
                "allow_collaboration": allow_collaboration,
                "draft": draft,
            }
        )
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"/projects/{encode_segment(project_id)}/merge_requests",
                json_body=body,
            )
            return parse_entity(GitLabMergeRequest, self._json(resp, "create_merge_request"), context="create_merge_request")

    async def comment_merge_request(self, project_id: str, merge_request_iid: str, body: str) -> GitLabNote:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"{self._mr_path(project_id, merge_request_iid)}/notes",
                json_body={"body": body},
            )
            return parse_entity(GitLabNote, self._json(resp, "comment_merge_request"), context="comment_merge_request")

    async def get_merge_request_diffs(self, project_id: str, merge_request_iid: str) -> List[GitLabDiffEntry]:
        """All file diffs of a merge request, accumulated across pages."""
        async with self._create_client() as client:
            return await self._collect(
                client,
                f"{self._mr_path(project_id, merge_request_iid)}/diffs",
                GitLabDiffEntry,
                context="get_merge_request_diffs",
            )

    async def get_merge_request_raw_diffs(self, project_id: str, merge_request_iid: str) -> str:
        async with self._create_client(custom_headers={"Accept": "text/plain"}) as client:
            resp = await self._request(
                client,
                "GET",
                f"{self._mr_path(project_id, merge_request_iid)}/raw_diffs",
            )
            return resp.text

    async def get_merge_request_changes(
        self,
        project_id: str,
        merge_request_iid: str,
        *,
        access_raw_diffs: Optional[bool] = None,
        with_stats: Optional[bool] = None,
    ) -> GitLabMergeRequestChanges:
        params = {}
        if access_raw_diffs:
            params["access_raw_diffs"] = "true"
        if with_stats:
            params["with_stats"] = "true"

        async with self._create_client() as client:
            resp = await self._request(
                client,
                "GET",
                f"{self._mr_path(project_id, merge_request_iid)}/changes",
                params=params,
            )
            return parse_entity(
                GitLabMergeRequestChanges,
                self._json(resp, "get_merge_request_changes"),
                context="get_merge_request_changes",
            )

    async def approve_merge_request(self, project_id: str, merge_request_iid: str) -> GitLabApproval:
        return await self._post_approval(project_id, merge_request_iid, "approve")

    async def unapprove_merge_request(self, project_id: str, merge_request_iid: str) -> GitLabApproval:
        return await self._post_approval(project_id, merge_request_iid, "unapprove")

    async def get_merge_request_versions(
        self, project_id: str, merge_request_iid: str
    ) -> List[GitLabMergeRequestVersion]:
        """Diff versions of a merge request; the newest version comes first."""
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "GET",
                f"{self._mr_path(project_id, merge_request_iid)}/versions",
            )
            return parse_entity(
                List[GitLabMergeRequestVersion],
                self._json(resp, "get_merge_request_versions"),
                context="get_merge_request_versions",
            )

    # --- Threads ---

    async def create_merge_request_thread(
        self,
        project_id: str,
        merge_request_iid: str,
        *,
        body: str,
        position: Optional[Mapping[str, Any]] = None,
        commit_id: Optional[str] = None,
    ) -> GitLabThread:
        """Start a discussion, optionally anchored to a diff position.

        When GitLab rejects a positioned thread (for example a line outside
        the diff context), the thread is posted once more without
        `old_line`/`new_line`/`line_range` and with `position_type` "file", GitLab's
        file-level form. The body of that comment carries FALLBACK_NOTICE.
        """
        url = f"{self._mr_path(project_id, merge_request_iid)}/discussions"

        async with self._create_client() as client:
            try:
                return await self._post_thread(client, url, body=body, position=position, commit_id=commit_id)
            except RemoteApiError as first:
                if position is None:
                    raise
                logger.warning(
                    "GitLab rejected thread position on %s (%s); retrying as a file-level comment",
                    position.get("new_path") or position.get("old_path"),
                    first.status_code,
                )

            file_position = {k: v for k, v in position.items() if k not in _LINE_KEYS}
            file_position["position_type"] = "file"
            try:
                return await self._post_thread(
                    client,
                    url,
                    body=body + self.FALLBACK_NOTICE,
                    position=file_position,
                    commit_id=commit_id,
                )
            except RemoteApiError as retry:
                raise RemoteApiError(
                    status_code=retry.status_code,
                    reason=retry.reason,
                    body=retry.body,
                    context="create_merge_request_thread (file-level fallback)",
                ) from retry

    async def resolve_merge_request_thread(
        self,
        project_id: str,
        merge_request_iid: str,
        discussion_id: str,
        *,
        resolved: bool,
    ) -> GitLabThread:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "PUT",
                self._discussion_path(project_id, merge_request_iid, discussion_id),
                params={"resolved": "true" if resolved else "false"},
            )
            return parse_entity(
                GitLabThread,
                self._json(resp, "resolve_merge_request_thread"),
                context="resolve_merge_request_thread",
            )

    async def add_note_to_merge_request_thread(
        self,
        project_id: str,
        merge_request_iid: str,
        discussion_id: str,
        *,
        body: str,
        note_id: Optional[str] = None,
    ) -> GitLabThreadNote:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"{self._discussion_path(project_id, merge_request_iid, discussion_id)}/notes",
                json_body=compact({"body": body, "note_id": note_id}),
            )
            return parse_entity(
                GitLabThreadNote,
                self._json(resp, "add_note_to_merge_request_thread"),
                context="add_note_to_merge_request_thread",
            )

    async def get_merge_request_threads(
        self,
        project_id: str,
        merge_request_iid: str,
        *,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> List[GitLabThread]:
        """All discussions of a merge request, from `page` onwards."""
        async with self._create_client() as client:
            return await self._collect(
                client,
                f"{self._mr_path(project_id, merge_request_iid)}/discussions",
                GitLabThread,
                context="get_merge_request_threads",
                per_page=per_page,
                start_page=page or 1,
            )

    # --- Internal operations ---

    async def _get_file_contents(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        file_path: str,
        ref: str,
    ) -> GitLabContent:
        resp = await self._request(
            client,
            "GET",
            f"/projects/{encode_segment(project_id)}/repository/files/{encode_segment(file_path)}",
            params={"ref": ref},
        )
        data = parse_entity(GitLabContent, self._json(resp, "get_file_contents"), context="get_file_contents")

        # Directory listings are returned as-is; only single files carry content
        if isinstance(data, GitLabFileContent) and data.encoding.lower() == "base64":
            data = data.model_copy(update={"content": self._decode_base64(data.content)})
        return data

    async def _post_approval(self, project_id: str, merge_request_iid: str, action: str) -> GitLabApproval:
        async with self._create_client() as client:
            resp = await self._request(
                client,
                "POST",
                f"{self._mr_path(project_id, merge_request_iid)}/{action}",
            )
            return parse_entity(GitLabApproval, self._json(resp, f"{action}_merge_request"), context=f"{action}_merge_request")

    async def _post_thread(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        body: str,
        position: Optional[Mapping[str, Any]],
        commit_id: Optional[str],
    ) -> GitLabThread:
        # Nested position fields are only expressible as form fields (position[new_line]=...)
        fields = [("body", body)]
        if commit_id:
            fields.append(("commit_id", commit_id))
        if position:
            fields.extend(position_form_fields(position))

        resp = await self._request(client, "POST", url, form=fields)
        return parse_entity(GitLabThread, self._json(resp, "create_merge_request_thread"), context="create_merge_request_thread")

    async def _collect(
        self,
        client: httpx.AsyncClient,
        url: str,
        item_schema: Any,
        *,
        context: str,
        per_page: Optional[int] = None,
        start_page: int = 1,
    ) -> List[Any]:
        size = per_page or self._settings.page_size

        async def fetch_page(page: int) -> List[Any]:
            resp = await self._request(client, "GET", url, params={"page": page, "per_page": size})
            return parse_entity(List[item_schema], self._json(resp, context), context=context)

        return await collect_pages(
            fetch_page,
            per_page=size,
            start_page=start_page,
            max_pages=self._settings.max_pages,
        )

    # --- HTTP helpers ---

    def _build_headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": self.JSON_CONTENT_TYPE,
            "User-Agent": self.USER_AGENT,
            "Authorization": f"Bearer {token}",
        }

    def _create_client(self, custom_headers: Optional[Mapping[str, str]] = None) -> httpx.AsyncClient:
        headers = {**self._headers, **dict(custom_headers or {})}
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            verify=self._verify,
        )

    @staticmethod
    def _mr_path(project_id: str, merge_request_iid: str) -> str:
        return f"/projects/{encode_segment(project_id)}/merge_requests/{encode_segment(merge_request_iid)}"

    def _discussion_path(self, project_id: str, merge_request_iid: str, discussion_id: str) -> str:
        return f"{self._mr_path(project_id, merge_request_iid)}/discussions/{encode_segment(discussion_id)}"

    @staticmethod
    def _json(resp: httpx.Response, context: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise ResponseShapeError([("", "response body is not valid JSON")], context=context) from e

    @staticmethod
    def _decode_base64(content: str) -> str:
        try:
            return base64.b64decode(content).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            raise ResponseShapeError([("content", "invalid base64 content")], context="get_file_contents") from e

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Any] = None,
        form: Optional[List[tuple[str, str]]] = None,
    ) -> httpx.Response:
        """Send one request; non-success statuses become RemoteApiError."""
        headers: dict[str, str] = {}
        kwargs: dict[str, Any] = {}
        if form is not None:
            headers["Content-Type"] = self.FORM_CONTENT_TYPE
            kwargs["content"] = urlencode(form)
        elif method != "GET":
            headers["Content-Type"] = self.JSON_CONTENT_TYPE
            if json_body is not None:
                kwargs["json"] = json_body

        try:
            resp = await client.request(method, url, params=dict(params or {}), headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"GitLab request failed ({method} {url}): {e}") from e

        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if not resp.is_success:
            raise RemoteApiError(
                status_code=resp.status_code,
                reason=resp.reason_phrase,
                body=resp.text,
            )
        return resp
