import json

import pytest

import payloads
from clients.gitlab.entities import GitLabMergeRequestChanges
from core.errors import InvalidArguments
from core.registry import ToolRegistry
from server.server import build_registry
from tools.files import register as register_files
from tools.issues import register as register_issues
from tools.merge_requests import register as register_merge_requests
from tools.repositories import register as register_repositories
from tools.threads import register as register_threads

ALL_TOOLS = {
    "create_branch",
    "get_file_contents",
    "create_or_update_file",
    "push_files",
    "search_repositories",
    "create_repository",
    "fork_repository",
    "create_issue",
    "create_merge_request",
    "comment_merge_request",
    "get_merge_request_diffs",
    "get_merge_request_raw_diffs",
    "get_merge_request_changes",
    "approve_merge_request",
    "unapprove_merge_request",
    "get_merge_request_version",
    "create_merge_request_thread",
    "resolve_merge_request_thread",
    "add_note_to_merge_request_thread",
    "get_thread_list_merge_request",
}


class FakeGitLabClient:
    """Records client calls; returns `results[name]` or a small marker dict."""

    def __init__(self, results=None):
        self.calls = []
        self.results = results or {}

    def __getattr__(self, name):
        async def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self.results.get(name, {"called": name})

        return method


def _registry(register, client) -> ToolRegistry:
    registry = ToolRegistry()
    register(registry, gitlab_client=client)
    return registry


def test_build_registry_exposes_every_tool():
    registry = build_registry(FakeGitLabClient())

    assert set(registry.names) == ALL_TOOLS
    assert len(registry.names) == len(ALL_TOOLS)
    assert {t.name for t in registry.list_tools()} == ALL_TOOLS


@pytest.mark.asyncio
async def test_create_branch_passes_missing_ref_as_none():
    client = FakeGitLabClient()
    registry = _registry(register_files, client)

    await registry.dispatch("create_branch", {"project_id": "group/app", "branch": "feature"})

    assert client.calls == [("create_branch", ("group/app",), {"branch": "feature", "ref": None})]


@pytest.mark.asyncio
async def test_push_files_passes_plain_dicts():
    client = FakeGitLabClient()
    registry = _registry(register_files, client)

    await registry.dispatch(
        "push_files",
        {
            "project_id": "42",
            "branch": "main",
            "commit_message": "Add",
            "files": [{"file_path": "a.txt", "content": "A"}],
        },
    )

    _, _, kwargs = client.calls[0]
    assert kwargs["files"] == [{"file_path": "a.txt", "content": "A"}]


@pytest.mark.asyncio
async def test_push_files_rejects_empty_file_list():
    client = FakeGitLabClient()
    registry = _registry(register_files, client)

    with pytest.raises(InvalidArguments):
        await registry.dispatch(
            "push_files", {"project_id": "42", "branch": "main", "commit_message": "Add", "files": []}
        )

    assert client.calls == []


@pytest.mark.asyncio
async def test_search_repositories_applies_paging_defaults():
    client = FakeGitLabClient()
    registry = _registry(register_repositories, client)

    await registry.dispatch("search_repositories", {"search": "app"})

    assert client.calls == [("search_projects", ("app",), {"page": 1, "per_page": 20})]


@pytest.mark.asyncio
async def test_create_repository_rejects_unknown_visibility():
    registry = _registry(register_repositories, FakeGitLabClient())

    with pytest.raises(InvalidArguments) as excinfo:
        await registry.dispatch("create_repository", {"name": "app", "visibility": "secret"})

    assert excinfo.value.errors[0][0] == "visibility"


@pytest.mark.asyncio
async def test_create_issue_forwards_labels():
    client = FakeGitLabClient()
    registry = _registry(register_issues, client)

    await registry.dispatch("create_issue", {"project_id": 42, "title": "Bug", "labels": ["a", "b"]})

    name, args, kwargs = client.calls[0]
    assert (name, args) == ("create_issue", ("42",))
    assert kwargs["labels"] == ["a", "b"]
    assert kwargs["assignee_ids"] is None


@pytest.mark.asyncio
async def test_get_merge_request_changes_adds_summary():
    changes = GitLabMergeRequestChanges.model_validate(
        payloads.merge_request(changes=[payloads.diff_entry("a.py", new_file=True, diff="1\n2\n3\n4")])
    )
    client = FakeGitLabClient({"get_merge_request_changes": changes})
    registry = _registry(register_merge_requests, client)

    out = await registry.dispatch("get_merge_request_changes", {"project_id": "42", "merge_request_iid": "7"})

    data = json.loads(out[0].text)
    assert data["raw_changes"]["changes"][0]["new_path"] == "a.py"
    assert data["summary"]["summary"]["files_added"] == 1
    assert data["summary"]["file_changes"][0]["diff_preview"] == "1\n2\n3\n..."
    assert client.calls[0][2] == {"access_raw_diffs": None, "with_stats": None}


@pytest.mark.asyncio
async def test_raw_diffs_text_is_returned_as_json_string():
    client = FakeGitLabClient({"get_merge_request_raw_diffs": "diff --git a/x b/x\n"})
    registry = _registry(register_merge_requests, client)

    out = await registry.dispatch("get_merge_request_raw_diffs", {"project_id": "42", "merge_request_iid": "7"})

    assert json.loads(out[0].text) == "diff --git a/x b/x\n"


@pytest.mark.asyncio
async def test_comment_merge_request_rejects_empty_body():
    registry = _registry(register_merge_requests, FakeGitLabClient())

    with pytest.raises(InvalidArguments):
        await registry.dispatch("comment_merge_request", {"project_id": "42", "merge_request_iid": "7", "body": ""})


@pytest.mark.asyncio
async def test_create_thread_drops_unset_position_fields():
    client = FakeGitLabClient()
    registry = _registry(register_threads, client)

    await registry.dispatch(
        "create_merge_request_thread",
        {
            "project_id": "42",
            "merge_request_iid": "7",
            "body": "Nit",
            "position": {
                "base_sha": "b",
                "start_sha": "s",
                "head_sha": "h",
                "old_path": "a.py",
                "new_path": "a.py",
                "position_type": "text",
                "new_line": 3,
            },
        },
    )

    _, args, kwargs = client.calls[0]
    assert args == ("42", "7")
    assert kwargs["position"] == {
        "base_sha": "b",
        "start_sha": "s",
        "head_sha": "h",
        "old_path": "a.py",
        "new_path": "a.py",
        "position_type": "text",
        "new_line": 3,
    }
    assert kwargs["commit_id"] is None


@pytest.mark.asyncio
async def test_create_thread_without_position():
    client = FakeGitLabClient()
    registry = _registry(register_threads, client)

    await registry.dispatch("create_merge_request_thread", {"project_id": "42", "merge_request_iid": "7", "body": "Hi"})

    assert client.calls[0][2]["position"] is None


@pytest.mark.asyncio
async def test_create_thread_rejects_unknown_position_type():
    registry = _registry(register_threads, FakeGitLabClient())

    with pytest.raises(InvalidArguments) as excinfo:
        await registry.dispatch(
            "create_merge_request_thread",
            {
                "project_id": "42",
                "merge_request_iid": "7",
                "body": "Hi",
                "position": {
                    "base_sha": "b",
                    "start_sha": "s",
                    "head_sha": "h",
                    "old_path": "a.py",
                    "new_path": "a.py",
                    "position_type": "line",
                },
            },
        )

    assert excinfo.value.errors[0][0] == "position.position_type"


@pytest.mark.asyncio
async def test_resolve_and_list_threads():
    client = FakeGitLabClient()
    registry = _registry(register_threads, client)

    await registry.dispatch(
        "resolve_merge_request_thread",
        {"project_id": "42", "merge_request_iid": "7", "discussion_id": "d1", "resolved": False},
    )
    await registry.dispatch("get_thread_list_merge_request", {"project_id": "42", "merge_request_iid": "7", "page": 2})

    assert client.calls == [
        ("resolve_merge_request_thread", ("42", "7", "d1"), {"resolved": False}),
        ("get_merge_request_threads", ("42", "7"), {"page": 2, "per_page": None}),
    ]


@pytest.mark.asyncio
async def test_create_thread_forwards_line_range():
    client = FakeGitLabClient()
    registry = _registry(register_threads, client)

    await registry.dispatch(
        "create_merge_request_thread",
        {
            "project_id": "42",
            "merge_request_iid": "7",
            "body": "These lines",
            "position": {
                "base_sha": "b",
                "start_sha": "s",
                "head_sha": "h",
                "old_path": "a.py",
                "new_path": "a.py",
                "position_type": "text",
                "new_line": 12,
                "line_range": {
                    "start": {"line_code": "abc_10_10", "type": "new", "new_line": 10},
                    "end": {"line_code": "abc_12_12", "type": "new", "new_line": 12},
                },
            },
        },
    )

    position = client.calls[0][2]["position"]
    assert position["new_line"] == 12
    assert position["line_range"] == {
        "start": {"line_code": "abc_10_10", "type": "new", "new_line": 10},
        "end": {"line_code": "abc_12_12", "type": "new", "new_line": 12},
    }
