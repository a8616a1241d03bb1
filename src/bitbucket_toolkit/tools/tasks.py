"""Pull request tasks.

Cloud has first-class tasks. Data Center models them as blocker comments
(``severity=BLOCKER``), which are versioned like every other comment.
"""

from bitbucket_toolkit.models.bitbucket import TaskState
from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import page_request, pr_label, resolve_workspace


def list_tasks(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.LIST_TASKS, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        return client.get_paginated(path, page_request(page_size, page, fetch_all)).values

    return capture(call, not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)))


def create_task(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    content: str,
    workspace: str | None = None,
    comment_id: int | None = None,
    state: TaskState | str | None = None,
) -> Success | Failure:
    """``comment_id`` anchors the task to a comment (Cloud only)."""
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        if client.is_cloud:
            body: dict = {"content": {"raw": content}}
            if comment_id is not None:
                body["comment"] = {"id": comment_id}
        else:
            body = {"text": content, "severity": "BLOCKER"}
        if state:
            body["state"] = TaskState(state).value
        path = client.paths.resolve(
            Operation.LIST_TASKS, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        return client.post(path, body)

    return capture(
        call,
        message="Task created.",
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )


def get_task(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    task_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get(_task_path(client, ws, repo_slug, pull_request_id, task_id)),
        not_found=_task_identity(ws, repo_slug, pull_request_id, task_id),
    )


def update_task(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    task_id: int,
    workspace: str | None = None,
    content: str | None = None,
    state: TaskState | str | None = None,
) -> Success | Failure:
    """Change a task's text and/or state.

    On Data Center the current version is fetched first; a concurrent edit in
    between comes back as a ``conflict`` failure.
    """
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = _task_path(client, ws, repo_slug, pull_request_id, task_id)
        if client.is_cloud:
            body: dict = {}
            if content is not None:
                body["content"] = {"raw": content}
            if state is not None:
                body["state"] = TaskState(state).value
            return client.put(path, body)
        changes: dict = {"id": task_id}
        if content is not None:
            changes["text"] = content
        if state is not None:
            changes["state"] = TaskState(state).value
        return client.guard.update(path, changes)

    return capture(
        call,
        message="Task updated.",
        not_found=_task_identity(ws, repo_slug, pull_request_id, task_id),
    )


def delete_task(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    task_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = _task_path(client, ws, repo_slug, pull_request_id, task_id)
        if client.is_cloud:
            client.delete(path)
        else:
            client.guard.delete(path)
        return True

    return capture(
        call,
        message="Task deleted.",
        not_found=_task_identity(ws, repo_slug, pull_request_id, task_id),
    )


def _task_path(
    client: BitbucketClient, ws: str, repo_slug: str, pull_request_id: int, task_id: int
) -> str:
    return client.paths.resolve(
        Operation.TASK, workspace=ws, repo_slug=repo_slug,
        pull_request_id=pull_request_id, task_id=task_id,
    )


def _task_identity(ws: str, repo_slug: str, pull_request_id: int, task_id: int) -> tuple[str, str]:
    return "Task", f"{task_id} on PR {pr_label(ws, repo_slug, pull_request_id)}"
