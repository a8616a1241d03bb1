from typing import Any

from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import page_request, pr_label, resolve_workspace


def comment_body(
    client: BitbucketClient,
    content: str,
    inline: dict[str, Any] | None = None,
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Build a new-comment payload in the platform's dialect.

    ``inline`` is ``{"path": ..., "from": old_line, "to": new_line}``.
    """
    if client.is_cloud:
        body: dict[str, Any] = {"content": {"raw": content}}
        if inline:
            body["inline"] = inline
    else:
        body = {"text": content}
        if inline:
            line_to = inline.get("to")
            body["anchor"] = {
                "path": inline["path"],
                "line": line_to if line_to is not None else inline.get("from"),
                "lineType": "ADDED" if line_to is not None else "REMOVED",
                "fileType": "TO" if line_to is not None else "FROM",
            }
    if parent_id:
        body["parent"] = {"id": parent_id}
    return body


def list_comments(
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
            Operation.LIST_COMMENTS, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        return client.get_paginated(path, page_request(page_size, page, fetch_all)).values

    return capture(call, not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)))


def get_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    comment_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get(_comment_path(client, ws, repo_slug, pull_request_id, comment_id)),
        not_found=_comment_identity(ws, repo_slug, pull_request_id, comment_id),
    )


def add_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    content: str,
    workspace: str | None = None,
    inline: dict[str, Any] | None = None,
    parent_id: int | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.LIST_COMMENTS, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        return client.post(path, comment_body(client, content, inline, parent_id))

    return capture(
        call,
        message="Comment added.",
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )


def update_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    comment_id: int,
    content: str,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = _comment_path(client, ws, repo_slug, pull_request_id, comment_id)
        if client.is_cloud:
            return client.put(path, {"content": {"raw": content}})
        return client.guard.update(path, {"text": content})

    return capture(
        call,
        message="Comment updated.",
        not_found=_comment_identity(ws, repo_slug, pull_request_id, comment_id),
    )


def delete_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    comment_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = _comment_path(client, ws, repo_slug, pull_request_id, comment_id)
        if client.is_cloud:
            client.delete(path)
        else:
            client.guard.delete(path)
        return True

    return capture(
        call,
        message="Comment deleted.",
        not_found=_comment_identity(ws, repo_slug, pull_request_id, comment_id),
    )


def resolve_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    comment_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.COMMENT_RESOLVE, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id, comment_id=comment_id,
        )
        if client.is_cloud:
            return client.post(path)
        return client.guard.update(path, {"state": "RESOLVED"})

    return capture(
        call,
        message="Comment resolved.",
        not_found=_comment_identity(ws, repo_slug, pull_request_id, comment_id),
    )


def reopen_comment(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    comment_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.COMMENT_RESOLVE, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id, comment_id=comment_id,
        )
        if client.is_cloud:
            client.delete(path)
            return True
        return client.guard.update(path, {"state": "OPEN"})

    return capture(
        call,
        message="Comment reopened.",
        not_found=_comment_identity(ws, repo_slug, pull_request_id, comment_id),
    )


def _comment_path(
    client: BitbucketClient, ws: str, repo_slug: str, pull_request_id: int, comment_id: int
) -> str:
    return client.paths.resolve(
        Operation.COMMENT, workspace=ws, repo_slug=repo_slug,
        pull_request_id=pull_request_id, comment_id=comment_id,
    )


def _comment_identity(
    ws: str, repo_slug: str, pull_request_id: int, comment_id: int
) -> tuple[str, str]:
    return "Comment", f"{comment_id} on PR {pr_label(ws, repo_slug, pull_request_id)}"
