from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import page_request, pr_label, resolve_workspace


def get_diff(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    context_lines: int | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.PULL_REQUEST_DIFF, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        key = "context" if client.is_cloud else "contextLines"
        return client.get_text(path, {key: context_lines})

    return capture(call, not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)))


def get_diffstat(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    """Per-file change summary (Cloud diffstat, Data Center changes)."""
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            Operation.PULL_REQUEST_DIFFSTAT, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        return client.get_paginated(path, page_request(page_size, page, fetch_all)).values

    return capture(call, not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)))


def get_patch(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get_text(
            client.paths.resolve(
                Operation.PULL_REQUEST_PATCH, workspace=ws, repo_slug=repo_slug,
                pull_request_id=pull_request_id,
            )
        ),
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )
