import logging

from bitbucket_toolkit.models.bitbucket import PullRequestState
from bitbucket_toolkit.outcome import Failure, Success, capture, invalid
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import page_request, pr_label, resolve_workspace

logger = logging.getLogger(__name__)


def list_pull_requests(
    client: BitbucketClient,
    repo_slug: str,
    workspace: str | None = None,
    state: PullRequestState | str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    logger.debug("list_pull_requests: %s/%s state=%s", ws, repo_slug, state or "all")

    def call():
        path = client.paths.resolve(Operation.LIST_PULL_REQUESTS, workspace=ws, repo_slug=repo_slug)
        request = page_request(
            page_size, page, fetch_all, state=PullRequestState(state) if state else None
        )
        return client.get_paginated(path, request).values

    return capture(call, not_found=("Repository", f"{ws}/{repo_slug}"))


def get_pull_request(
    client: BitbucketClient, repo_slug: str, pull_request_id: int, workspace: str | None = None
) -> Success | Failure:
    return _pr_call(client, "GET", Operation.PULL_REQUEST, repo_slug, pull_request_id, workspace)


def create_pull_request(
    client: BitbucketClient,
    repo_slug: str,
    title: str,
    source_branch: str,
    target_branch: str,
    workspace: str | None = None,
    description: str | None = None,
    reviewers: list[str] | None = None,
    draft: bool | None = None,
    close_source_branch: bool | None = None,
) -> Success | Failure:
    """Open a pull request.

    ``reviewers`` are account UUIDs on Cloud and user slugs on Data Center.
    """
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    if client.is_cloud:
        body: dict = {
            "title": title,
            "source": {"branch": {"name": source_branch}},
            "destination": {"branch": {"name": target_branch}},
        }
        if reviewers:
            body["reviewers"] = [{"uuid": uuid} for uuid in reviewers]
        if close_source_branch is not None:
            body["close_source_branch"] = close_source_branch
    else:
        body = {
            "title": title,
            "fromRef": {"id": f"refs/heads/{source_branch}"},
            "toRef": {"id": f"refs/heads/{target_branch}"},
        }
        if reviewers:
            body["reviewers"] = [{"user": {"name": name}} for name in reviewers]
    if description is not None:
        body["description"] = description
    if draft is not None:
        body["draft"] = draft

    return capture(
        lambda: client.post(
            client.paths.resolve(Operation.LIST_PULL_REQUESTS, workspace=ws, repo_slug=repo_slug),
            body,
        ),
        message="Pull request created successfully.",
        not_found=("Repository", f"{ws}/{repo_slug}"),
    )


def update_pull_request(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    title: str | None = None,
    description: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    changes: dict = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if not changes:
        return invalid("Nothing to update: give a title and/or a description.")

    def call():
        path = client.paths.resolve(
            Operation.PULL_REQUEST, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        if client.is_cloud:
            return client.put(path, changes)
        return client.guard.update(path, changes)

    return capture(
        call,
        message="Pull request updated successfully.",
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )


def get_pull_request_activity(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    return _pr_list(
        client, Operation.PULL_REQUEST_ACTIVITY, repo_slug, pull_request_id, workspace,
        page_size, page, fetch_all,
    )


def get_pull_request_commits(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    return _pr_list(
        client, Operation.PULL_REQUEST_COMMITS, repo_slug, pull_request_id, workspace,
        page_size, page, fetch_all,
    )


def get_pull_request_statuses(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    return _pr_list(
        client, Operation.PULL_REQUEST_STATUSES, repo_slug, pull_request_id, workspace,
        page_size, page, fetch_all,
    )


def approve_pull_request(
    client: BitbucketClient, repo_slug: str, pull_request_id: int, workspace: str | None = None
) -> Success | Failure:
    return _pr_call(
        client, "POST", Operation.PULL_REQUEST_APPROVE, repo_slug, pull_request_id, workspace,
        message="Pull request approved.",
    )


def unapprove_pull_request(
    client: BitbucketClient, repo_slug: str, pull_request_id: int, workspace: str | None = None
) -> Success | Failure:
    return _pr_call(
        client, "DELETE", Operation.PULL_REQUEST_APPROVE, repo_slug, pull_request_id, workspace,
        message="Pull request approval removed.",
    )


def request_changes(
    client: BitbucketClient, repo_slug: str, pull_request_id: int, workspace: str | None = None
) -> Success | Failure:
    return _pr_call(
        client, "POST", Operation.PULL_REQUEST_REQUEST_CHANGES, repo_slug, pull_request_id,
        workspace, message="Changes requested on pull request.",
    )


def remove_change_request(
    client: BitbucketClient, repo_slug: str, pull_request_id: int, workspace: str | None = None
) -> Success | Failure:
    return _pr_call(
        client, "DELETE", Operation.PULL_REQUEST_REQUEST_CHANGES, repo_slug, pull_request_id,
        workspace, message="Change request removed.",
    )


def decline_pull_request(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    message: str | None = None,
) -> Success | Failure:
    body = None
    if message:
        body = {"message": message} if client.is_cloud else {"comment": message}
    return _pr_action(
        client, Operation.PULL_REQUEST_DECLINE, repo_slug, pull_request_id, workspace, body,
        "Pull request declined.",
    )


def merge_pull_request(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    message: str | None = None,
    merge_strategy: str | None = None,
    close_source_branch: bool | None = None,
) -> Success | Failure:
    body: dict = {}
    if message:
        body["message"] = message
    if client.is_cloud:
        if merge_strategy:
            body["merge_strategy"] = merge_strategy
        if close_source_branch is not None:
            body["close_source_branch"] = close_source_branch
    elif merge_strategy:
        body["strategyId"] = merge_strategy
    return _pr_action(
        client, Operation.PULL_REQUEST_MERGE, repo_slug, pull_request_id, workspace,
        body or None, "Pull request merged.",
    )


def _pr_call(
    client: BitbucketClient,
    method: str,
    operation: Operation,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None,
    message: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            operation, workspace=ws, repo_slug=repo_slug, pull_request_id=pull_request_id
        )
        if method == "GET":
            return client.get(path)
        if method == "DELETE":
            client.delete(path)
            return True
        return client.post(path)

    return capture(
        call,
        message=message,
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )


def _pr_list(
    client: BitbucketClient,
    operation: Operation,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None,
    page_size: int | None,
    page: int | None,
    fetch_all: bool,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path = client.paths.resolve(
            operation, workspace=ws, repo_slug=repo_slug, pull_request_id=pull_request_id
        )
        return client.get_paginated(path, page_request(page_size, page, fetch_all)).values

    return capture(call, not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)))


def _pr_action(
    client: BitbucketClient,
    operation: Operation,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None,
    body: dict | None,
    message: str,
) -> Success | Failure:
    """Merge/decline. Data Center needs the pull request version in the query string."""
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    ids = {"workspace": ws, "repo_slug": repo_slug, "pull_request_id": pull_request_id}

    def call():
        action_path = client.paths.resolve(operation, **ids)
        if client.is_cloud:
            return client.post(action_path, body)
        return client.guard.post_with_version(
            client.paths.resolve(Operation.PULL_REQUEST, **ids), action_path, body
        )

    return capture(
        call,
        message=message,
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )
