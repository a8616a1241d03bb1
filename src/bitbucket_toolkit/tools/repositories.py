from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import page_request, resolve_workspace


def list_repositories(
    client: BitbucketClient,
    workspace: str | None = None,
    name: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path, query = client.paths.resolve_filtered(
            Operation.LIST_REPOSITORIES, name, workspace=ws
        )
        return client.get_paginated(
            path, page_request(page_size, page, fetch_all), extra_query=query
        ).values

    return capture(call, not_found=("Workspace/Project", ws))


def get_repository(
    client: BitbucketClient, repo_slug: str, workspace: str | None = None
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get(
            client.paths.resolve(Operation.REPOSITORY, workspace=ws, repo_slug=repo_slug)
        ),
        not_found=("Repository", f"{ws}/{repo_slug}"),
    )


def _list_refs(
    client: BitbucketClient,
    operation: Operation,
    repo_slug: str,
    workspace: str | None,
    filter: str | None,
    page_size: int | None,
    page: int | None,
    fetch_all: bool,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        path, query = client.paths.resolve_filtered(
            operation, filter, workspace=ws, repo_slug=repo_slug
        )
        return client.get_paginated(
            path, page_request(page_size, page, fetch_all), extra_query=query
        ).values

    return capture(call, not_found=("Repository", f"{ws}/{repo_slug}"))


def list_branches(
    client: BitbucketClient,
    repo_slug: str,
    workspace: str | None = None,
    filter: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    return _list_refs(
        client, Operation.LIST_BRANCHES, repo_slug, workspace, filter, page_size, page, fetch_all
    )


def list_tags(
    client: BitbucketClient,
    repo_slug: str,
    workspace: str | None = None,
    filter: str | None = None,
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
) -> Success | Failure:
    return _list_refs(
        client, Operation.LIST_TAGS, repo_slug, workspace, filter, page_size, page, fetch_all
    )
