from bitbucket_toolkit.outcome import Failure, invalid
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.pagination import PageRequest


def resolve_workspace(client: BitbucketClient, workspace: str | None) -> str | Failure:
    ws = workspace or client.default_workspace
    if not ws:
        return invalid(
            "Workspace/project is required. Provide it as a parameter or set BITBUCKET_WORKSPACE."
        )
    return ws


def page_request(
    page_size: int | None = None,
    page: int | None = None,
    fetch_all: bool = False,
    **extra_query: str | int | bool | None,
) -> PageRequest:
    return PageRequest(
        page_size=page_size,
        page=page,
        fetch_all=fetch_all,
        extra_query={k: v for k, v in extra_query.items() if v is not None},
    )


def pr_label(workspace: str, repo_slug: str, pull_request_id: int) -> str:
    return f"{workspace}/{repo_slug}#{pull_request_id}"
