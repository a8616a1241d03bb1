from dataclasses import dataclass
from enum import StrEnum
from string import Formatter
from typing import Any
from urllib.parse import quote

from bitbucket_toolkit.errors import UnsupportedOperationError
from bitbucket_toolkit.platform import Platform


class Operation(StrEnum):
    CURRENT_USER = "current-user"
    WORKSPACE = "workspace"
    LIST_REPOSITORIES = "list-repositories"
    REPOSITORY = "repository"
    LIST_PULL_REQUESTS = "list-pull-requests"
    PULL_REQUEST = "pull-request"
    PULL_REQUEST_ACTIVITY = "pull-request-activity"
    PULL_REQUEST_APPROVE = "pull-request-approve"
    PULL_REQUEST_REQUEST_CHANGES = "pull-request-request-changes"
    PULL_REQUEST_DECLINE = "pull-request-decline"
    PULL_REQUEST_MERGE = "pull-request-merge"
    PULL_REQUEST_COMMITS = "pull-request-commits"
    PULL_REQUEST_STATUSES = "pull-request-statuses"
    LIST_COMMENTS = "list-comments"
    COMMENT = "comment"
    COMMENT_RESOLVE = "comment-resolve"
    PULL_REQUEST_DIFF = "pull-request-diff"
    PULL_REQUEST_DIFFSTAT = "pull-request-diffstat"
    PULL_REQUEST_PATCH = "pull-request-patch"
    LIST_TASKS = "list-tasks"
    TASK = "task"
    PENDING_REVIEW = "pending-review"
    LIST_BRANCHES = "list-branches"
    LIST_TAGS = "list-tags"


@dataclass(frozen=True)
class Unsupported:
    """Marks an operation that has no equivalent on a platform."""

    hint: str | None = None


_CLOUD_REPO = "/repositories/{workspace}/{repo_slug}"
_CLOUD_PR = _CLOUD_REPO + "/pullrequests/{pull_request_id}"
_DC_REPO = "/projects/{workspace}/repos/{repo_slug}"
_DC_PR = _DC_REPO + "/pull-requests/{pull_request_id}"

CLOUD_PATHS: dict[Operation, str | Unsupported] = {
    Operation.CURRENT_USER: "/user",
    Operation.WORKSPACE: "/workspaces/{workspace}",
    Operation.LIST_REPOSITORIES: "/repositories/{workspace}",
    Operation.REPOSITORY: _CLOUD_REPO,
    Operation.LIST_PULL_REQUESTS: _CLOUD_REPO + "/pullrequests",
    Operation.PULL_REQUEST: _CLOUD_PR,
    Operation.PULL_REQUEST_ACTIVITY: _CLOUD_PR + "/activity",
    Operation.PULL_REQUEST_APPROVE: _CLOUD_PR + "/approve",
    Operation.PULL_REQUEST_REQUEST_CHANGES: _CLOUD_PR + "/request-changes",
    Operation.PULL_REQUEST_DECLINE: _CLOUD_PR + "/decline",
    Operation.PULL_REQUEST_MERGE: _CLOUD_PR + "/merge",
    Operation.PULL_REQUEST_COMMITS: _CLOUD_PR + "/commits",
    Operation.PULL_REQUEST_STATUSES: _CLOUD_PR + "/statuses",
    Operation.LIST_COMMENTS: _CLOUD_PR + "/comments",
    Operation.COMMENT: _CLOUD_PR + "/comments/{comment_id}",
    Operation.COMMENT_RESOLVE: _CLOUD_PR + "/comments/{comment_id}/resolve",
    Operation.PULL_REQUEST_DIFF: _CLOUD_PR + "/diff",
    Operation.PULL_REQUEST_DIFFSTAT: _CLOUD_PR + "/diffstat",
    Operation.PULL_REQUEST_PATCH: _CLOUD_PR + "/patch",
    Operation.LIST_TASKS: _CLOUD_PR + "/tasks",
    Operation.TASK: _CLOUD_PR + "/tasks/{task_id}",
    Operation.PENDING_REVIEW: Unsupported("Pending reviews only exist on Data Center."),
    Operation.LIST_BRANCHES: _CLOUD_REPO + "/refs/branches",
    Operation.LIST_TAGS: _CLOUD_REPO + "/refs/tags",
}

DATACENTER_PATHS: dict[Operation, str | Unsupported] = {
    # no /user endpoint on DC, application properties require a valid token
    Operation.CURRENT_USER: "/application-properties",
    Operation.WORKSPACE: "/projects/{workspace}",
    Operation.LIST_REPOSITORIES: "/projects/{workspace}/repos",
    Operation.REPOSITORY: _DC_REPO,
    Operation.LIST_PULL_REQUESTS: _DC_REPO + "/pull-requests",
    Operation.PULL_REQUEST: _DC_PR,
    Operation.PULL_REQUEST_ACTIVITY: _DC_PR + "/activities",
    Operation.PULL_REQUEST_APPROVE: _DC_PR + "/approve",
    Operation.PULL_REQUEST_REQUEST_CHANGES: Unsupported(
        "Set the reviewer status to NEEDS_WORK when submitting a review instead."
    ),
    Operation.PULL_REQUEST_DECLINE: _DC_PR + "/decline",
    Operation.PULL_REQUEST_MERGE: _DC_PR + "/merge",
    Operation.PULL_REQUEST_COMMITS: _DC_PR + "/commits",
    Operation.PULL_REQUEST_STATUSES: Unsupported(
        "Build statuses are attached to commits on Data Center."
    ),
    Operation.LIST_COMMENTS: _DC_PR + "/comments",
    Operation.COMMENT: _DC_PR + "/comments/{comment_id}",
    # resolving is a versioned update of the comment itself
    Operation.COMMENT_RESOLVE: _DC_PR + "/comments/{comment_id}",
    Operation.PULL_REQUEST_DIFF: _DC_PR + "/diff",
    Operation.PULL_REQUEST_DIFFSTAT: _DC_PR + "/changes",
    Operation.PULL_REQUEST_PATCH: Unsupported("Use the pull request diff instead."),
    Operation.LIST_TASKS: _DC_PR + "/blocker-comments",
    Operation.TASK: _DC_PR + "/blocker-comments/{task_id}",
    Operation.PENDING_REVIEW: _DC_PR + "/review",
    Operation.LIST_BRANCHES: _DC_REPO + "/branches",
    Operation.LIST_TAGS: _DC_REPO + "/tags",
}


class PathResolver:
    """Maps logical operations onto one platform's URL grammar."""

    platform: Platform
    table: dict[Operation, str | Unsupported]

    def __init__(self, platform: Platform, table: dict[Operation, str | Unsupported]) -> None:
        self.platform = platform
        self.table = table

    @property
    def is_cloud(self) -> bool:
        return self.platform is Platform.CLOUD

    @property
    def is_datacenter(self) -> bool:
        return self.platform is Platform.DATACENTER

    def lookup(self, operation: Operation | str) -> str | Unsupported:
        return self.table[Operation(operation)]

    def supports(self, operation: Operation | str) -> bool:
        return not isinstance(self.lookup(operation), Unsupported)

    def resolve(self, operation: Operation | str, **ids: Any) -> str:
        operation = Operation(operation)
        template = self.lookup(operation)
        if isinstance(template, Unsupported):
            raise UnsupportedOperationError(operation.value, self.platform.value, template.hint)
        needed = {name for _, name, _, _ in Formatter().parse(template) if name}
        missing = sorted(needed - ids.keys())
        if missing:
            raise ValueError(f"{operation.value} needs identifiers: {', '.join(missing)}")
        return template.format(**{name: quote(str(ids[name]), safe="") for name in needed})

    def name_filter(self, operation: Operation | str, value: str | None) -> dict[str, str]:
        """Query parameters that filter a listing by (partial) name."""
        if not value:
            return {}
        operation = Operation(operation)
        if self.is_cloud:
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            return {"q": f'name ~ "{escaped}"'}
        if operation is Operation.LIST_REPOSITORIES:
            return {"name": value}
        return {"filterText": value}

    def resolve_filtered(
        self, operation: Operation | str, value: str | None, **ids: Any
    ) -> tuple[str, dict[str, str]]:
        """Resolve a listing path together with its name filter."""
        operation = Operation(operation)
        query = self.name_filter(operation, value)
        # project-scoped repo listing ignores ``name`` on DC, only the global one honours it
        if query and self.is_datacenter and operation is Operation.LIST_REPOSITORIES:
            return "/repos", query
        return self.resolve(operation, **ids), query


CLOUD = PathResolver(Platform.CLOUD, CLOUD_PATHS)
DATACENTER = PathResolver(Platform.DATACENTER, DATACENTER_PATHS)


def paths_for(platform: Platform | str) -> PathResolver:
    return CLOUD if Platform(platform) is Platform.CLOUD else DATACENTER


def resolve(platform: Platform | str, operation: Operation | str, **ids: Any) -> str:
    return paths_for(platform).resolve(operation, **ids)
