import httpx
import pytest

from bitbucket_toolkit.errors import ErrorKind
from bitbucket_toolkit.outcome import Failure, Success
from bitbucket_toolkit.tools import comments, diffs, pull_requests, repositories, reviews, tasks, workspace

PR = "/projects/K/repos/r/pull-requests/1"


def test_missing_workspace_is_an_invalid_request(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={}))

    result = repositories.list_repositories(client)

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.INVALID_REQUEST
    assert "BITBUCKET_WORKSPACE" in result.message
    assert server.calls == 0


def test_default_workspace_is_used(cloud_client) -> None:
    client, server = cloud_client(
        httpx.Response(200, json={"values": [{"slug": "r"}]}), default_workspace="team"
    )

    result = repositories.list_repositories(client)

    assert isinstance(result, Success)
    assert result.data == [{"slug": "r"}]
    assert server.requests[0].url.path == "/2.0/repositories/team"


def test_not_found_names_the_resource(cloud_client) -> None:
    client, _ = cloud_client(httpx.Response(404, json={"error": {"message": "nope"}}))

    result = pull_requests.get_pull_request(client, "R", 42, workspace="W")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.NOT_FOUND
    assert result.message == "Pull Request W/R#42 not found."
    assert result.status_code == 404


def test_transient_failure_after_retries(dc_client) -> None:
    client, server = dc_client(httpx.Response(502, text="bad gateway"))

    result = repositories.get_repository(client, "r", workspace="K")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.TRANSIENT_SERVER
    assert server.calls == 4


def test_datacenter_tasks_are_blocker_comments(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"values": [{"id": 5, "text": "fix"}], "isLastPage": True})
    )

    result = tasks.list_tasks(client, "r", 1, workspace="K")

    assert isinstance(result, Success)
    assert result.data == [{"id": 5, "text": "fix"}]
    assert server.requests[0].url.path.endswith(PR + "/blocker-comments")
    assert server.query(0) == {"limit": "25"}


def test_datacenter_create_task_posts_blocker(dc_client) -> None:
    client, server = dc_client(httpx.Response(201, json={"id": 6}))

    result = tasks.create_task(client, "r", 1, "write docs", workspace="K")

    assert isinstance(result, Success)
    assert result.message == "Task created."
    assert server.body(0) == {"text": "write docs", "severity": "BLOCKER"}


def test_cloud_create_task_can_anchor_to_comment(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(201, json={"id": 6}))

    tasks.create_task(client, "R", 1, "write docs", workspace="W", comment_id=12)

    assert server.requests[0].url.path == "/2.0/repositories/W/R/pullrequests/1/tasks"
    assert server.body(0) == {"content": {"raw": "write docs"}, "comment": {"id": 12}}


def test_datacenter_update_task_fetches_version_first(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 5, "version": 2, "text": "fix", "state": "OPEN"}),
        httpx.Response(200, json={"id": 5, "version": 3, "state": "RESOLVED"}),
    )

    result = tasks.update_task(client, "r", 1, 5, workspace="K", state="RESOLVED")

    assert isinstance(result, Success)
    assert [r.method for r in server.requests] == ["GET", "PUT"]
    assert server.body(1) == {"id": 5, "state": "RESOLVED", "version": 2}


def test_datacenter_update_task_conflict(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 5, "version": 2}),
        httpx.Response(409, json={"errors": []}),
    )

    result = tasks.update_task(client, "r", 1, 5, workspace="K", content="new")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.CONFLICT
    assert server.calls == 2


def test_datacenter_delete_task_sends_version(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"id": 5, "version": 7}), httpx.Response(204))

    result = tasks.delete_task(client, "r", 1, 5, workspace="K")

    assert isinstance(result, Success)
    assert result.data is True
    assert server.query(1) == {"version": "7"}


def test_invalid_task_state_is_rejected_before_any_request(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={}))

    result = tasks.update_task(client, "R", 1, 5, workspace="W", state="DONE")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.INVALID_REQUEST
    assert server.calls == 0


@pytest.mark.parametrize(
    "call",
    [
        lambda client: diffs.get_patch(client, "r", 1, workspace="K"),
        lambda client: pull_requests.request_changes(client, "r", 1, workspace="K"),
        lambda client: pull_requests.get_pull_request_statuses(client, "r", 1, workspace="K"),
    ],
)
def test_datacenter_unsupported_operations_make_no_request(dc_client, call) -> None:
    client, server = dc_client(httpx.Response(200, json={}))

    result = call(client)

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.UNSUPPORTED
    assert "not available on Bitbucket Datacenter" in result.message
    assert server.calls == 0


def test_cloud_pending_review_is_unsupported(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={}))

    results = [
        reviews.get_pending_review(client, "R", 1, workspace="W"),
        reviews.add_pending_comment(client, "R", 1, "nit", workspace="W"),
    ]

    assert all(r.error is ErrorKind.UNSUPPORTED for r in results)
    assert server.calls == 0


def test_datacenter_pending_comment_and_submit(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"id": 1}))

    reviews.add_pending_comment(client, "r", 1, "nit", workspace="K", inline={"path": "a.py", "to": 3})
    reviews.submit_pending_review(client, "r", 1, workspace="K", participant_status="NEEDS_WORK")

    assert server.body(0) == {
        "text": "nit",
        "anchor": {"path": "a.py", "line": 3, "lineType": "ADDED", "fileType": "TO"},
        "state": "PENDING",
    }
    assert server.requests[1].method == "PUT"
    assert server.requests[1].url.path.endswith(PR + "/review")
    assert server.body(1) == {"participantStatus": "NEEDS_WORK"}


def test_cloud_resolve_comment_posts_to_resolve(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={"resolution": {}}))

    result = comments.resolve_comment(client, "R", 1, 3, workspace="W")

    assert isinstance(result, Success)
    assert server.requests[0].method == "POST"
    assert server.requests[0].url.path == "/2.0/repositories/W/R/pullrequests/1/comments/3/resolve"


def test_datacenter_resolve_comment_is_versioned_update(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 3, "version": 1, "text": "hm"}),
        httpx.Response(200, json={"id": 3, "version": 2, "state": "RESOLVED"}),
    )

    comments.resolve_comment(client, "r", 1, 3, workspace="K")

    assert server.body(1) == {"state": "RESOLVED", "version": 1}


def test_cloud_inline_comment_body(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(201, json={"id": 9}))

    comments.add_comment(client, "R", 1, "looks off", workspace="W", inline={"path": "a.py", "to": 10}, parent_id=4)

    assert server.body(0) == {
        "content": {"raw": "looks off"},
        "inline": {"path": "a.py", "to": 10},
        "parent": {"id": 4},
    }


def test_datacenter_merge_sends_version_query(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 1, "version": 4}),
        httpx.Response(200, json={"id": 1, "state": "MERGED"}),
    )

    result = pull_requests.merge_pull_request(client, "r", 1, workspace="K", message="ship it")

    assert isinstance(result, Success)
    assert server.query(1) == {"version": "4"}
    assert server.body(1) == {"message": "ship it"}


def test_cloud_merge_posts_once(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={"state": "MERGED"}))

    pull_requests.merge_pull_request(client, "R", 1, workspace="W", merge_strategy="squash")

    assert server.calls == 1
    assert server.body(0) == {"merge_strategy": "squash"}


def test_create_pull_request_dialects(cloud_client, dc_client) -> None:
    cloud, cloud_server = cloud_client(httpx.Response(201, json={"id": 1}))
    dc, dc_server = dc_client(httpx.Response(201, json={"id": 1}))

    pull_requests.create_pull_request(cloud, "R", "Add x", "feature", "main", workspace="W")
    pull_requests.create_pull_request(dc, "r", "Add x", "feature", "main", workspace="K")

    assert cloud_server.body(0)["source"] == {"branch": {"name": "feature"}}
    assert dc_server.body(0)["fromRef"] == {"id": "refs/heads/feature"}
    assert dc_server.body(0)["toRef"] == {"id": "refs/heads/main"}


def test_list_pull_requests_passes_state(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"values": [], "isLastPage": True}))

    pull_requests.list_pull_requests(client, "r", workspace="K", state="MERGED", page_size=5)

    assert server.query(0) == {"state": "MERGED", "limit": "5"}


@pytest.mark.parametrize(("fixture", "key"), [("cloud_client", "context"), ("dc_client", "contextLines")])
def test_diff_context_lines_dialect(request, fixture: str, key: str) -> None:
    client, server = request.getfixturevalue(fixture)(httpx.Response(200, text="diff"))

    result = diffs.get_diff(client, "r", 1, workspace="K", context_lines=5)

    assert result.data == "diff"
    assert server.query(0) == {key: "5"}


def test_datacenter_branch_filter(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"values": [], "isLastPage": True}))

    repositories.list_branches(client, "r", workspace="K", filter="feat")

    assert server.requests[0].url.path.endswith("/projects/K/repos/r/branches")
    assert server.query(0) == {"filterText": "feat", "limit": "25"}


def test_datacenter_current_user_reads_application_properties(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"version": "8.9.0"}))

    result = workspace.get_current_user(client)

    assert result.data["version"] == "8.9.0"
    assert result.data["display_name"] == "Authenticated User"
    assert server.requests[0].url.path.endswith("/application-properties")


def test_authentication_failure_is_reported(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(401))

    result = workspace.get_current_user(client)

    assert result.error is ErrorKind.AUTHENTICATION
    assert server.calls == 1


def test_cloud_update_pull_request_puts_changes(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={"id": 1, "title": "New"}))

    result = pull_requests.update_pull_request(client, "R", 1, workspace="W", title="New")

    assert isinstance(result, Success)
    assert server.calls == 1
    assert server.requests[0].method == "PUT"
    assert server.requests[0].url.path == "/2.0/repositories/W/R/pullrequests/1"
    assert server.body(0) == {"title": "New"}


def test_datacenter_update_pull_request_is_versioned(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 1, "version": 6, "title": "Old"}),
        httpx.Response(200, json={"id": 1, "version": 7, "title": "New"}),
    )

    result = pull_requests.update_pull_request(
        client, "r", 1, workspace="K", title="New", description="Body"
    )

    assert isinstance(result, Success)
    assert [r.method for r in server.requests] == ["GET", "PUT"]
    assert server.requests[1].url.path.endswith(PR)
    assert server.body(1) == {"title": "New", "description": "Body", "version": 6}


def test_update_pull_request_needs_a_change(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(200, json={}))

    result = pull_requests.update_pull_request(client, "R", 1, workspace="W")

    assert result.error is ErrorKind.INVALID_REQUEST
    assert server.calls == 0


def test_remove_change_request_dialects(cloud_client, dc_client) -> None:
    cloud, cloud_server = cloud_client(httpx.Response(204))
    dc, dc_server = dc_client(httpx.Response(204))

    removed = pull_requests.remove_change_request(cloud, "R", 1, workspace="W")
    unsupported = pull_requests.remove_change_request(dc, "r", 1, workspace="K")

    assert isinstance(removed, Success)
    assert removed.message == "Change request removed."
    assert cloud_server.requests[0].method == "DELETE"
    assert cloud_server.requests[0].url.path == "/2.0/repositories/W/R/pullrequests/1/request-changes"
    assert unsupported.error is ErrorKind.UNSUPPORTED
    assert dc_server.calls == 0


def test_cloud_reopen_comment_deletes_resolution(cloud_client) -> None:
    client, server = cloud_client(httpx.Response(204))

    result = comments.reopen_comment(client, "R", 1, 3, workspace="W")

    assert isinstance(result, Success)
    assert result.data is True
    assert server.requests[0].method == "DELETE"
    assert server.requests[0].url.path == "/2.0/repositories/W/R/pullrequests/1/comments/3/resolve"


def test_datacenter_reopen_comment_is_versioned_update(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 3, "version": 4, "state": "RESOLVED"}),
        httpx.Response(200, json={"id": 3, "version": 5, "state": "OPEN"}),
    )

    result = comments.reopen_comment(client, "r", 1, 3, workspace="K")

    assert isinstance(result, Success)
    assert [r.method for r in server.requests] == ["GET", "PUT"]
    assert server.body(1) == {"state": "OPEN", "version": 4}


def test_datacenter_merge_veto_is_reported_as_such(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 1, "version": 12}),
        httpx.Response(
            409,
            json={
                "errors": [
                    {
                        "message": "Merge blocked: needs 2 approvals",
                        "exceptionName": "com.atlassian.bitbucket.pull.PullRequestMergeVetoedException",
                    }
                ]
            },
        ),
    )

    result = pull_requests.merge_pull_request(client, "r", 1, workspace="K")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.CONFLICT
    assert "Merge blocked: needs 2 approvals" in result.message
    assert "changed since version" not in result.message
    assert server.calls == 2


def test_datacenter_update_task_with_empty_version_read(dc_client) -> None:
    client, server = dc_client(httpx.Response(200))

    result = tasks.update_task(client, "r", 1, 5, workspace="K", content="new")

    assert isinstance(result, Failure)
    assert result.error is ErrorKind.API
    assert server.calls == 1
