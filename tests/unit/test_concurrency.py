import httpx
import pytest
from pydantic import ValidationError

from bitbucket_toolkit.errors import BitbucketApiError, ConflictError
from bitbucket_toolkit.models.bitbucket import VersionedEntity
from bitbucket_toolkit.services.concurrency import guarded_write

TASK = "/projects/K/repos/r/pull-requests/1/blocker-comments/5"


def test_guarded_write_reads_once_and_writes_with_that_version() -> None:
    reads: list[int] = []
    writes: list[int] = []

    def read() -> VersionedEntity:
        reads.append(1)
        return VersionedEntity.from_payload({"id": 5, "version": 4})

    def write(version: int) -> str:
        writes.append(version)
        return "ok"

    assert guarded_write(read, write) == "ok"
    assert reads == [1]
    assert writes == [4]


def test_update_echoes_version_just_read(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 5, "version": 3, "text": "old"}),
        httpx.Response(200, json={"id": 5, "version": 4, "text": "new"}),
    )

    result = client.guard.update(TASK, {"text": "new"})

    assert result["version"] == 4
    assert [r.method for r in server.requests] == ["GET", "PUT"]
    assert server.body(1) == {"text": "new", "version": 3}


def test_stale_version_conflict_is_reported_not_retried(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 5, "version": 3}),
        httpx.Response(
            409,
            json={
                "errors": [
                    {
                        "message": "You are attempting to modify a comment based on out-of-date information.",
                        "exceptionName": "com.atlassian.bitbucket.comment.CommentOutOfDateException",
                    }
                ]
            },
        ),
    )

    with pytest.raises(ConflictError) as excinfo:
        client.guard.update(TASK, {"text": "new"})

    assert server.calls == 2
    assert excinfo.value.version == 3
    assert excinfo.value.status_code == 409
    assert "Fetch it again" in excinfo.value.message
    assert isinstance(excinfo.value.__cause__, ConflictError)


def test_merge_veto_keeps_server_message(dc_client) -> None:
    pr = "/projects/K/repos/r/pull-requests/1"
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

    with pytest.raises(ConflictError) as excinfo:
        client.guard.post_with_version(pr, pr + "/merge")

    assert server.calls == 2
    assert "Merge blocked: needs 2 approvals" in excinfo.value.message
    assert "changed since version" not in excinfo.value.message
    assert not excinfo.value.stale_version
    assert excinfo.value.version == 12


@pytest.mark.parametrize("reply", [httpx.Response(200), httpx.Response(200, json=[1, 2])])
def test_read_without_json_object_is_an_api_error(dc_client, reply) -> None:
    client, server = dc_client(reply)

    with pytest.raises(BitbucketApiError, match="versioned resource"):
        client.guard.update(TASK, {"text": "new"})

    assert server.calls == 1


def test_delete_sends_version_as_query(dc_client) -> None:
    client, server = dc_client(
        httpx.Response(200, json={"id": 5, "version": 8}),
        httpx.Response(204),
    )

    client.guard.delete(TASK)

    assert server.requests[1].method == "DELETE"
    assert server.query(1) == {"version": "8"}


def test_post_with_version_reads_one_path_and_posts_to_another(dc_client) -> None:
    pr = "/projects/K/repos/r/pull-requests/1"
    client, server = dc_client(
        httpx.Response(200, json={"id": 1, "version": 12}),
        httpx.Response(200, json={"id": 1, "state": "MERGED"}),
    )

    result = client.guard.post_with_version(pr, pr + "/merge", {"message": "ship"})

    assert result["state"] == "MERGED"
    assert server.requests[0].url.path.endswith(pr)
    assert server.requests[1].url.path.endswith(pr + "/merge")
    assert server.query(1) == {"version": "12"}
    assert server.body(1) == {"message": "ship"}


def test_entity_without_version_is_rejected(dc_client) -> None:
    client, server = dc_client(httpx.Response(200, json={"id": 5}))

    with pytest.raises(ValidationError):
        client.guard.update(TASK, {"text": "new"})

    assert server.calls == 1
