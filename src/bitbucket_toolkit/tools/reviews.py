"""Pending (draft) reviews, a Data Center only feature."""

from typing import Any

from bitbucket_toolkit.models.bitbucket import ParticipantStatus
from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.comments import comment_body
from bitbucket_toolkit.tools.common import pr_label, resolve_workspace


def add_pending_comment(
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
        # resolving the review path first rejects Cloud before anything is posted
        client.paths.resolve(
            Operation.PENDING_REVIEW, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        path = client.paths.resolve(
            Operation.LIST_COMMENTS, workspace=ws, repo_slug=repo_slug,
            pull_request_id=pull_request_id,
        )
        body = {**comment_body(client, content, inline, parent_id), "state": "PENDING"}
        return client.post(path, body)

    return capture(
        call,
        message="Pending review comment added.",
        not_found=("Pull Request", pr_label(ws, repo_slug, pull_request_id)),
    )


def get_pending_review(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get(_review_path(client, ws, repo_slug, pull_request_id)),
        not_found=("Pending Review", pr_label(ws, repo_slug, pull_request_id)),
    )


def submit_pending_review(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
    participant_status: ParticipantStatus | str | None = None,
    comment_text: str | None = None,
    last_reviewed_commit: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        body: dict[str, str] = {}
        if participant_status:
            body["participantStatus"] = ParticipantStatus(participant_status).value
        if comment_text:
            body["commentText"] = comment_text
        if last_reviewed_commit:
            body["lastReviewedCommit"] = last_reviewed_commit
        return client.put(_review_path(client, ws, repo_slug, pull_request_id), body)

    return capture(
        call,
        message="Pending review submitted.",
        not_found=("Pending Review", pr_label(ws, repo_slug, pull_request_id)),
    )


def discard_pending_review(
    client: BitbucketClient,
    repo_slug: str,
    pull_request_id: int,
    workspace: str | None = None,
) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws

    def call():
        client.delete(_review_path(client, ws, repo_slug, pull_request_id))
        return True

    return capture(
        call,
        message="Pending review discarded.",
        not_found=("Pending Review", pr_label(ws, repo_slug, pull_request_id)),
    )


def _review_path(client: BitbucketClient, ws: str, repo_slug: str, pull_request_id: int) -> str:
    return client.paths.resolve(
        Operation.PENDING_REVIEW, workspace=ws, repo_slug=repo_slug,
        pull_request_id=pull_request_id,
    )
