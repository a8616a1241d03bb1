import json

import typer
from pydantic import ValidationError

from bitbucket_toolkit.config import AppConfig, ConfigError, configure_logging
from bitbucket_toolkit.outcome import Failure, Success
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.tools import diffs, pull_requests, repositories, tasks, workspace

app = typer.Typer(help="Bitbucket Cloud / Data Center toolkit", no_args_is_help=True)
auth_app = typer.Typer(help="Authentication commands")
repo_app = typer.Typer(help="Repository commands")
pr_app = typer.Typer(help="Pull request commands")

app.add_typer(auth_app, name="auth")
app.add_typer(repo_app, name="repo")
app.add_typer(pr_app, name="pr")

WorkspaceOption = typer.Option(None, "--workspace", "-w", help="Workspace or project key")
PageSizeOption = typer.Option(None, "--page-size", min=1, max=100)
PageOption = typer.Option(None, "--page", min=1)
AllOption = typer.Option(False, "--all", help="Fetch every page (capped at 1000 items)")


def build_client(config: AppConfig) -> BitbucketClient:
    return BitbucketClient(
        base_url=config.api_url,
        token=config.require_token(),
        platform=config.platform,
        timeout=config.timeout_seconds,
        retry_policy=config.retry_policy(),
        verify=not config.bitbucket_insecure,
        default_workspace=config.default_workspace,
    )


def load_config() -> AppConfig:
    try:
        return AppConfig()
    except ValidationError as exc:
        typer.echo(f"Invalid configuration:\n{exc}", err=True)
        raise typer.Exit(code=2)


def run(tool, *args, **kwargs) -> None:
    config = load_config()
    configure_logging(config.log_level)
    try:
        client = build_client(config)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)

    with client:
        result: Success | Failure = tool(client, *args, **kwargs)
    typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    if isinstance(result, Failure):
        raise typer.Exit(code=1)


@auth_app.command("status")
def auth_status() -> None:
    config = load_config()
    typer.echo(f"Target Bitbucket: {config.api_url} ({config.platform.value})")
    run(workspace.get_current_user)


@repo_app.command("list")
def repo_list(
    workspace_: str | None = WorkspaceOption,
    name: str | None = typer.Option(None, help="Partial repository name"),
    page_size: int | None = PageSizeOption,
    page: int | None = PageOption,
    fetch_all: bool = AllOption,
) -> None:
    run(
        repositories.list_repositories,
        workspace=workspace_,
        name=name,
        page_size=page_size,
        page=page,
        fetch_all=fetch_all,
    )


@repo_app.command("branches")
def repo_branches(
    repo_slug: str,
    workspace_: str | None = WorkspaceOption,
    filter_: str | None = typer.Option(None, "--filter", help="Partial branch name"),
    fetch_all: bool = AllOption,
) -> None:
    run(
        repositories.list_branches,
        repo_slug,
        workspace=workspace_,
        filter=filter_,
        fetch_all=fetch_all,
    )


@pr_app.command("list")
def pr_list(
    repo_slug: str,
    workspace_: str | None = WorkspaceOption,
    state: str | None = typer.Option(None, help="OPEN, MERGED, DECLINED"),
    page_size: int | None = PageSizeOption,
    page: int | None = PageOption,
    fetch_all: bool = AllOption,
) -> None:
    run(
        pull_requests.list_pull_requests,
        repo_slug,
        workspace=workspace_,
        state=state,
        page_size=page_size,
        page=page,
        fetch_all=fetch_all,
    )


@pr_app.command("get")
def pr_get(repo_slug: str, pull_request_id: int, workspace_: str | None = WorkspaceOption) -> None:
    run(pull_requests.get_pull_request, repo_slug, pull_request_id, workspace=workspace_)


@pr_app.command("diff")
def pr_diff(repo_slug: str, pull_request_id: int, workspace_: str | None = WorkspaceOption) -> None:
    run(diffs.get_diff, repo_slug, pull_request_id, workspace=workspace_)


@pr_app.command("tasks")
def pr_tasks(
    repo_slug: str,
    pull_request_id: int,
    workspace_: str | None = WorkspaceOption,
    fetch_all: bool = AllOption,
) -> None:
    run(tasks.list_tasks, repo_slug, pull_request_id, workspace=workspace_, fetch_all=fetch_all)


if __name__ == "__main__":
    app()
