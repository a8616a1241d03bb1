from bitbucket_toolkit.outcome import Failure, Success, capture
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.paths import Operation
from bitbucket_toolkit.tools.common import resolve_workspace


def get_current_user(client: BitbucketClient) -> Success | Failure:
    def call():
        data = client.get(client.paths.resolve(Operation.CURRENT_USER))
        if client.is_cloud:
            return data
        # DC answers with server properties; a 200 is proof enough that the token works
        return {"display_name": "Authenticated User", "type": "user", **(data or {})}

    message = "Authenticated successfully."
    if client.is_datacenter:
        message = "Authenticated successfully (Data Center)."
    return capture(call, message=message)


def get_workspace(client: BitbucketClient, workspace: str | None = None) -> Success | Failure:
    ws = resolve_workspace(client, workspace)
    if isinstance(ws, Failure):
        return ws
    return capture(
        lambda: client.get(client.paths.resolve(Operation.WORKSPACE, workspace=ws)),
        not_found=("Workspace/Project", ws),
    )
