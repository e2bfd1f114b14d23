from __future__ import annotations

from typing import Optional, Sequence

from tfe_client.core.client import TFEClient
from tfe_client.core.jsonapi import ResourceList
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.core.validation import ensure_string_id
from tfe_client.models import (
    Workspace,
    WorkspaceCreateOptions,
    WorkspaceLockOptions,
    WorkspaceUpdateOptions,
)

_WORKSPACE_PATH = "organizations/{organization}/workspaces/{workspace}"


def _check_name(name: Optional[str], *, required: bool) -> None:
    if name is None and not required:
        return
    ensure_string_id(name, "name")


async def list_workspaces(
    client: TFEClient,
    organization: str,
    *,
    search: Optional[str] = None,
    tags: Sequence[str] = (),
    include: Sequence[str] = (),
    list_options: Optional[ListOptions] = None,
) -> ResourceList[Workspace]:
    """
    List workspaces in an organization.
    - ``search`` is a partial name match
    - ``tags`` restricts to workspaces carrying all of the given tags
    """
    return await client.execute(
        Operation(
            "GET",
            "organizations/{organization}/workspaces",
            path_params={"organization": organization},
            query={
                "search[name]": search,
                "search[tags]": ",".join(tags) if tags else None,
            },
            include=include,
            list_options=list_options,
            output=Workspace,
            many=True,
        )
    )


async def read_workspace(
    client: TFEClient,
    organization: str,
    workspace: str,
    *,
    include: Sequence[str] = (),
) -> Workspace:
    return await client.execute(
        Operation(
            "GET",
            _WORKSPACE_PATH,
            path_params={"organization": organization, "workspace": workspace},
            include=include,
            output=Workspace,
        )
    )


async def read_workspace_by_id(
    client: TFEClient, workspace_id: str, *, include: Sequence[str] = ()
) -> Workspace:
    return await client.execute(
        Operation(
            "GET",
            "workspaces/{workspace_id}",
            path_params={"workspace_id": workspace_id},
            include=include,
            output=Workspace,
        )
    )


async def create_workspace(
    client: TFEClient, organization: str, options: WorkspaceCreateOptions
) -> Workspace:
    _check_name(options.name, required=True)
    return await client.execute(
        Operation(
            "POST",
            "organizations/{organization}/workspaces",
            path_params={"organization": organization},
            input=options,
            output=Workspace,
        )
    )


async def update_workspace(
    client: TFEClient,
    organization: str,
    workspace: str,
    options: WorkspaceUpdateOptions,
) -> Workspace:
    _check_name(options.name, required=False)
    return await client.execute(
        Operation(
            "PATCH",
            _WORKSPACE_PATH,
            path_params={"organization": organization, "workspace": workspace},
            input=options,
            output=Workspace,
        )
    )


async def update_workspace_by_id(
    client: TFEClient, workspace_id: str, options: WorkspaceUpdateOptions
) -> Workspace:
    _check_name(options.name, required=False)
    return await client.execute(
        Operation(
            "PATCH",
            "workspaces/{workspace_id}",
            path_params={"workspace_id": workspace_id},
            input=options,
            output=Workspace,
        )
    )


async def delete_workspace(
    client: TFEClient, organization: str, workspace: str
) -> None:
    await client.execute(
        Operation(
            "DELETE",
            _WORKSPACE_PATH,
            path_params={"organization": organization, "workspace": workspace},
        )
    )


async def _workspace_action(
    client: TFEClient,
    workspace_id: str,
    action: str,
    body: Optional[WorkspaceLockOptions] = None,
) -> Workspace:
    return await client.execute(
        Operation(
            "POST",
            "workspaces/{workspace_id}/actions/" + action,
            path_params={"workspace_id": workspace_id},
            input=body,
            output=Workspace,
        )
    )


async def lock_workspace(
    client: TFEClient, workspace_id: str, *, reason: Optional[str] = None
) -> Workspace:
    """Lock a workspace. An already locked workspace raises TFEConflictError."""
    return await _workspace_action(
        client, workspace_id, "lock", WorkspaceLockOptions(reason=reason)
    )


async def unlock_workspace(client: TFEClient, workspace_id: str) -> Workspace:
    return await _workspace_action(client, workspace_id, "unlock")


async def force_unlock_workspace(client: TFEClient, workspace_id: str) -> Workspace:
    return await _workspace_action(client, workspace_id, "force-unlock")
