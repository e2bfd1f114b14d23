from __future__ import annotations

from typing import Optional, Sequence, Union

from tfe_client.core.client import TFEClient
from tfe_client.core.errors import TFEInvalidInputError
from tfe_client.core.jsonapi import ResourceList
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.core.validation import ensure_string, ensure_string_id
from tfe_client.models import StateVersion, StateVersionCreateOptions


async def list_state_versions(
    client: TFEClient,
    organization: str,
    workspace: str,
    *,
    list_options: Optional[ListOptions] = None,
) -> ResourceList[StateVersion]:
    """List state versions of a workspace, newest first."""
    ensure_string_id(organization, "organization")
    ensure_string_id(workspace, "workspace")
    return await client.execute(
        Operation(
            "GET",
            "state-versions",
            query={
                "filter[organization][name]": organization,
                "filter[workspace][name]": workspace,
            },
            list_options=list_options,
            output=StateVersion,
            many=True,
        )
    )


async def read_state_version(
    client: TFEClient, sv_id: str, *, include: Sequence[str] = ()
) -> StateVersion:
    return await client.execute(
        Operation(
            "GET",
            "state-versions/{sv_id}",
            path_params={"sv_id": sv_id},
            include=include,
            output=StateVersion,
        )
    )


async def read_current_state_version(
    client: TFEClient, workspace_id: str, *, include: Sequence[str] = ()
) -> StateVersion:
    return await client.execute(
        Operation(
            "GET",
            "workspaces/{workspace_id}/current-state-version",
            path_params={"workspace_id": workspace_id},
            include=include,
            output=StateVersion,
        )
    )


async def create_state_version(
    client: TFEClient, workspace_id: str, options: StateVersionCreateOptions
) -> StateVersion:
    """
    Upload a new state version. The workspace must be locked by the caller.
    ``md5``, ``serial`` and ``state`` are required.
    """
    ensure_string(options.md5, "md5")
    if options.serial is None:
        raise TFEInvalidInputError("serial is required", field="serial")
    ensure_string(options.state, "state")

    return await client.execute(
        Operation(
            "POST",
            "workspaces/{workspace_id}/state-versions",
            path_params={"workspace_id": workspace_id},
            input=options,
            output=StateVersion,
        )
    )


async def download_state(
    client: TFEClient, target: Union[StateVersion, str]
) -> bytes:
    """Fetch raw state from a StateVersion's download URL (or a URL string)."""
    if isinstance(target, StateVersion):
        url = target.download_target
    else:
        url = target
    if not url:
        raise TFEInvalidInputError("download URL is required", field="download_url")
    return await client.download(url)
