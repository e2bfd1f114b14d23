from __future__ import annotations

from typing import Optional, Sequence

from tfe_client.core.client import TFEClient
from tfe_client.core.errors import TFEInvalidInputError
from tfe_client.core.jsonapi import ResourceList
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.core.validation import valid_string_id
from tfe_client.models import Run, RunActionOptions, RunCreateOptions


async def list_runs(
    client: TFEClient,
    workspace_id: str,
    *,
    status: Sequence[str] = (),
    include: Sequence[str] = (),
    list_options: Optional[ListOptions] = None,
) -> ResourceList[Run]:
    return await client.execute(
        Operation(
            "GET",
            "workspaces/{workspace_id}/runs",
            path_params={"workspace_id": workspace_id},
            query={"filter[status]": list(status)},
            include=include,
            list_options=list_options,
            output=Run,
            many=True,
        )
    )


async def read_run(
    client: TFEClient, run_id: str, *, include: Sequence[str] = ()
) -> Run:
    return await client.execute(
        Operation(
            "GET",
            "runs/{run_id}",
            path_params={"run_id": run_id},
            include=include,
            output=Run,
        )
    )


async def create_run(client: TFEClient, options: RunCreateOptions) -> Run:
    """Queue a run. ``options.workspace`` must reference an existing workspace id."""
    if options.workspace is None:
        raise TFEInvalidInputError("workspace is required", field="workspace")
    if not valid_string_id(options.workspace.id):
        raise TFEInvalidInputError(
            "invalid value for workspace ID", field="workspace"
        )

    return await client.execute(Operation("POST", "runs", input=options, output=Run))


async def _run_action(
    client: TFEClient, run_id: str, action: str, comment: Optional[str]
) -> None:
    await client.execute(
        Operation(
            "POST",
            "runs/{run_id}/actions/" + action,
            path_params={"run_id": run_id},
            input=RunActionOptions(comment=comment),
        )
    )


async def apply_run(
    client: TFEClient, run_id: str, *, comment: Optional[str] = None
) -> None:
    await _run_action(client, run_id, "apply", comment)


async def cancel_run(
    client: TFEClient, run_id: str, *, comment: Optional[str] = None
) -> None:
    await _run_action(client, run_id, "cancel", comment)


async def force_cancel_run(
    client: TFEClient, run_id: str, *, comment: Optional[str] = None
) -> None:
    await _run_action(client, run_id, "force-cancel", comment)


async def discard_run(
    client: TFEClient, run_id: str, *, comment: Optional[str] = None
) -> None:
    await _run_action(client, run_id, "discard", comment)
