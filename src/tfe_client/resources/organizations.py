from __future__ import annotations

from typing import Optional

from tfe_client.core.client import TFEClient
from tfe_client.core.jsonapi import ResourceList
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.core.validation import ensure_string, ensure_string_id
from tfe_client.models import (
    Organization,
    OrganizationCreateOptions,
    OrganizationUpdateOptions,
)


async def list_organizations(
    client: TFEClient,
    *,
    query: Optional[str] = None,
    list_options: Optional[ListOptions] = None,
) -> ResourceList[Organization]:
    """List organizations visible to the token; ``query`` matches name or email."""
    return await client.execute(
        Operation(
            "GET",
            "organizations",
            query={"q": query},
            list_options=list_options,
            output=Organization,
            many=True,
        )
    )


async def read_organization(client: TFEClient, organization: str) -> Organization:
    return await client.execute(
        Operation(
            "GET",
            "organizations/{organization}",
            path_params={"organization": organization},
            output=Organization,
        )
    )


async def create_organization(
    client: TFEClient, options: OrganizationCreateOptions
) -> Organization:
    ensure_string_id(options.name, "name")
    ensure_string(options.email, "email")

    return await client.execute(
        Operation("POST", "organizations", input=options, output=Organization)
    )


async def update_organization(
    client: TFEClient, organization: str, options: OrganizationUpdateOptions
) -> Organization:
    if options.name is not None:
        ensure_string_id(options.name, "name")

    return await client.execute(
        Operation(
            "PATCH",
            "organizations/{organization}",
            path_params={"organization": organization},
            input=options,
            output=Organization,
        )
    )


async def delete_organization(client: TFEClient, organization: str) -> None:
    await client.execute(
        Operation(
            "DELETE",
            "organizations/{organization}",
            path_params={"organization": organization},
        )
    )
