from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Optional, Union

import anyio.to_thread

from tfe_client.core.client import TFEClient
from tfe_client.core.errors import TFEInvalidInputError
from tfe_client.core.jsonapi import ResourceList
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.models import ConfigurationVersion, ConfigurationVersionCreateOptions

# Directories never shipped in a slug. ".terraform/modules" is the exception
# since the platform reuses already-fetched modules.
_SKIP_DIRS = {".git"}
_TERRAFORM_DIR = ".terraform"
_TERRAFORM_KEEP = "modules"


async def list_configuration_versions(
    client: TFEClient,
    workspace_id: str,
    *,
    list_options: Optional[ListOptions] = None,
) -> ResourceList[ConfigurationVersion]:
    return await client.execute(
        Operation(
            "GET",
            "workspaces/{workspace_id}/configuration-versions",
            path_params={"workspace_id": workspace_id},
            list_options=list_options,
            output=ConfigurationVersion,
            many=True,
        )
    )


async def create_configuration_version(
    client: TFEClient,
    workspace_id: str,
    options: Optional[ConfigurationVersionCreateOptions] = None,
) -> ConfigurationVersion:
    """Create a configuration version; it becomes usable once data is uploaded."""
    return await client.execute(
        Operation(
            "POST",
            "workspaces/{workspace_id}/configuration-versions",
            path_params={"workspace_id": workspace_id},
            input=options or ConfigurationVersionCreateOptions(),
            output=ConfigurationVersion,
        )
    )


async def read_configuration_version(
    client: TFEClient, cv_id: str
) -> ConfigurationVersion:
    return await client.execute(
        Operation(
            "GET",
            "configuration-versions/{cv_id}",
            path_params={"cv_id": cv_id},
            output=ConfigurationVersion,
        )
    )


def _slug_filter(root: Path):
    def keep(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        parts = Path(info.name).parts
        if any(p in _SKIP_DIRS for p in parts):
            return None
        if _TERRAFORM_DIR in parts:
            idx = parts.index(_TERRAFORM_DIR)
            rest = parts[idx + 1 :]
            if rest and rest[0] != _TERRAFORM_KEEP:
                return None
        if info.issym():
            target = (root / info.name).parent / info.linkname
            try:
                target.resolve().relative_to(root.resolve())
            except ValueError:
                raise TFEInvalidInputError(
                    f"symlink {info.name!r} points outside the configuration "
                    "directory",
                    field="path",
                ) from None
        return info

    return keep


def pack_slug(path: Union[str, Path]) -> bytes:
    """
    Pack a configuration directory into a gzipped tarball.
    Example: pack_slug("./infra") -> b"\\x1f\\x8b..."
    """
    root = Path(path)
    if not root.is_dir():
        raise TFEInvalidInputError(
            "path needs to be an existing directory", field="path"
        )

    buf = io.BytesIO()
    keep = _slug_filter(root)
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for child in sorted(root.iterdir()):
            tar.add(str(child), arcname=child.name, filter=keep)
    return buf.getvalue()


async def upload_configuration(
    client: TFEClient,
    target: Union[ConfigurationVersion, str],
    path: Union[str, Path],
) -> None:
    """
    Pack ``path`` and PUT it to the configuration version's upload URL.
    ``target`` is a ConfigurationVersion or the upload URL itself.
    """
    if isinstance(target, ConfigurationVersion):
        url = target.upload_target
    else:
        url = target
    if not url:
        raise TFEInvalidInputError("upload URL is required", field="upload_url")

    slug = await anyio.to_thread.run_sync(pack_slug, path)
    await client.upload(url, slug)


async def download_configuration(client: TFEClient, cv_id: str) -> bytes:
    """Download the configuration version's slug (a .tar.gz archive)."""
    return await client.execute(
        Operation(
            "GET",
            "configuration-versions/{cv_id}/download",
            path_params={"cv_id": cv_id},
            raw_response=True,
        )
    )
