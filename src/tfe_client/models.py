from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .core.jsonapi import JSONAPIModel, WireModel

# --- Organizations ---


class Organization(JSONAPIModel):
    """An organization. Its name doubles as the resource id."""

    jsonapi_type = "organizations"

    name: Optional[str] = None
    email: Optional[str] = None
    collaborator_auth_policy: Optional[str] = None
    cost_estimation_enabled: Optional[bool] = None
    created_at: Optional[datetime] = None
    external_id: Optional[str] = None
    owners_team_saml_role_id: Optional[str] = None
    plan_expired: Optional[bool] = None
    saml_enabled: Optional[bool] = None
    session_remember: Optional[int] = None
    session_timeout: Optional[int] = None
    trial_expires_at: Optional[datetime] = None
    two_factor_conformant: Optional[bool] = None
    permissions: Dict[str, Any] = Field(default_factory=dict)


class OrganizationCreateOptions(JSONAPIModel):
    jsonapi_type = "organizations"

    name: Optional[str] = None
    email: Optional[str] = None
    collaborator_auth_policy: Optional[str] = None
    cost_estimation_enabled: Optional[bool] = None
    owners_team_saml_role_id: Optional[str] = None
    session_remember: Optional[int] = None
    session_timeout: Optional[int] = None


class OrganizationUpdateOptions(JSONAPIModel):
    jsonapi_type = "organizations"

    name: Optional[str] = None
    email: Optional[str] = None
    collaborator_auth_policy: Optional[str] = None
    cost_estimation_enabled: Optional[bool] = None
    owners_team_saml_role_id: Optional[str] = None
    session_remember: Optional[int] = None
    session_timeout: Optional[int] = None


# --- Workspaces ---


class VCSRepo(WireModel):
    oauth_token_id: Optional[str] = None
    identifier: Optional[str] = None
    branch: Optional[str] = None
    ingress_submodules: Optional[bool] = None
    repository_http_url: Optional[str] = None
    tags_regex: Optional[str] = None


class Workspace(JSONAPIModel):
    jsonapi_type = "workspaces"

    name: Optional[str] = None
    description: Optional[str] = None
    auto_apply: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    environment: Optional[str] = None
    execution_mode: Optional[str] = None
    file_triggers_enabled: Optional[bool] = None
    locked: Optional[bool] = None
    queue_all_runs: Optional[bool] = None
    resource_count: Optional[int] = None
    speculative_enabled: Optional[bool] = None
    terraform_version: Optional[str] = None
    trigger_prefixes: List[str] = Field(default_factory=list)
    tag_names: List[str] = Field(default_factory=list)
    working_directory: Optional[str] = None
    vcs_repo: Optional[VCSRepo] = None
    actions: Dict[str, Any] = Field(default_factory=dict)
    permissions: Dict[str, Any] = Field(default_factory=dict)

    organization: Optional[Organization] = None


class WorkspaceCreateOptions(JSONAPIModel):
    jsonapi_type = "workspaces"

    name: Optional[str] = None
    description: Optional[str] = None
    auto_apply: Optional[bool] = None
    execution_mode: Optional[str] = None
    file_triggers_enabled: Optional[bool] = None
    queue_all_runs: Optional[bool] = None
    speculative_enabled: Optional[bool] = None
    terraform_version: Optional[str] = None
    trigger_prefixes: Optional[List[str]] = None
    working_directory: Optional[str] = None
    vcs_repo: Optional[VCSRepo] = None


class WorkspaceUpdateOptions(JSONAPIModel):
    jsonapi_type = "workspaces"

    name: Optional[str] = None
    description: Optional[str] = None
    auto_apply: Optional[bool] = None
    execution_mode: Optional[str] = None
    file_triggers_enabled: Optional[bool] = None
    queue_all_runs: Optional[bool] = None
    speculative_enabled: Optional[bool] = None
    terraform_version: Optional[str] = None
    trigger_prefixes: Optional[List[str]] = None
    working_directory: Optional[str] = None
    vcs_repo: Optional[VCSRepo] = None


class WorkspaceLockOptions(BaseModel):
    reason: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


# --- Configuration versions ---


class ConfigurationVersion(JSONAPIModel):
    jsonapi_type = "configuration-versions"

    auto_queue_runs: Optional[bool] = None
    error: Optional[str] = None
    error_message: Optional[str] = None
    provisional: Optional[bool] = None
    source: Optional[str] = None
    speculative: Optional[bool] = None
    status: Optional[str] = None
    status_timestamps: Dict[str, Any] = Field(default_factory=dict)
    upload_url: Optional[str] = None

    @property
    def upload_target(self) -> Optional[str]:
        """Pre-signed upload URL, from the attribute or the ``upload`` link."""
        return self.upload_url or self.links.get("upload")


class ConfigurationVersionCreateOptions(JSONAPIModel):
    jsonapi_type = "configuration-versions"

    auto_queue_runs: Optional[bool] = None
    speculative: Optional[bool] = None
    provisional: Optional[bool] = None


# --- Runs ---


class RunActions(WireModel):
    is_cancelable: bool = False
    is_confirmable: bool = False
    is_discardable: bool = False
    is_force_cancelable: bool = False


class Run(JSONAPIModel):
    jsonapi_type = "runs"

    actions: Optional[RunActions] = None
    auto_apply: Optional[bool] = None
    created_at: Optional[datetime] = None
    has_changes: Optional[bool] = None
    is_destroy: Optional[bool] = None
    message: Optional[str] = None
    plan_only: Optional[bool] = None
    refresh: Optional[bool] = None
    refresh_only: Optional[bool] = None
    replace_addrs: List[str] = Field(default_factory=list)
    source: Optional[str] = None
    status: Optional[str] = None
    status_timestamps: Dict[str, Any] = Field(default_factory=dict)
    target_addrs: List[str] = Field(default_factory=list)
    permissions: Dict[str, Any] = Field(default_factory=dict)

    configuration_version: Optional[ConfigurationVersion] = None
    workspace: Optional[Workspace] = None


class RunCreateOptions(JSONAPIModel):
    jsonapi_type = "runs"

    auto_apply: Optional[bool] = None
    is_destroy: Optional[bool] = None
    message: Optional[str] = None
    plan_only: Optional[bool] = None
    refresh: Optional[bool] = None
    refresh_only: Optional[bool] = None
    replace_addrs: Optional[List[str]] = None
    target_addrs: Optional[List[str]] = None

    configuration_version: Optional[ConfigurationVersion] = None
    workspace: Optional[Workspace] = None


class RunActionOptions(BaseModel):
    """Body for apply/cancel/discard actions."""

    comment: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


# --- State versions ---


class StateVersion(JSONAPIModel):
    jsonapi_type = "state-versions"

    created_at: Optional[datetime] = None
    download_url: Optional[str] = Field(
        default=None, alias="hosted-state-download-url"
    )
    json_download_url: Optional[str] = Field(
        default=None, alias="hosted-json-state-download-url"
    )
    resources_processed: Optional[bool] = None
    serial: Optional[int] = None
    size: Optional[int] = None
    status: Optional[str] = None
    terraform_version: Optional[str] = None
    vcs_commit_sha: Optional[str] = None
    vcs_commit_url: Optional[str] = None

    run: Optional[Run] = None

    @property
    def download_target(self) -> Optional[str]:
        return self.download_url or self.links.get("download")


class StateVersionCreateOptions(JSONAPIModel):
    jsonapi_type = "state-versions"

    lineage: Optional[str] = None
    md5: Optional[str] = None
    serial: Optional[int] = None
    state: Optional[str] = None  # base64-encoded state file
    force: Optional[bool] = None

    run: Optional[Run] = None


# --- Meta ---


class IPRanges(BaseModel):
    """Published egress ranges. Served as plain JSON, not JSON:API."""

    api: List[str] = Field(default_factory=list)
    notifications: List[str] = Field(default_factory=list)
    sentinel: List[str] = Field(default_factory=list)
    vcs: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
