"""
Workspace and user tools

Tools:
  getAuthenticatedUser  — The user the API key belongs to
  getWorkspaces         — All workspaces visible to the key
  getWorkspace          — One workspace with its elements
  createWorkspace       — Create a workspace
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from postman_mcp.tools.registry import (
    ResourceId,
    ToolAnnotations,
    ToolContext,
    ToolDescriptor,
    json_result,
    path_segment,
)


class NoParams(BaseModel):
    pass


class GetWorkspacesParams(BaseModel):
    type: Optional[Literal["personal", "team", "private", "public", "partner"]] = Field(
        None, description="Only return workspaces of this type.",
    )
    createdBy: Optional[int] = Field(None, description="Only return workspaces created by this user ID.")
    include: Optional[str] = Field(
        None, description="Extra information to include, e.g. 'mocks:deactivated'.",
    )


class GetWorkspaceParams(BaseModel):
    workspaceId: ResourceId = Field(..., description="The workspace's ID.")


class WorkspaceBody(BaseModel):
    name: str = Field(..., description="The workspace's name.")
    type: Literal["personal", "team", "private", "public", "partner"] = Field(
        ..., description="The type of workspace.",
    )
    description: Optional[str] = Field(None, description="The workspace's description.")


class CreateWorkspaceParams(BaseModel):
    workspace: WorkspaceBody


async def _get_authenticated_user(args: NoParams, ctx: ToolContext):
    data = await ctx.client.request("GET", "/me", headers=ctx.headers)
    return json_result(data)


async def _get_workspaces(args: GetWorkspacesParams, ctx: ToolContext):
    data = await ctx.client.request(
        "GET", "/workspaces",
        params=args.model_dump(exclude_none=True),
        headers=ctx.headers,
    )
    return json_result(data)


async def _get_workspace(args: GetWorkspaceParams, ctx: ToolContext):
    data = await ctx.client.request(
        "GET", f"/workspaces/{path_segment(args.workspaceId)}",
        headers=ctx.headers,
    )
    return json_result(data)


async def _create_workspace(args: CreateWorkspaceParams, ctx: ToolContext):
    data = await ctx.client.request(
        "POST", "/workspaces",
        json=args.model_dump(exclude_none=True),
        headers=ctx.headers,
    )
    return json_result(data)


TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name="getAuthenticatedUser",
        description="Gets information about the authenticated user: ID, username, team and usage.",
        parameters=NoParams,
        handler=_get_authenticated_user,
        annotations=ToolAnnotations(title="Get authenticated user", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="getWorkspaces",
        description="Gets all workspaces the API key can access. Filter by type or creator.",
        parameters=GetWorkspacesParams,
        handler=_get_workspaces,
        annotations=ToolAnnotations(title="List workspaces", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="getWorkspace",
        description="Gets a workspace, including the collections, environments and mocks it contains.",
        parameters=GetWorkspaceParams,
        handler=_get_workspace,
        annotations=ToolAnnotations(title="Get workspace", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="createWorkspace",
        description="Creates a new workspace.",
        parameters=CreateWorkspaceParams,
        handler=_create_workspace,
        annotations=ToolAnnotations(title="Create workspace", destructive=False, idempotent=False),
    ),
]
