"""
Environment tools

Tools:
  getEnvironments    — Environments, optionally scoped to a workspace
  getEnvironment     — One environment with its variables
  createEnvironment  — Create an environment
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


class GetEnvironmentsParams(BaseModel):
    workspace: Optional[str] = Field(None, description="Return only this workspace's environments.")


class GetEnvironmentParams(BaseModel):
    environmentId: ResourceId = Field(..., description="The environment's ID or UID.")


class EnvironmentVariable(BaseModel):
    key: str
    value: str = ""
    type: Literal["default", "secret"] = "default"
    enabled: bool = True


class EnvironmentBody(BaseModel):
    name: str = Field(..., description="The environment's name.")
    values: List[EnvironmentVariable] = Field(default_factory=list)


class CreateEnvironmentParams(BaseModel):
    workspace: Optional[str] = Field(None, description="Create the environment in this workspace.")
    environment: EnvironmentBody


async def _get_environments(args: GetEnvironmentsParams, ctx: ToolContext):
    data = await ctx.client.request(
        "GET", "/environments",
        params=args.model_dump(exclude_none=True),
        headers=ctx.headers,
    )
    return json_result(data)


async def _get_environment(args: GetEnvironmentParams, ctx: ToolContext):
    data = await ctx.client.request(
        "GET", f"/environments/{path_segment(args.environmentId)}",
        headers=ctx.headers,
    )
    return json_result(data)


async def _create_environment(args: CreateEnvironmentParams, ctx: ToolContext):
    data = await ctx.client.request(
        "POST", "/environments",
        params={"workspace": args.workspace},
        json={"environment": args.environment.model_dump()},
        headers=ctx.headers,
    )
    return json_result(data)


TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name="getEnvironments",
        description="Gets all environments the API key can access. Scope to a workspace with `workspace`.",
        parameters=GetEnvironmentsParams,
        handler=_get_environments,
        annotations=ToolAnnotations(title="List environments", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="getEnvironment",
        description="Gets an environment and its variables.",
        parameters=GetEnvironmentParams,
        handler=_get_environment,
        annotations=ToolAnnotations(title="Get environment", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="createEnvironment",
        description="Creates an environment, optionally inside a workspace.",
        parameters=CreateEnvironmentParams,
        handler=_create_environment,
        annotations=ToolAnnotations(title="Create environment", destructive=False, idempotent=False),
    ),
]
