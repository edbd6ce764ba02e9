"""
Collection tools

Tools:
  getCollections    — Collections, optionally scoped to a workspace
  getCollection     — One collection's full contents
  deleteCollection  — Delete a collection
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


class GetCollectionsParams(BaseModel):
    workspace: Optional[str] = Field(None, description="Return only this workspace's collections.")
    name: Optional[str] = Field(None, description="Filter by collection name.")
    limit: Optional[int] = Field(None, ge=1, description="Maximum number of results.")
    offset: Optional[int] = Field(None, ge=0, description="Zero-based offset of the first result.")


class GetCollectionParams(BaseModel):
    collectionId: ResourceId = Field(..., description="The collection's ID or UID.")
    access_key: Optional[str] = Field(None, description="A collection's read-only access key.")
    model: Optional[Literal["minimal"]] = Field(
        None, description="Return only the root-level request and folder IDs.",
    )


class DeleteCollectionParams(BaseModel):
    collectionId: ResourceId = Field(..., description="The collection's ID or UID.")


async def _get_collections(args: GetCollectionsParams, ctx: ToolContext):
    data = await ctx.client.request(
        "GET", "/collections",
        params=args.model_dump(exclude_none=True),
        headers=ctx.headers,
    )
    return json_result(data)


async def _get_collection(args: GetCollectionParams, ctx: ToolContext):
    params = args.model_dump(exclude_none=True, exclude={"collectionId"})
    data = await ctx.client.request(
        "GET", f"/collections/{path_segment(args.collectionId)}",
        params=params,
        headers=ctx.headers,
    )
    return json_result(data)


async def _delete_collection(args: DeleteCollectionParams, ctx: ToolContext):
    data = await ctx.client.request(
        "DELETE", f"/collections/{path_segment(args.collectionId)}",
        headers=ctx.headers,
    )
    return json_result(data)


TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name="getCollections",
        description="Gets all collections the API key can access. Scope to a workspace with `workspace`.",
        parameters=GetCollectionsParams,
        handler=_get_collections,
        annotations=ToolAnnotations(title="List collections", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="getCollection",
        description="Gets a collection's requests, folders, variables and auth configuration.",
        parameters=GetCollectionParams,
        handler=_get_collection,
        annotations=ToolAnnotations(title="Get collection", read_only=True, idempotent=True),
    ),
    ToolDescriptor(
        name="deleteCollection",
        description="Deletes a collection.",
        parameters=DeleteCollectionParams,
        handler=_delete_collection,
        annotations=ToolAnnotations(title="Delete collection", destructive=True, idempotent=True),
    ),
]
