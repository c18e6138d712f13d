from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from socialpub.api.auth import require_caller
from socialpub.api.deps import get_pipeline
from socialpub.api.schemas import ConnectionIn, connection_out
from socialpub.connections.models import PlatformConnection
from socialpub.errors import NotFoundError
from socialpub.pipeline import Pipeline
from socialpub.posts.models import Platform

router = APIRouter(prefix="/connections", tags=["Connections"], dependencies=[Depends(require_caller)])


@router.put("")
def upsert_connection(body: ConnectionIn, pipeline: Pipeline = Depends(get_pipeline)):
    """Store (or replace) the credential for one client on one platform."""
    connection = PlatformConnection(**body.model_dump())
    return connection_out(pipeline.connections.upsert(connection))


@router.get("")
def list_connections(
    client_id: Optional[str] = Query(None, alias="clientId"),
    pipeline: Pipeline = Depends(get_pipeline),
):
    store = pipeline.connections
    found = store.list_for_client(client_id) if client_id else store.list_all()
    return {"connections": [connection_out(c) for c in found]}


@router.delete("/{client_id}/{platform}")
def delete_connection(client_id: str, platform: Platform, pipeline: Pipeline = Depends(get_pipeline)):
    if not pipeline.connections.delete(client_id, platform):
        raise NotFoundError("Connection not found")
    return {"success": True}
