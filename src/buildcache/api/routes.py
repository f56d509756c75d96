"""Artifact routes."""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from buildcache.api.auth import require_token
from buildcache.storage.location import ArtifactLocation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artifacts")


def get_location(request: Request) -> ArtifactLocation:
    return request.app.state.location


def get_team(
    team_id: str | None = Query(default=None, alias="teamId"),
    slug: str | None = Query(default=None),
) -> str:
    team = team_id or slug
    if not team:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="querystring should have required property 'teamId'",
        )
    return team


async def limited_body(request: Request, limit: int) -> AsyncIterator[bytes]:
    """Yield the request body, failing once it grows past ``limit`` bytes."""
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Request body is larger than {limit} bytes",
            )
        yield chunk


@router.get("/status")
async def get_status() -> dict[str, str]:
    return {"status": "enabled"}


@router.get("/{artifact_id}", dependencies=[Depends(require_token)])
async def get_artifact(
    artifact_id: str,
    team: str = Depends(get_team),
    location: ArtifactLocation = Depends(get_location),
) -> StreamingResponse:
    stream = await location.get_cached_artifact(artifact_id, team)
    return StreamingResponse(stream, media_type="application/octet-stream")


@router.head("/{artifact_id}", dependencies=[Depends(require_token)])
async def head_artifact(
    artifact_id: str,
    team: str = Depends(get_team),
    location: ArtifactLocation = Depends(get_location),
) -> Response:
    await location.exists_cached_artifact(artifact_id, team)
    return Response(status_code=status.HTTP_200_OK)


@router.put("/{artifact_id}", dependencies=[Depends(require_token)])
async def put_artifact(
    artifact_id: str,
    request: Request,
    team: str = Depends(get_team),
    location: ArtifactLocation = Depends(get_location),
) -> dict[str, list[str]]:
    limit = request.app.state.config.server.body_limit
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body is larger than {limit} bytes",
        )

    await location.create_cached_artifact(artifact_id, team, limited_body(request, limit))
    logger.info(f"Stored artifact {team}/{artifact_id}")
    return {"urls": [f"{team}/{artifact_id}"]}


@router.post("/events", dependencies=[Depends(require_token)])
async def post_events() -> Response:
    return Response(status_code=status.HTTP_200_OK)
