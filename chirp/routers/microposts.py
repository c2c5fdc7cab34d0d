"""Micropost API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from chirp.database import get_db
from chirp.dependencies import get_current_user
from chirp.models.user import User
from chirp.rate_limit import limiter
from chirp.schemas.micropost import MicropostCreateRequest, MicropostListResponse, MicropostResponse
from chirp.services.micropost import get_micropost_service
from chirp.services.social import get_social_graph_service

router = APIRouter(prefix="/api/v1/microposts", tags=["Microposts"])


@router.post("/", response_model=MicropostResponse, status_code=201)
@limiter.limit("30/minute")
def create_micropost(
    request: Request,
    body: MicropostCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MicropostResponse:
    """Publish a micropost."""
    post = get_micropost_service().create(db, user, body.content)
    return MicropostResponse.model_validate(post)


@router.get("/feed", response_model=MicropostListResponse)
def feed(
    offset: int = Query(0, ge=0),
    limit: int = Query(30, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MicropostListResponse:
    """Posts by the signed-in user and everyone they follow, newest first."""
    items = get_social_graph_service().feed(db, user, limit=limit, offset=offset)
    return MicropostListResponse(items=[MicropostResponse.model_validate(p) for p in items])


@router.delete("/{micropost_id}")
def delete_micropost(
    micropost_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Delete one of the signed-in user's microposts."""
    if not get_micropost_service().delete(db, user, micropost_id):
        raise HTTPException(status_code=404, detail="Micropost not found")
    return {"detail": "Micropost deleted"}
