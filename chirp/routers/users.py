"""User, profile and follow API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chirp.database import get_db
from chirp.dependencies import get_current_user, get_optional_user, require_admin
from chirp.models.user import User
from chirp.schemas.micropost import MicropostListResponse, MicropostResponse
from chirp.schemas.user import (
    ProfileResponse,
    UpdateProfileRequest,
    UserDetailResponse,
    UserListResponse,
    UserResponse,
)
from chirp.services.credentials import get_credential_service
from chirp.services.micropost import get_micropost_service
from chirp.services.social import get_social_graph_service
from chirp.services.user import get_user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = get_user_service().get(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/", response_model=UserListResponse)
def list_users(
    offset: int = Query(0, ge=0),
    limit: int = Query(30, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserListResponse:
    """List activated users ordered by id."""
    items, total = get_user_service().list_users(db, limit=limit, offset=offset)
    return UserListResponse(items=[UserResponse.model_validate(u) for u in items], total=total)


@router.get("/me", response_model=ProfileResponse)
def get_me(user: User = Depends(get_current_user)) -> ProfileResponse:
    """Get the signed-in user's own profile."""
    return ProfileResponse.model_validate(user)


@router.patch("/me", response_model=ProfileResponse)
def update_me(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Update name, email or gender."""
    updated = get_credential_service().update_profile(db, user, name=body.name, email=body.email, gender=body.gender)
    return ProfileResponse.model_validate(updated)


@router.get("/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> UserDetailResponse:
    """Get a user with follow counts."""
    user = _get_user_or_404(db, user_id)
    social = get_social_graph_service()
    counts = social.counts(db, user)
    return UserDetailResponse(
        **UserResponse.model_validate(user).model_dump(),
        following_count=counts.following,
        followers_count=counts.followers,
        is_following=social.is_following(db, viewer, user) if viewer and viewer.id != user.id else None,
    )


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    """Delete a user with their posts and follow edges. Admin only."""
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")
    get_user_service().delete(db, user)
    return {"detail": "User deleted"}


@router.post("/{user_id}/follow")
def follow(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Follow a user."""
    other = _get_user_or_404(db, user_id)
    get_social_graph_service().follow(db, user, other)
    return {"following": True}


@router.delete("/{user_id}/follow")
def unfollow(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Unfollow a user."""
    other = _get_user_or_404(db, user_id)
    get_social_graph_service().unfollow(db, user, other)
    return {"following": False}


@router.get("/{user_id}/following", response_model=UserListResponse)
def list_following(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> UserListResponse:
    """Users followed by the given user."""
    items = get_social_graph_service().following(db, _get_user_or_404(db, user_id))
    return UserListResponse(items=[UserResponse.model_validate(u) for u in items], total=len(items))


@router.get("/{user_id}/followers", response_model=UserListResponse)
def list_followers(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> UserListResponse:
    """Users following the given user."""
    items = get_social_graph_service().followers(db, _get_user_or_404(db, user_id))
    return UserListResponse(items=[UserResponse.model_validate(u) for u in items], total=len(items))


@router.get("/{user_id}/microposts", response_model=MicropostListResponse)
def list_user_microposts(
    user_id: int,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
) -> MicropostListResponse:
    """A user's microposts, newest first."""
    _get_user_or_404(db, user_id)
    items, total = get_micropost_service().list_for_user(db, user_id, limit=limit, offset=offset)
    return MicropostListResponse(items=[MicropostResponse.model_validate(p) for p in items], total=total)
